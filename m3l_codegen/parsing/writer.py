"""
M3L writer.

Serializes a Document back to canonical M3L text: one heading per block,
single-line fields, and explicit Relations / Indexes / Metadata sections.
Parsing the output yields a Document equal to the input.
"""

import re
from typing import Any, Dict, List, Optional

from ..domain.models import Document, Model, Interface, Enum, EnumValue, Field, Relation, Index

_PLAIN_DEFAULT_PATTERN = re.compile(r"^[^\s\"'@\[]+$")


def _quote(text: str) -> str:
    return f"'{text}'" if '"' in text else f'"{text}"'


def format_default(value: str) -> str:
    """Write a default so it reads back as the same string."""
    if _PLAIN_DEFAULT_PATTERN.match(value) and value.count("(") == value.count(")"):
        return value
    return _quote(value)


def format_metadata_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return _quote(str(value))


def format_metadata(metadata: Dict[str, Any], indent: str = "") -> List[str]:
    lines = []
    for key, value in metadata.items():
        if value is True:
            lines.append(f"{indent}- {key}")
        else:
            lines.append(f"{indent}- {key}: {format_metadata_value(value)}")
    return lines


def format_field(item: Field) -> List[str]:
    head = item.name
    if item.label:
        head += f"({item.label})"
    definition = item.type or ""
    if item.length is not None:
        definition += f"({item.length})"
    if item.is_nullable:
        definition += "?"
    parts = [f"- {head}: {definition}"]
    if item.default_value is not None:
        parts.append(f"= {format_default(item.default_value)}")
    parts.extend(item.attributes)
    parts.extend(f"[{directive}]" for directive in item.framework_attributes)

    lines = [" ".join(parts)]
    if item.description:
        lines.append(f"  > {item.description}")
    return lines


def format_heading(
    entity,
    kind: Optional[str] = None,
) -> str:
    parts = [f"## {entity.name}"]
    if entity.label:
        parts[0] += f"({entity.label})"
    if entity.inherits:
        parts.append(": " + ", ".join(entity.inherits))
    if kind:
        parts.append(f"::{kind}")
    parts.extend(entity.attributes)
    if entity.description:
        parts.append(f"# {entity.description}")
    return " ".join(parts)


def format_relation(relation: Relation) -> List[str]:
    marker = ">" if relation.is_to_one else "<"
    head = f"- {marker}{relation.name}"
    if relation.description:
        head += f' "{relation.description}"'
    lines = [head]
    if relation.target:
        lines.append(f"  - target: {relation.target}")
    if relation.from_field:
        lines.append(f"  - from: {relation.from_field}")
    if relation.on_delete:
        lines.append(f"  - on_delete: {relation.on_delete}")
    if relation.on_update:
        lines.append(f"  - on_update: {relation.on_update}")
    for key, value in relation.metadata.items():
        lines.append(f"  - {key}: {value}")
    return lines


def format_index(index: Index) -> List[str]:
    head = f"- {index.name}"
    if index.description:
        head += f" ({index.description})"
    lines = [head, f"  - fields: [{', '.join(index.fields)}]"]
    if index.is_unique:
        lines.append("  - unique: true")
    if index.is_fulltext:
        lines.append("  - fulltext: true")
    return lines


def format_entity(entity: Interface, kind: Optional[str] = None) -> List[str]:
    lines = [format_heading(entity, kind)]
    for item in entity.fields:
        lines.extend(format_field(item))

    if isinstance(entity, Model):
        if entity.relations:
            lines.extend(["", "### Relations"])
            for relation in entity.relations:
                lines.extend(format_relation(relation))
        if entity.indexes:
            lines.extend(["", "### Indexes"])
            for index in entity.indexes:
                lines.extend(format_index(index))

    if entity.metadata:
        lines.extend(["", "### Metadata"])
        lines.extend(format_metadata(entity.metadata))
    return lines


def format_enum_value(value: EnumValue, indent: str = "") -> str:
    line = f"{indent}- {value.name}"
    if value.value is not None:
        line += f": {value.type} = {value.value}" if value.type else f" = {value.value}"
        if value.description:
            line += f' "{value.description}"'
    elif value.description:
        line += f': "{value.description}"'
    return line


def format_enum(enum: Enum) -> List[str]:
    lines = [format_heading(enum, "enum")]
    current_group = None
    for value in enum.values:
        if value.group != current_group and value.group is not None:
            lines.append(f"- {value.group}")
        current_group = value.group
        lines.append(format_enum_value(value, "  " if value.group else ""))
    return lines


def format_document(document: Document) -> str:
    """Render a Document as M3L source text."""
    lines: List[str] = []
    if document.namespace:
        lines.append(f"# Namespace: {document.namespace}")
    lines.extend(format_metadata(document.metadata))

    blocks: List[List[str]] = []
    blocks.extend(format_entity(interface, "interface") for interface in document.interfaces)
    blocks.extend(format_entity(model) for model in document.models)
    blocks.extend(format_enum(enum) for enum in document.enums)

    for block in blocks:
        if lines:
            lines.append("")
        lines.extend(block)
    return "\n".join(lines) + "\n"
