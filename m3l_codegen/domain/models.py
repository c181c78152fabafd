"""
Core domain models for M3L Codegen.

These records are what the structural parser produces from M3L text. They
carry no knowledge of any output target; enrichment and inheritance
resolution build on top of them without changing them.
"""

import re
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from ..constants import M3LSyntax


REFERENCE_TAG_PATTERN = re.compile(r"^@reference\(\s*([^)]*?)\s*\)$", re.IGNORECASE)


def _has_tag(attributes: List[str], prefix: str) -> bool:
    prefix = prefix.lower()
    return any(attr.lower().startswith(prefix) for attr in attributes)


@dataclass
class Field:
    """
    A single field of a model or interface as written in M3L.

    `attributes` holds the raw `@tag` tokens and `framework_attributes` the
    raw text of bracketed directives, both in source order.
    """

    name: str
    type: Optional[str] = None
    label: Optional[str] = None
    is_nullable: bool = False
    length: Optional[str] = None
    default_value: Optional[str] = None
    attributes: List[str] = field(default_factory=list)
    framework_attributes: List[str] = field(default_factory=list)
    description: Optional[str] = None

    # Source span, not part of equality
    line_number: Optional[int] = field(default=None, compare=False, repr=False)
    end_line: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def is_primary_key(self) -> bool:
        return _has_tag(self.attributes, M3LSyntax.PRIMARY_TAG)

    @property
    def is_unique(self) -> bool:
        return _has_tag(self.attributes, M3LSyntax.UNIQUE_TAG)

    @property
    def is_required(self) -> bool:
        return not self.is_nullable

    @property
    def is_reference(self) -> bool:
        return self.reference_target is not None

    @property
    def reference_target(self) -> Optional[str]:
        """Target entity of the first `@reference(X)` tag, if any."""
        for attr in self.attributes:
            match = REFERENCE_TAG_PATTERN.match(attr)
            if match and match.group(1):
                return match.group(1).strip("\"'")
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'name': self.name,
            'label': self.label,
            'type': self.type,
            'is_nullable': self.is_nullable,
            'length': self.length,
            'default_value': self.default_value,
            'attributes': list(self.attributes),
            'framework_attributes': list(self.framework_attributes),
            'description': self.description,
        }


@dataclass
class EnumValue:
    """One member of an enum block."""

    name: str
    value: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    group: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'value': self.value,
            'type': self.type,
            'description': self.description,
            'group': self.group,
        }


@dataclass
class Relation:
    """
    A navigation declared in a `### Relations` section or with `@relation`.

    `is_to_one` distinguishes `>name` (to-one) from `<name` (to-many).
    """

    name: str
    target: Optional[str] = None
    from_field: Optional[str] = None
    description: Optional[str] = None
    is_to_one: bool = True
    on_delete: Optional[str] = None
    on_update: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'target': self.target,
            'from_field': self.from_field,
            'description': self.description,
            'is_to_one': self.is_to_one,
            'on_delete': self.on_delete,
            'on_update': self.on_update,
            'metadata': dict(self.metadata),
        }


@dataclass
class Index:
    """A (possibly unique or full-text) index over one or more fields."""

    name: str
    fields: List[str] = field(default_factory=list)
    is_unique: bool = False
    is_fulltext: bool = False
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'fields': list(self.fields),
            'is_unique': self.is_unique,
            'is_fulltext': self.is_fulltext,
            'description': self.description,
        }


@dataclass
class Interface:
    """A named field contract."""

    name: str
    label: Optional[str] = None
    description: Optional[str] = None
    inherits: List[str] = field(default_factory=list)
    fields: List[Field] = field(default_factory=list)
    attributes: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    line_number: Optional[int] = field(default=None, compare=False, repr=False)
    end_line: Optional[int] = field(default=None, compare=False, repr=False)

    def get_field(self, name: str) -> Optional[Field]:
        """Get a directly declared field by name."""
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'label': self.label,
            'description': self.description,
            'inherits': list(self.inherits),
            'fields': [item.to_dict() for item in self.fields],
            'attributes': list(self.attributes),
            'metadata': dict(self.metadata),
        }


@dataclass
class Model(Interface):
    """
    A named entity definition.

    Inherited names may point at models or interfaces; the language does
    not tell them apart, resolution does.
    """

    relations: List[Relation] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)

    @property
    def is_abstract(self) -> bool:
        return M3LSyntax.ABSTRACT_TAG in (attr.lower() for attr in self.attributes)

    @property
    def is_default(self) -> bool:
        return M3LSyntax.DEFAULT_TAG in (attr.lower() for attr in self.attributes)

    @property
    def primary_key_fields(self) -> List[Field]:
        return [item for item in self.fields if item.is_primary_key]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['relations'] = [relation.to_dict() for relation in self.relations]
        data['indexes'] = [index.to_dict() for index in self.indexes]
        data['is_abstract'] = self.is_abstract
        data['is_default'] = self.is_default
        return data


@dataclass
class Enum:
    """An enum block and its values."""

    name: str
    label: Optional[str] = None
    description: Optional[str] = None
    inherits: List[str] = field(default_factory=list)
    values: List[EnumValue] = field(default_factory=list)
    attributes: List[str] = field(default_factory=list)

    line_number: Optional[int] = field(default=None, compare=False, repr=False)
    end_line: Optional[int] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'label': self.label,
            'description': self.description,
            'inherits': list(self.inherits),
            'values': [value.to_dict() for value in self.values],
            'attributes': list(self.attributes),
        }


@dataclass
class Document:
    """
    Top-level container produced by one parse call.

    Model, interface and enum names are unique within a document.
    """

    namespace: Optional[str] = None
    models: List[Model] = field(default_factory=list)
    interfaces: List[Interface] = field(default_factory=list)
    enums: List[Enum] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_model(self, name: str) -> Optional[Model]:
        for model in self.models:
            if model.name == name:
                return model
        return None

    def get_interface(self, name: str) -> Optional[Interface]:
        for interface in self.interfaces:
            if interface.name == name:
                return interface
        return None

    def get_enum(self, name: str) -> Optional[Enum]:
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None

    def entity_names(self) -> List[str]:
        """Names of every model, interface and enum in declaration order per kind."""
        return (
            [model.name for model in self.models]
            + [interface.name for interface in self.interfaces]
            + [enum.name for enum in self.enums]
        )

    @property
    def default_model(self) -> Optional[Model]:
        """The model tagged `@default`, if any."""
        for model in self.models:
            if model.is_default:
                return model
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'namespace': self.namespace,
            'models': [model.to_dict() for model in self.models],
            'interfaces': [interface.to_dict() for interface in self.interfaces],
            'enums': [enum.to_dict() for enum in self.enums],
            'metadata': dict(self.metadata),
        }


@dataclass
class GenerationResult:
    """Result of a code generation operation."""

    component_type: str  # 'sql', 'typescript', ...
    file_path: str
    code: str
    model_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
