"""
Structural parser for M3L documents.

Turns source lines into a Document of models, interfaces and enums. The
grammar is line oriented: `##` headings open blocks, `-` lines inside a
block are fields (or relations, indexes and metadata entries inside a
`###` section), and more-indented `-` lines refine the entry above them.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from ..constants import M3LSyntax
from ..domain.models import Document, Model, Interface, Enum, EnumValue, Field, Relation, Index
from .context import ParserContext, indent_of
from .patterns import (
    NAMESPACE_PATTERN,
    TITLE_PATTERN,
    SECTION_PATTERN,
    KIND_PATTERN,
    HEADING_NAME_PATTERN,
    FIELD_HEAD_PATTERN,
    TYPE_PATTERN,
    INDEX_DIRECTIVE_PATTERN,
    RELATION_DIRECTIVE_PATTERN,
    RELATION_LINE_PATTERN,
    INDEX_LINE_PATTERN,
    KEY_VALUE_PATTERN,
    ENUM_TYPED_VALUE_PATTERN,
    ENUM_ASSIGNED_VALUE_PATTERN,
    ENUM_DESCRIBED_VALUE_PATTERN,
    coerce_value,
    parse_list_value,
    read_default_value,
    skip_to_tags,
    split_parameters,
    strip_quotes,
    tokenize_tags,
)

SubLine = Tuple[int, str]
Entity = Union[Model, Interface]

_BARE_NAME_PATTERN = re.compile(r"^[^\s:=\"'()\[\]@]+$")


@dataclass
class Heading:
    """The parts of a `##` heading line."""

    name: str
    kind: str = M3LSyntax.KIND_MODEL
    label: Optional[str] = None
    inherits: List[str] = field(default_factory=list)
    attributes: List[str] = field(default_factory=list)
    description: Optional[str] = None


def split_heading_description(text: str) -> Tuple[str, Optional[str]]:
    """Split `body # description` at the first `#` outside brackets and quotes."""
    depth = 0
    quote = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == "#" and depth == 0:
            description = text[index + 1:].strip()
            return text[:index].strip(), description or None
    return text.strip(), None


class DocumentParser:
    """
    Builds a Document from the lines held by a ParserContext.

    Malformed clauses go through `context.report`, which raises in strict
    mode and logs in lenient mode. A heading without a name is always
    fatal.
    """

    def __init__(self, context: ParserContext):
        self.context = context
        self.document = Document()
        self._names: set = set()

    # =========================================================================
    # DOCUMENT LEVEL
    # =========================================================================

    def parse(self) -> Document:
        ctx = self.context
        while ctx.has_more:
            if ctx.skip_trivia():
                continue
            stripped = ctx.stripped
            if stripped.startswith(M3LSyntax.SECTION_PREFIX):
                ctx.logger.debug(f"Section outside of a block at line {ctx.line_number}, ignored")
                ctx.advance()
            elif stripped.startswith(M3LSyntax.HEADING_PREFIX):
                self._parse_block()
            elif stripped.startswith(M3LSyntax.TITLE_PREFIX):
                self._parse_title(stripped)
                ctx.advance()
            elif stripped.startswith(M3LSyntax.FIELD_MARKER):
                self._parse_metadata_entry(self.document.metadata, stripped[1:].strip())
                ctx.advance()
            else:
                ctx.advance()
        return self.document

    def _parse_title(self, stripped: str) -> None:
        match = NAMESPACE_PATTERN.match(stripped)
        if match:
            self.document.namespace = match.group("namespace")
            return
        match = TITLE_PATTERN.match(stripped)
        if match and self.document.namespace is None:
            self.document.namespace = match.group("title")

    @staticmethod
    def _is_block_end(stripped: str) -> bool:
        return stripped.startswith(M3LSyntax.TITLE_PREFIX) and not stripped.startswith(M3LSyntax.SECTION_PREFIX)

    def _skip_block(self) -> None:
        ctx = self.context
        while ctx.has_more and not self._is_block_end(ctx.stripped):
            ctx.advance()

    # =========================================================================
    # HEADINGS
    # =========================================================================

    def _parse_block(self) -> None:
        ctx = self.context
        start = ctx.line_number
        ctx.block = None
        heading = self.parse_heading(ctx.stripped[len(M3LSyntax.HEADING_PREFIX):], start)
        ctx.advance()

        if heading is None:
            self._skip_block()
            return

        ctx.block = heading.name
        if heading.kind == M3LSyntax.KIND_ENUM:
            entity = Enum(
                name=heading.name,
                label=heading.label,
                description=heading.description,
                inherits=heading.inherits,
                attributes=heading.attributes,
            )
            self._parse_enum_body(entity)
        else:
            entity_class = Interface if heading.kind == M3LSyntax.KIND_INTERFACE else Model
            entity = entity_class(
                name=heading.name,
                label=heading.label,
                description=heading.description,
                inherits=heading.inherits,
                attributes=heading.attributes,
            )
            self._parse_entity_body(entity)

        entity.line_number = start
        entity.end_line = ctx.last_line_number

        if heading.name in self._names:
            ctx.report(f"Duplicate entity name '{heading.name}'", start)
            ctx.block = None
            return
        self._names.add(heading.name)

        if isinstance(entity, Enum):
            self.document.enums.append(entity)
        elif isinstance(entity, Model):
            self.document.models.append(entity)
        else:
            self.document.interfaces.append(entity)
        ctx.block = None

    def parse_heading(self, text: str, line_number: int) -> Optional[Heading]:
        """
        Parse the text after `##`.

        Returns None when a lenient parse skips the block.
        """
        ctx = self.context
        body, description = split_heading_description(text)

        kind = M3LSyntax.KIND_MODEL
        kinds = KIND_PATTERN.findall(body)
        if kinds:
            kind = kinds[0].lower()
            body = KIND_PATTERN.sub("", body)

        attributes: List[str] = []
        at = body.find("@")
        if at >= 0:
            tokens = tokenize_tags(body[at:])
            attributes = tokens.attributes + [f"[{directive}]" for directive in tokens.directives]
            body = body[:at]

        match = HEADING_NAME_PATTERN.match(body.strip())
        name = match.group("name").strip() if match else re.split(r"[(:]", body, maxsplit=1)[0].strip()
        if not name:
            raise ctx.error("Heading has no entity name", line_number)

        ctx.block = name
        if match is None:
            ctx.report(f"Malformed heading for '{name}'", line_number)
            return None
        if kind not in M3LSyntax.KINDS:
            ctx.report(f"Unknown block kind '::{kind}'", line_number)
            return None
        if re.search(r"\s", name):
            ctx.report(f"Entity name '{name}' contains whitespace", line_number)
            return None

        heading = Heading(name=name, kind=kind, attributes=attributes, description=description)
        label = match.group("label")
        if label is not None and label.strip():
            heading.label = label.strip()

        inherits_text = match.group("inherits")
        if inherits_text is not None:
            heading.inherits = [part.strip() for part in inherits_text.split(",") if part.strip()]
            if not heading.inherits:
                ctx.report(f"Empty inheritance clause for '{name}'", line_number)
        return heading

    # =========================================================================
    # MODEL AND INTERFACE BODIES
    # =========================================================================

    def _parse_entity_body(self, entity: Entity) -> None:
        ctx = self.context
        section = M3LSyntax.SECTION_FIELDS

        while ctx.has_more:
            if ctx.skip_trivia():
                continue
            stripped = ctx.stripped
            if self._is_block_end(stripped):
                break

            if stripped.startswith(M3LSyntax.SECTION_PREFIX):
                section = self._section_name(stripped)
                ctx.advance()
            elif stripped.startswith(M3LSyntax.FIELD_MARKER):
                self._parse_entry(entity, section)
            elif stripped.startswith(M3LSyntax.DESCRIPTION_MARKER):
                self._attach_stray_description(entity, stripped[1:].strip())
                ctx.advance()
            else:
                if entity.description is None:
                    entity.description = stripped
                ctx.advance()

    def _section_name(self, stripped: str) -> str:
        match = SECTION_PATTERN.match(stripped)
        name = match.group("section").strip().lower() if match else ""
        if name in (M3LSyntax.SECTION_RELATIONS, M3LSyntax.SECTION_INDEXES, M3LSyntax.SECTION_METADATA):
            return name
        return M3LSyntax.SECTION_FIELDS

    @staticmethod
    def _attach_stray_description(entity: Entity, text: str) -> None:
        if entity.fields and entity.fields[-1].description is None:
            entity.fields[-1].description = text
        elif entity.description is None:
            entity.description = text

    def _parse_entry(self, entity: Entity, section: str) -> None:
        ctx = self.context
        line_number = ctx.line_number
        indent = indent_of(ctx.line)
        content = ctx.stripped[1:].strip()

        if section == M3LSyntax.SECTION_METADATA:
            self._parse_metadata_entry(entity.metadata, content)
            ctx.advance()
            return

        if section in (M3LSyntax.SECTION_RELATIONS, M3LSyntax.SECTION_INDEXES):
            ctx.advance()
            sub_lines = self._collect_sub_lines(indent)
            if not isinstance(entity, Model):
                ctx.report(f"Interface '{entity.name}' cannot declare {section}", line_number)
            elif section == M3LSyntax.SECTION_RELATIONS:
                self._parse_relation_entry(entity, content, sub_lines, line_number)
            else:
                self._parse_index_entry(entity, content, sub_lines, line_number)
            return

        if content.startswith("@"):
            self._parse_entity_directive(entity, content, line_number)
            ctx.advance()
            return

        self._parse_field_entry(entity, content, indent, line_number)

    def _collect_sub_lines(self, parent_indent: int) -> List[SubLine]:
        """Consume the more-indented `-` lines below an entry."""
        ctx = self.context
        sub_lines: List[SubLine] = []
        while ctx.has_more:
            stripped = ctx.stripped
            if stripped and ctx.is_comment(stripped):
                ctx.advance()
                continue
            if not stripped or not stripped.startswith(M3LSyntax.FIELD_MARKER):
                break
            if indent_of(ctx.line) <= parent_indent:
                break
            sub_lines.append((ctx.line_number, stripped[1:].strip()))
            ctx.advance()
        return sub_lines

    # =========================================================================
    # FIELDS
    # =========================================================================

    def _parse_field_entry(self, entity: Entity, content: str, indent: int, line_number: int) -> None:
        ctx = self.context
        parsed = self.parse_field_line(content, line_number)
        ctx.advance()

        sub_lines = self._collect_sub_lines(indent)
        descriptions = []
        while ctx.has_more and ctx.stripped.startswith(M3LSyntax.DESCRIPTION_MARKER):
            descriptions.append(ctx.stripped[1:].strip())
            ctx.advance()

        if parsed is None:
            return
        if sub_lines:
            self._apply_extended_lines(parsed, sub_lines)
        if descriptions:
            parsed.description = " ".join(descriptions)

        if parsed.type is None:
            ctx.report(f"Field '{parsed.name}' has no type", line_number)
            return
        if entity.get_field(parsed.name) is not None:
            ctx.report(f"Duplicate field '{parsed.name}'", line_number)
            return

        parsed.line_number = line_number
        parsed.end_line = ctx.last_line_number
        entity.fields.append(parsed)

    def parse_field_line(self, content: str, line_number: int) -> Optional[Field]:
        """
        Parse `name(Label): Type?(len) = default @tags [Directives]`.

        A bare `name` yields a field without a type, to be completed by
        extended sub-lines.
        """
        match = FIELD_HEAD_PATTERN.match(content)
        if not match:
            self.context.report(f"Malformed field line '{content}'", line_number)
            return None

        label = match.group("label")
        parsed = Field(name=match.group("name"), label=label.strip() if label and label.strip() else None)
        rest = match.group("rest")
        if rest is None:
            return parsed
        if not self._apply_field_definition(parsed, rest, line_number):
            return None
        return parsed

    def _apply_field_definition(self, parsed: Field, text: str, line_number: int) -> bool:
        ctx = self.context
        text = text.strip()
        type_match = TYPE_PATTERN.match(text)
        if not type_match:
            ctx.report(f"Field '{parsed.name}' has no readable type", line_number)
            return False

        parsed.type = type_match.group("type")
        length = type_match.group("length")
        parsed.length = length.strip() if length and length.strip() else None
        parsed.is_nullable = bool(type_match.group("nullable_before") or type_match.group("nullable_after"))

        remainder = text[type_match.end():].strip()
        if remainder.startswith("="):
            default = read_default_value(remainder[1:])
            if default is None:
                ctx.report(f"Unparsable default value for field '{parsed.name}'", line_number)
                remainder = skip_to_tags(remainder)
            else:
                parsed.default_value, remainder = default

        self._apply_tags(parsed, remainder, line_number)
        return True

    def _apply_tags(self, parsed: Field, text: str, line_number: int) -> None:
        tokens = tokenize_tags(text)
        for error in tokens.errors:
            self.context.report(error, line_number)
        parsed.attributes.extend(tokens.attributes)
        parsed.framework_attributes.extend(tokens.directives)

    def _apply_extended_lines(self, parsed: Field, sub_lines: List[SubLine]) -> None:
        for line_number, item in sub_lines:
            if item.startswith(("[", "@")):
                self._apply_tags(parsed, item, line_number)
                continue

            match = KEY_VALUE_PATTERN.match(item)
            if not match:
                parsed.attributes.append(item)
                continue

            key = match.group("key").strip()
            value = match.group("value").strip()
            lowered = key.lower()
            if lowered == "type":
                self._apply_field_definition(parsed, value, line_number)
            elif lowered == "description":
                parsed.description = strip_quotes(value)
            elif lowered == "default":
                parsed.default_value = strip_quotes(value)
            elif lowered == "label":
                parsed.label = strip_quotes(value)
            else:
                parsed.attributes.append(f"@{key}({value})")

    # =========================================================================
    # MODEL-LEVEL DIRECTIVES, RELATIONS AND INDEXES
    # =========================================================================

    def _parse_entity_directive(self, entity: Entity, content: str, line_number: int) -> None:
        ctx = self.context
        lowered = content.lower()

        if lowered.startswith(("@index", "@unique(")):
            match = INDEX_DIRECTIVE_PATTERN.match(content)
            if not match:
                ctx.report(f"Malformed index directive '{content}'", line_number)
                return
            if not isinstance(entity, Model):
                ctx.report(f"Interface '{entity.name}' cannot declare indexes", line_number)
                return
            index = self._index_from_directive(match)
            if index is None:
                ctx.report(f"Index directive without fields '{content}'", line_number)
                return
            entity.indexes.append(index)
            return

        if lowered.startswith("@relation"):
            match = RELATION_DIRECTIVE_PATTERN.match(content)
            params = split_parameters(match.group("params")) if match else []
            if not params:
                ctx.report(f"Malformed relation directive '{content}'", line_number)
                return
            if not isinstance(entity, Model):
                ctx.report(f"Interface '{entity.name}' cannot declare relations", line_number)
                return
            entity.relations.append(self._relation_from_directive(params, match.group("description")))
            return

        tokens = tokenize_tags(content)
        for error in tokens.errors:
            ctx.report(error, line_number)
        entity.attributes.extend(tokens.attributes)
        entity.attributes.extend(f"[{directive}]" for directive in tokens.directives)

    @staticmethod
    def _index_from_directive(match) -> Optional[Index]:
        is_unique = match.group("kind").lower() == "unique"
        fields: List[str] = []
        name = None
        for param in split_parameters(match.group("params")):
            key, sep, value = param.partition(":")
            if sep and key.strip().lower() == "name":
                name = strip_quotes(value)
            else:
                fields.append(strip_quotes(param))
        if not fields:
            return None
        if name is None:
            joined = "_".join(fields)
            name = f"{M3LSyntax.UNIQUE_INDEX_PREFIX}{joined}" if is_unique else joined
        return Index(name=name, fields=fields, is_unique=is_unique, description=match.group("description"))

    @staticmethod
    def _relation_from_directive(params: List[str], description: Optional[str]) -> Relation:
        relation = Relation(name=strip_quotes(params[0]), description=description)
        for param in params[1:]:
            if param.startswith("->"):
                relation.target = param[2:].strip()
                relation.is_to_one = True
                continue
            if param.startswith("<-"):
                relation.target = param[2:].strip()
                relation.is_to_one = False
                continue
            key, _, value = param.partition(":")
            _assign_relation_property(relation, key.strip(), strip_quotes(value))
        return relation

    def _parse_relation_entry(self, model: Model, content: str, sub_lines: List[SubLine], line_number: int) -> None:
        ctx = self.context
        match = RELATION_LINE_PATTERN.match(content)
        if not match:
            ctx.report(f"Malformed relation '{content}'", line_number)
            return

        relation = Relation(
            name=match.group("name"),
            is_to_one=match.group("direction") == ">",
            description=match.group("description"),
        )
        for sub_number, item in sub_lines:
            kv = KEY_VALUE_PATTERN.match(item)
            if not kv:
                ctx.report(f"Malformed relation property '{item}'", sub_number)
                continue
            _assign_relation_property(relation, kv.group("key").strip(), strip_quotes(kv.group("value")))
        model.relations.append(relation)

    def _parse_index_entry(self, model: Model, content: str, sub_lines: List[SubLine], line_number: int) -> None:
        ctx = self.context
        match = INDEX_LINE_PATTERN.match(content)
        if not match:
            ctx.report(f"Malformed index '{content}'", line_number)
            return

        description = match.group("description")
        index = Index(name=match.group("name"), description=description.strip() if description else None)
        for sub_number, item in sub_lines:
            kv = KEY_VALUE_PATTERN.match(item)
            if not kv:
                ctx.report(f"Malformed index property '{item}'", sub_number)
                continue
            key = kv.group("key").strip().lower()
            value = kv.group("value")
            if key == "fields":
                index.fields = parse_list_value(value)
            elif key == "unique":
                index.is_unique = coerce_value(value) is True
            elif key == "fulltext":
                index.is_fulltext = coerce_value(value) is True
            else:
                ctx.logger.debug(f"Unknown index property '{key}' on '{index.name}' ignored")

        if not index.fields:
            ctx.report(f"Index '{index.name}' has no fields", line_number)
            return
        model.indexes.append(index)

    @staticmethod
    def _parse_metadata_entry(metadata: dict, content: str) -> None:
        match = KEY_VALUE_PATTERN.match(content)
        if match:
            metadata[match.group("key").strip()] = coerce_value(match.group("value"))
        elif content:
            metadata[content] = True

    # =========================================================================
    # ENUMS
    # =========================================================================

    def _parse_enum_body(self, enum: Enum) -> None:
        ctx = self.context
        group: Optional[str] = None
        group_indent = -1

        while ctx.has_more:
            if ctx.skip_trivia():
                continue
            stripped = ctx.stripped
            if self._is_block_end(stripped):
                break
            if stripped.startswith(M3LSyntax.SECTION_PREFIX):
                ctx.advance()
                continue
            if not stripped.startswith(M3LSyntax.FIELD_MARKER):
                if enum.description is None:
                    enum.description = stripped
                ctx.advance()
                continue

            line_number = ctx.line_number
            indent = indent_of(ctx.line)
            content = stripped[1:].strip()
            if group is not None and indent <= group_indent:
                group = None

            value = self.parse_enum_value(content)
            if value is None:
                if not _BARE_NAME_PATTERN.match(content):
                    ctx.report(f"Malformed enum value '{content}'", line_number)
                    ctx.advance()
                    continue
                following = ctx.peek_meaningful(ctx.index + 1)
                if (
                    following is not None
                    and following.strip().startswith(M3LSyntax.FIELD_MARKER)
                    and indent_of(following) > indent
                ):
                    group, group_indent = content, indent
                    ctx.advance()
                    continue
                value = EnumValue(name=content)

            if enum_value_exists(enum, value.name):
                ctx.report(f"Duplicate enum value '{value.name}'", line_number)
            else:
                value.group = group
                enum.values.append(value)
            ctx.advance()

    @staticmethod
    def parse_enum_value(content: str) -> Optional[EnumValue]:
        """Parse one enum value line; None for a bare name."""
        match = ENUM_TYPED_VALUE_PATTERN.match(content)
        if match:
            return EnumValue(
                name=match.group("name"),
                type=match.group("type"),
                value=match.group("value"),
                description=match.group("description") or match.group("paren_description"),
            )
        match = ENUM_ASSIGNED_VALUE_PATTERN.match(content)
        if match:
            return EnumValue(
                name=match.group("name"),
                value=match.group("value"),
                description=match.group("description") or match.group("paren_description"),
            )
        match = ENUM_DESCRIBED_VALUE_PATTERN.match(content)
        if match:
            description = match.group("description")
            if description is None:
                description = match.group("bare_description") or None
            return EnumValue(name=match.group("name"), description=description)
        return None


def enum_value_exists(enum: Enum, name: str) -> bool:
    return any(value.name == name for value in enum.values)


def _assign_relation_property(relation: Relation, key: str, value: str) -> None:
    lowered = key.lower().replace("_", "")
    if lowered == "target":
        relation.target = value
    elif lowered == "from":
        relation.from_field = value
    elif lowered == "ondelete":
        relation.on_delete = value
    elif lowered == "onupdate":
        relation.on_update = value
    else:
        relation.metadata[key] = value
