"""
Entry point of the structural parser.

M3LParser applies the configured hooks around DocumentParser and handles
name normalization. It knows nothing about enrichment or targets.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from ..config import ParserOptions
from ..constants import DefaultConfig
from ..domain.models import Document, REFERENCE_TAG_PATTERN
from ..domain.naming import normalize_entity_name, normalize_field_name
from ..exceptions import ParseError
from .context import ParserContext
from .document_parser import DocumentParser


class M3LParser:
    """
    Parse M3L text into a Document.

    Example:
        >>> parser = M3LParser(ParserOptions(strict_mode=True))
        >>> document = parser.parse("## User\\n- id: int @primary")
        >>> document.models[0].fields[0].is_primary_key
        True
    """

    def __init__(self, options: Optional[ParserOptions] = None, logger: Optional[logging.Logger] = None):
        self.options = options or ParserOptions()
        self.logger = logger or logging.getLogger(__name__)
        self.warnings = []
        self.last_source = ""

    def parse(self, content: str) -> Document:
        """
        Parse source text.

        Raises:
            ParseError: on a nameless heading, or on any malformed clause in strict mode
        """
        if self.options.pre_process is not None:
            content = self.options.pre_process(content)

        self.last_source = content
        context = ParserContext(content, strict=self.options.strict_mode, logger=self.logger)
        document = DocumentParser(context).parse()
        self.warnings = list(context.warnings)

        if self.options.normalize_names:
            normalize_document_names(document)

        if self.options.post_process is not None:
            replacement = self.options.post_process(document)
            if isinstance(replacement, Document):
                document = replacement

        self.logger.debug(
            f"Parsed {len(document.models)} models, {len(document.interfaces)} interfaces "
            f"and {len(document.enums)} enums ({len(self.warnings)} warnings)"
        )
        return document

    def parse_file(self, path: Union[str, Path]) -> Document:
        """Read a UTF-8 model file and parse it."""
        path = Path(path)
        try:
            content = path.read_text(encoding=DefaultConfig.ENCODING)
        except OSError as e:
            raise ParseError(
                f"Cannot read model file: {e}",
                context={'file': str(path)},
                suggestions=["Check the path in the settings file", "Check file permissions"],
            ) from e
        self.logger.info(f"Parsing {path}")
        return self.parse(content)


def normalize_document_names(document: Document) -> None:
    """
    Rewrite entity names to PascalCase and field names to camelCase.

    Field types naming an entity, inheritance lists, index field lists,
    relation targets and `@reference(...)` targets are rewritten with the
    same rules so they keep pointing at the renamed entities.
    """
    entities = document.models + document.interfaces + document.enums
    renamed = {entity.name: normalize_entity_name(entity.name) for entity in entities}
    for entity in entities:
        entity.name = renamed[entity.name]

    for entity in document.models + document.interfaces:
        entity.inherits = [normalize_entity_name(name) for name in entity.inherits]
        for item in entity.fields:
            item.name = normalize_field_name(item.name)
            if item.type in renamed:
                item.type = renamed[item.type]
            item.attributes = [_normalize_reference(attr) for attr in item.attributes]

    for model in document.models:
        for index in model.indexes:
            index.fields = [normalize_field_name(name) for name in index.fields]
        for relation in model.relations:
            if relation.target:
                relation.target = normalize_entity_name(relation.target)
            if relation.from_field:
                relation.from_field = normalize_field_name(relation.from_field)


def _normalize_reference(attribute: str) -> str:
    match = REFERENCE_TAG_PATTERN.match(attribute)
    if not match or not match.group(1):
        return attribute
    target = normalize_entity_name(match.group(1).strip("\"'"))
    return re.sub(r"\(.*\)", f"({target})", attribute, count=1)
