"""
Semantic enrichment processors.

Each processor is one pass over an EnrichedDocument that fills the
per-field `extended_metadata` side table. Processors never touch the
parsed structure, never raise for a well-formed document and can be run
again without changing the result. Directive-driven processors run before
the naming heuristics, which only fill gaps.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .constants import (
    DataTypeHints,
    DefaultConfig,
    DirectiveNames,
    MetadataKeys,
    TEXT_TYPES,
    DATE_TIME_TYPES,
)
from .domain.enriched import EnrichedDocument, EnrichedField


class ModelProcessor(ABC):
    """Base class for enrichment passes."""

    name: str = "processor"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def process(self, document: EnrichedDocument) -> None:
        """Populate extended metadata for every model and interface field."""
        pass


class FieldProcessor(ModelProcessor):
    """A processor that looks at one field at a time."""

    def process(self, document: EnrichedDocument) -> None:
        count = 0
        for enriched_field in document.iter_fields():
            self.process_field(enriched_field)
            count += 1
        self.logger.debug(f"{self.name}: processed {count} fields")

    @abstractmethod
    def process_field(self, enriched_field: EnrichedField) -> None:
        pass


class FrameworkAttributeProcessor(FieldProcessor):
    """
    Map parsed directives to metadata keys.

    `[DataType(X)]` sets DataType, `[Display("x")]` sets DisplayName,
    `[Insert(...)]` / `[Update(...)]` set InsertValue / UpdateValue, and
    the flag directives (JsonIgnore, Computed, Sensitive, ExcludeFromDto,
    ReadOnly, Without) set booleans. When two directives set the same key,
    the later one wins.
    """

    name = "framework-attributes"

    VALUE_KEYS = {
        DirectiveNames.DATA_TYPE.lower(): MetadataKeys.DATA_TYPE,
        DirectiveNames.DISPLAY.lower(): MetadataKeys.DISPLAY_NAME,
        DirectiveNames.INSERT.lower(): MetadataKeys.INSERT_VALUE,
        DirectiveNames.UPDATE.lower(): MetadataKeys.UPDATE_VALUE,
    }
    FLAG_KEYS = {name.lower(): key for name, key in DirectiveNames.FLAGS.items()}

    def process_field(self, enriched_field: EnrichedField) -> None:
        for attribute in enriched_field.framework_attributes:
            directive = attribute.name.lower()
            if directive in self.FLAG_KEYS:
                enriched_field.extended_metadata[self.FLAG_KEYS[directive]] = True
            elif directive in self.VALUE_KEYS and attribute.parameters:
                enriched_field.extended_metadata[self.VALUE_KEYS[directive]] = attribute.parameters[0]


class ReferenceAttributeProcessor(FieldProcessor):
    """
    Cascade behaviour of `@reference(X)` fields.

    OnDelete defaults to CASCADE; an `[OnDelete(...)]` directive replaces
    the default and `[ForeignKey(name)]` records a custom constraint name.
    """

    name = "reference-attributes"

    def process_field(self, enriched_field: EnrichedField) -> None:
        if not enriched_field.is_reference:
            return
        metadata = enriched_field.extended_metadata
        metadata[MetadataKeys.REFERENCE_TARGET] = enriched_field.reference_target
        metadata.setdefault(MetadataKeys.ON_DELETE, DefaultConfig.ON_DELETE)

        on_delete = enriched_field.get_attribute(DirectiveNames.ON_DELETE)
        if on_delete is not None and on_delete.parameters:
            metadata[MetadataKeys.ON_DELETE] = on_delete.parameters[0]

        foreign_key = enriched_field.get_attribute(DirectiveNames.FOREIGN_KEY)
        if foreign_key is not None and foreign_key.parameters:
            metadata[MetadataKeys.FOREIGN_KEY_NAME] = foreign_key.parameters[0]


class NamingConventionProcessor(FieldProcessor):
    """
    Data-type hints guessed from field names.

    Only fills DataType when no directive set it, and only sets Sensitive
    on password fields when it is not already present.
    """

    name = "naming-conventions"

    def process_field(self, enriched_field: EnrichedField) -> None:
        metadata = enriched_field.extended_metadata
        if MetadataKeys.DATA_TYPE in metadata:
            return

        hint = self.guess_data_type(enriched_field.name, enriched_field.type)
        if hint is None:
            return
        metadata[MetadataKeys.DATA_TYPE] = hint
        if hint == DataTypeHints.PASSWORD:
            metadata.setdefault(MetadataKeys.SENSITIVE, True)

    @staticmethod
    def guess_data_type(field_name: str, field_type: Optional[str]) -> Optional[str]:
        name = (field_name or "").lower()
        type_name = (field_type or "").lower()

        if "password" in name and type_name in TEXT_TYPES:
            return DataTypeHints.PASSWORD
        if "email" in name:
            return DataTypeHints.EMAIL_ADDRESS
        if "phone" in name:
            return DataTypeHints.PHONE_NUMBER
        if "url" in name or "uri" in name:
            return DataTypeHints.URL
        if type_name in DATE_TIME_TYPES:
            if "date" in name and "time" not in name:
                return DataTypeHints.DATE
            return DataTypeHints.DATE_TIME
        return None


def default_processors(logger: Optional[logging.Logger] = None) -> List[ModelProcessor]:
    """Directive-driven processors first, heuristics last."""
    return [
        FrameworkAttributeProcessor(logger),
        ReferenceAttributeProcessor(logger),
        NamingConventionProcessor(logger),
    ]


def run_processors(document: EnrichedDocument, processors: Iterable[ModelProcessor]) -> None:
    """Run processors in the given order."""
    for processor in processors:
        processor.process(document)
