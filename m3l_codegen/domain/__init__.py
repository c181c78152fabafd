"""
Domain module for M3L Codegen.

Parsed document records, their enriched wrappers, naming helpers and the
inheritance resolver. Nothing here depends on a particular output target.
"""

from .models import (
    Document,
    Model,
    Interface,
    Enum,
    EnumValue,
    Field,
    Relation,
    Index,
    GenerationResult,
)

from .enriched import (
    FrameworkAttribute,
    EnrichedField,
    EnrichedModel,
    EnrichedInterface,
    EnrichedEnum,
    EnrichedDocument,
)

from .inheritance import InheritanceResolver

from .naming import (
    to_snake_case,
    to_pascal_case,
    to_camel_case,
    pluralize,
    normalize_entity_name,
    normalize_field_name,
    table_name_for,
    is_valid_identifier,
)

__all__ = [
    # Parsed records
    'Document',
    'Model',
    'Interface',
    'Enum',
    'EnumValue',
    'Field',
    'Relation',
    'Index',
    'GenerationResult',

    # Enriched wrappers
    'FrameworkAttribute',
    'EnrichedField',
    'EnrichedModel',
    'EnrichedInterface',
    'EnrichedEnum',
    'EnrichedDocument',

    # Resolution
    'InheritanceResolver',

    # Naming
    'to_snake_case',
    'to_pascal_case',
    'to_camel_case',
    'pluralize',
    'normalize_entity_name',
    'normalize_field_name',
    'table_name_for',
    'is_valid_identifier',
]
