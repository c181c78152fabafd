"""
Centralized constants for M3L Codegen.

Metadata keys, directive names, type families and target type mappings
live here so parsers, processors and builders agree on spelling.
"""

from typing import Dict, FrozenSet


# =============================================================================
# CORE CONFIGURATION
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    OUTPUT_DIR = "./generated"
    SQL_SCHEMA_NAME = "dbo"
    TYPESCRIPT_FILE_NAME = "models.ts"
    ENCODING = "utf-8"

    # Reference fields without an explicit OnDelete directive
    ON_DELETE = "CASCADE"


class MetadataKeys:
    """Keys of the per-field extended metadata side table."""

    DATA_TYPE = "DataType"
    JSON_IGNORE = "JsonIgnore"
    COMPUTED = "Computed"
    SENSITIVE = "Sensitive"
    EXCLUDE_FROM_DTO = "ExcludeFromDto"
    READ_ONLY = "ReadOnly"
    DISPLAY_NAME = "DisplayName"

    ON_DELETE = "OnDelete"
    FOREIGN_KEY_NAME = "ForeignKeyName"
    REFERENCE_TARGET = "ReferenceTarget"

    INSERT_VALUE = "InsertValue"
    UPDATE_VALUE = "UpdateValue"
    EXCLUDE_FROM_GENERATION = "ExcludeFromGeneration"

    # Provenance
    INHERITED_FROM_CLASS = "InheritedFromClass"
    IMPLEMENTED_FROM_INTERFACE = "ImplementedFromInterface"


class DirectiveNames:
    """Bracketed directive names with meaning to the toolchain."""

    DATA_TYPE = "DataType"
    JSON_IGNORE = "JsonIgnore"
    COMPUTED = "Computed"
    SENSITIVE = "Sensitive"
    EXCLUDE_FROM_DTO = "ExcludeFromDto"
    READ_ONLY = "ReadOnly"
    DISPLAY = "Display"

    ON_DELETE = "OnDelete"
    FOREIGN_KEY = "ForeignKey"

    INSERT = "Insert"
    UPDATE = "Update"
    WITHOUT = "Without"

    # Directive name -> boolean metadata key
    FLAGS: Dict[str, str] = {
        JSON_IGNORE: MetadataKeys.JSON_IGNORE,
        COMPUTED: MetadataKeys.COMPUTED,
        SENSITIVE: MetadataKeys.SENSITIVE,
        EXCLUDE_FROM_DTO: MetadataKeys.EXCLUDE_FROM_DTO,
        READ_ONLY: MetadataKeys.READ_ONLY,
        WITHOUT: MetadataKeys.EXCLUDE_FROM_GENERATION,
    }


class DataTypeHints:
    """Values stored under MetadataKeys.DATA_TYPE by naming heuristics."""

    PASSWORD = "Password"
    EMAIL_ADDRESS = "EmailAddress"
    PHONE_NUMBER = "PhoneNumber"
    URL = "Url"
    DATE = "Date"
    DATE_TIME = "DateTime"


# =============================================================================
# M3L LANGUAGE
# =============================================================================

class M3LSyntax:
    """Tokens of the M3L definition language."""

    TITLE_PREFIX = "#"
    HEADING_PREFIX = "##"
    SECTION_PREFIX = "###"
    FIELD_MARKER = "-"
    DESCRIPTION_MARKER = ">"
    COMMENT_PREFIXES = ("//", "<!--", "-->")

    KIND_MODEL = "model"
    KIND_INTERFACE = "interface"
    KIND_ENUM = "enum"
    KINDS = (KIND_MODEL, KIND_INTERFACE, KIND_ENUM)

    SECTION_FIELDS = "fields"
    SECTION_RELATIONS = "relations"
    SECTION_INDEXES = "indexes"
    SECTION_METADATA = "metadata"

    ABSTRACT_TAG = "@abstract"
    DEFAULT_TAG = "@default"
    PRIMARY_TAG = "@primary"
    UNIQUE_TAG = "@unique"
    REFERENCE_TAG = "@reference"

    UNIQUE_INDEX_PREFIX = "UK_"


TEXT_TYPES: FrozenSet[str] = frozenset({"string", "text"})
DATE_TIME_TYPES: FrozenSet[str] = frozenset({"datetime", "timestamp", "date"})


# =============================================================================
# TARGET TYPE MAPPINGS
# =============================================================================

class SqlTypes:
    """M3L type name (lower case) -> SQL Server column type."""

    MAPPING: Dict[str, str] = {
        "string": "NVARCHAR",
        "text": "NVARCHAR(MAX)",
        "int": "INT",
        "integer": "INT",
        "long": "BIGINT",
        "bigint": "BIGINT",
        "short": "SMALLINT",
        "byte": "TINYINT",
        "bool": "BIT",
        "boolean": "BIT",
        "decimal": "DECIMAL",
        "money": "DECIMAL(19, 4)",
        "float": "FLOAT",
        "double": "FLOAT",
        "date": "DATE",
        "time": "TIME",
        "datetime": "DATETIME2",
        "timestamp": "DATETIME2",
        "guid": "UNIQUEIDENTIFIER",
        "uuid": "UNIQUEIDENTIFIER",
        "binary": "VARBINARY",
        "json": "NVARCHAR(MAX)",
    }

    # Types that accept a (length) suffix
    SIZED = frozenset({"NVARCHAR", "DECIMAL", "VARBINARY"})
    DEFAULT_STRING_LENGTH = "255"
    FALLBACK = "NVARCHAR(MAX)"


class TypeScriptTypes:
    """M3L type name (lower case) -> TypeScript type."""

    MAPPING: Dict[str, str] = {
        "string": "string",
        "text": "string",
        "guid": "string",
        "uuid": "string",
        "int": "number",
        "integer": "number",
        "long": "number",
        "bigint": "number",
        "short": "number",
        "byte": "number",
        "decimal": "number",
        "money": "number",
        "float": "number",
        "double": "number",
        "bool": "boolean",
        "boolean": "boolean",
        "date": "Date",
        "time": "string",
        "datetime": "Date",
        "timestamp": "Date",
        "json": "unknown",
        "binary": "Uint8Array",
    }

    FALLBACK = "unknown"
