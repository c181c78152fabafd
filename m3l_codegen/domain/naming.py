"""
Naming convention utilities for M3L Codegen.

Conversions between the casing styles M3L authors use and the ones the
targets expect: PascalCase entity names, camelCase field names,
snake_case file names and pluralized table names.
"""

import re

import inflect


# Initialize inflect engine for pluralization
p = inflect.engine()

_WORD_SPLIT_PATTERN = re.compile(r"[\s_\-]+")


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase or PascalCase to snake_case.

    Args:
        name: The string to convert to snake_case

    Returns:
        The converted snake_case string

    Example:
        >>> to_snake_case("UserAccount")
        'user_account'
        >>> to_snake_case("XMLHttpRequest")
        'xml_http_request'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")

    name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    name = re.sub("__([A-Z])", r"_\1", name)
    name = re.sub("([a-z0-9])([A-Z])", r"\1_\2", name)
    return _WORD_SPLIT_PATTERN.sub("_", name).lower()


def _split_words(name: str):
    return [word for word in to_snake_case(name).split("_") if word]


def to_pascal_case(name: str, singularize: bool = False) -> str:
    """
    Convert any casing to PascalCase.

    Args:
        name: The string to convert
        singularize: Singularize the result first (table name -> entity name)

    Example:
        >>> to_pascal_case("order_line")
        'OrderLine'
        >>> to_pascal_case("categories", singularize=True)
        'Category'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")

    if singularize:
        singular_name = p.singular_noun(name)
        if singular_name:  # inflect returns False if already singular
            name = singular_name

    return "".join(word[0].upper() + word[1:] for word in _split_words(name))


def to_camel_case(name: str) -> str:
    """
    Convert any casing to camelCase.

    Example:
        >>> to_camel_case("created_at")
        'createdAt'
    """
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def pluralize(word: str) -> str:
    """Plural form of the last word of an identifier, keeping its casing."""
    if not isinstance(word, str) or not word:
        return ""
    plural = p.plural(word)
    return plural if plural else word + "s"


def normalize_entity_name(name: str) -> str:
    """Entity names (models, interfaces, enums) are PascalCase."""
    return to_pascal_case(name) or name


def normalize_field_name(name: str) -> str:
    """Field names are camelCase."""
    return to_camel_case(name) or name


def table_name_for(model_name: str, pluralize_names: bool = False) -> str:
    """
    SQL table name for a model.

    Args:
        model_name: Entity name as written in M3L
        pluralize_names: Pluralize the name ("User" -> "Users")
    """
    return pluralize(model_name) if pluralize_names else model_name


def is_valid_identifier(name: str) -> bool:
    """Check that a name can be used as an identifier in every target."""
    return bool(name) and name.isidentifier()
