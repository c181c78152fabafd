"""
Parsing package for M3L Codegen.

Structural parsing of M3L text, the attribute parser chain for bracketed
directives, and the writer that turns a Document back into M3L.
"""

from .m3l_parser import M3LParser, normalize_document_names
from .document_parser import DocumentParser
from .context import ParserContext
from .attributes import (
    AttributeParser,
    AttributeParserChain,
    AttributeParserProtocol,
    DefaultAttributeParser,
    ReferenceAttributeParser,
    DataTypeAttributeParser,
    SqlValueAttributeParser,
    DisplayAttributeParser,
    default_attribute_parsers,
)
from .writer import format_document

__all__ = [
    # Structural parser
    'M3LParser',
    'DocumentParser',
    'ParserContext',
    'normalize_document_names',

    # Attribute chain
    'AttributeParser',
    'AttributeParserChain',
    'AttributeParserProtocol',
    'DefaultAttributeParser',
    'ReferenceAttributeParser',
    'DataTypeAttributeParser',
    'SqlValueAttributeParser',
    'DisplayAttributeParser',
    'default_attribute_parsers',

    # Writer
    'format_document',
]
