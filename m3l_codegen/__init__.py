"""
M3L Codegen.

Parses M3L (Meta Model Markup Language) model definitions, enriches them
with framework metadata, resolves inheritance and feeds the result to
target builders (SQL Server DDL, TypeScript models).
"""

from .config import ParserOptions
from .domain import Document, EnrichedDocument, InheritanceResolver
from .exceptions import (
    M3LCodegenError,
    ParseError,
    ConfigurationError,
    InheritanceError,
    BuilderError,
)
from .parsing import M3LParser, AttributeParserChain, format_document
from .pipeline import M3LPipeline, build_enriched_document

__version__ = "0.1.0"

__all__ = [
    'ParserOptions',
    'Document',
    'EnrichedDocument',
    'InheritanceResolver',
    'M3LCodegenError',
    'ParseError',
    'ConfigurationError',
    'InheritanceError',
    'BuilderError',
    'M3LParser',
    'AttributeParserChain',
    'format_document',
    'M3LPipeline',
    'build_enriched_document',
    '__version__',
]
