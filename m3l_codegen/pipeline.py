"""
Front-end pipeline: parse, enrich, resolve.

M3LPipeline runs the stages strictly in order and hands back a completed
EnrichedDocument. Each run builds its own wrappers and its own resolver,
so documents from separate runs share no state.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .colored_logging import log_progress, log_success
from .config import ParserOptions
from .domain.enriched import (
    EnrichedDocument,
    EnrichedEnum,
    EnrichedField,
    EnrichedInterface,
    EnrichedModel,
)
from .domain.inheritance import InheritanceResolver
from .domain.models import Document, Field
from .parsing.attributes import AttributeParserChain, AttributeParserProtocol
from .parsing.m3l_parser import M3LParser
from .processors import ModelProcessor, default_processors, run_processors


class M3LPipeline:
    """
    Orchestrates the front end.

    Args:
        options: Parser options (hooks, strict mode, normalization, resolution flag)
        attribute_parsers: Directive parsers in priority order (default ordering if None)
        processors: Enrichment passes in run order (default ordering if None)
        apply_default_inheritance: Let models inherit from the `@default` model
        strict_inheritance: Raise on inheritance cycles and unknown bases
        logger: Diagnostics sink shared by every stage
    """

    def __init__(
        self,
        options: Optional[ParserOptions] = None,
        attribute_parsers: Optional[Sequence[AttributeParserProtocol]] = None,
        processors: Optional[Sequence[ModelProcessor]] = None,
        apply_default_inheritance: bool = True,
        strict_inheritance: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.options = options or ParserOptions()
        self.logger = logger or logging.getLogger(__name__)
        self.parser = M3LParser(self.options, logger=self.logger)
        self.attribute_chain = AttributeParserChain(attribute_parsers, logger=self.logger)
        self.processors = list(processors) if processors is not None else default_processors(self.logger)
        self.apply_default_inheritance = apply_default_inheritance
        self.strict_inheritance = strict_inheritance

    def run(self, content: str) -> EnrichedDocument:
        """Parse, enrich and resolve source text."""
        log_progress(self.logger, "Parsing model definitions...")
        document = self.parser.parse(content)
        return self.enrich(document, self.parser.last_source)

    def run_file(self, path: Union[str, Path]) -> EnrichedDocument:
        path = Path(path)
        log_progress(self.logger, f"Parsing model definitions from {path}...")
        document = self.parser.parse_file(path)
        return self.enrich(document, self.parser.last_source)

    def enrich(self, document: Document, raw_text: str = "") -> EnrichedDocument:
        """Wrap a parsed Document, run the processors and resolve inheritance."""
        enriched = wrap_document(document, raw_text, self.attribute_chain)

        self.logger.debug(f"Enriching with {len(self.processors)} processors")
        run_processors(enriched, self.processors)

        enriched.resolver = InheritanceResolver(
            enriched,
            strict=self.strict_inheritance,
            apply_default_inheritance=self.apply_default_inheritance,
            logger=self.logger,
        )
        if self.options.resolve_inheritance:
            log_progress(self.logger, "Resolving inheritance...")
            enriched.resolved_fields = enriched.resolver.resolve_all()

        enriched.completed = True
        log_success(
            self.logger,
            f"Model definitions complete: {len(enriched.models)} models, "
            f"{len(enriched.interfaces)} interfaces, {len(enriched.enums)} enums",
        )
        return enriched


def _source_text(lines: List[str], start: Optional[int], end: Optional[int]) -> str:
    if start is None or not lines:
        return ""
    end = end if end is not None else start
    return "\n".join(lines[start - 1:end]).rstrip()


def _wrap_fields(fields: List[Field], lines: List[str], chain: AttributeParserChain) -> List[EnrichedField]:
    return [
        EnrichedField(
            base=item,
            framework_attributes=chain.parse_all(item.framework_attributes),
            raw_text=_source_text(lines, item.line_number, item.end_line),
        )
        for item in fields
    ]


def wrap_document(document: Document, raw_text: str, chain: AttributeParserChain) -> EnrichedDocument:
    """Create the enriched wrappers for one run, parsing every field directive."""
    lines = raw_text.splitlines()
    return EnrichedDocument(
        base=document,
        models=[
            EnrichedModel(
                base=model,
                fields=_wrap_fields(model.fields, lines, chain),
                raw_text=_source_text(lines, model.line_number, model.end_line),
            )
            for model in document.models
        ],
        interfaces=[
            EnrichedInterface(
                base=interface,
                fields=_wrap_fields(interface.fields, lines, chain),
                raw_text=_source_text(lines, interface.line_number, interface.end_line),
            )
            for interface in document.interfaces
        ],
        enums=[
            EnrichedEnum(base=enum, raw_text=_source_text(lines, enum.line_number, enum.end_line))
            for enum in document.enums
        ],
        raw_text=raw_text,
    )


def build_enriched_document(
    content: str,
    options: Optional[ParserOptions] = None,
    logger: Optional[logging.Logger] = None,
) -> EnrichedDocument:
    """Run the default pipeline over source text."""
    return M3LPipeline(options, logger=logger).run(content)
