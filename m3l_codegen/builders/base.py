"""
Target builder infrastructure.

A builder turns a completed EnrichedDocument into files for one target.
Builders register themselves by type name; configuration is a pydantic
model per builder so settings-file entries are validated before a build
starts. Output directories are wiped and recreated on every run unless
the builder config says otherwise.
"""

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..constants import DefaultConfig
from ..domain.enriched import EnrichedDocument
from ..domain.models import GenerationResult
from ..domain.naming import pluralize, to_camel_case, to_pascal_case, to_snake_case
from ..exceptions import BuilderError

logger = logging.getLogger(__name__)

# Define the path to the templates directory relative to this package
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def setup_jinja_env() -> Environment:
    """Sets up and returns the Jinja2 environment shared by all builders."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["pluralize"] = pluralize
    env.filters["snake_case"] = to_snake_case
    env.filters["pascal_case"] = to_pascal_case
    env.filters["camel_case"] = to_camel_case
    return env


class BuilderConfig(BaseModel):
    """Settings shared by every builder."""

    output_dir: str = Field(DefaultConfig.OUTPUT_DIR, min_length=1)
    clear_output_dir: bool = Field(
        default=True, description="Remove the output directory before writing."
    )

    model_config = ConfigDict(extra="forbid")


def prepare_output_dir(path: Path, clear: bool = True) -> Path:
    """Wipe-and-recreate (or just create) an output directory."""
    if clear and path.exists():
        logger.debug(f"Clearing output directory {path}")
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


class BaseBuilder(ABC):
    """Base class for target builders."""

    builder_type: str = ""
    config_class: Type[BuilderConfig] = BuilderConfig

    def __init__(self, env: Optional[Environment] = None, logger: Optional[logging.Logger] = None):
        self.env = env or setup_jinja_env()
        self.logger = logger or logging.getLogger(__name__)

    def create_default_config(self) -> BuilderConfig:
        return self.config_class()

    def parse_config(self, raw: Optional[Dict[str, Any]]) -> BuilderConfig:
        """Validate a raw settings mapping into this builder's config model."""
        try:
            return self.config_class.model_validate(raw or {})
        except ValidationError as e:
            raise BuilderError(
                f"Invalid configuration for builder '{self.builder_type}': {e}",
                builder=self.builder_type,
            ) from e

    def build(self, document: EnrichedDocument, config: Optional[BuilderConfig] = None) -> List[GenerationResult]:
        """
        Render and write all files for this target.

        Raises:
            BuilderError: when the document is not fully enriched and resolved,
                or when rendering or writing fails
        """
        if not document.completed:
            raise BuilderError(
                "Document has not been fully enriched and resolved",
                builder=self.builder_type,
            )
        config = config or self.create_default_config()
        output_dir = prepare_output_dir(Path(config.output_dir), config.clear_output_dir)

        results = self.generate(document, config)
        for result in results:
            self.write_result(output_dir, result)
        self.logger.info(f"{self.builder_type}: generated {len(results)} files in {output_dir}")
        return results

    @abstractmethod
    def generate(self, document: EnrichedDocument, config: BuilderConfig) -> List[GenerationResult]:
        """Produce the file contents without touching the file system."""
        pass

    def render(self, template_name: str, context: Dict[str, Any], model: Optional[str] = None) -> str:
        try:
            return self.env.get_template(template_name).render(**context)
        except TemplateError as e:
            raise BuilderError(
                f"Failed to render template '{template_name}': {e}",
                builder=self.builder_type,
                model=model,
            ) from e

    def write_result(self, output_dir: Path, result: GenerationResult) -> Path:
        target = output_dir / result.file_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.code, encoding=DefaultConfig.ENCODING)
        except OSError as e:
            raise BuilderError(
                f"Failed to write {target}: {e}", builder=self.builder_type, model=result.model_name
            ) from e
        self.logger.debug(f"Written {target}")
        return target


# =============================================================================
# REGISTRY
# =============================================================================

BUILDER_REGISTRY: Dict[str, Type[BaseBuilder]] = {}


def register_builder(builder_class: Type[BaseBuilder]) -> Type[BaseBuilder]:
    """Class decorator adding a builder to the registry under its builder_type."""
    if not builder_class.builder_type:
        raise BuilderError(f"{builder_class.__name__} has no builder_type")
    BUILDER_REGISTRY[builder_class.builder_type] = builder_class
    return builder_class


def get_builder(builder_type: str, **kwargs) -> BaseBuilder:
    """Instantiate a registered builder."""
    builder_class = BUILDER_REGISTRY.get(builder_type.lower())
    if builder_class is None:
        raise BuilderError(
            f"Unknown builder type '{builder_type}'",
            builder=builder_type,
            suggestions=[f"Available builders: {', '.join(available_builders())}"],
        )
    return builder_class(**kwargs)


def available_builders() -> List[str]:
    return sorted(BUILDER_REGISTRY)


def run_builder(
    document: EnrichedDocument,
    builder_type: str,
    raw_config: Optional[Dict[str, Any]] = None,
    default_output_dir: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> List[GenerationResult]:
    """Look up a builder, validate its config and build."""
    builder = get_builder(builder_type, logger=logger)
    raw_config = dict(raw_config or {})
    if default_output_dir and "output_dir" not in raw_config:
        raw_config["output_dir"] = str(Path(default_output_dir) / builder_type)
    return builder.build(document, builder.parse_config(raw_config))
