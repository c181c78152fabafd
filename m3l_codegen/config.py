"""
Configuration for M3L Codegen.

Two layers live here:

* `ParserOptions`, the in-process options the parser and pipeline consume
  (hooks and flags).
* `ToolConfigSchema`, the YAML settings file used by the CLI: which model
  files to read, which builders to run on each, parser flags and logging.
"""

import logging
from argparse import Namespace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .constants import DefaultConfig
from .exceptions import ConfigurationError, raise_configuration_error

logger = logging.getLogger(__name__)


# --- Parser options ---


class ParserOptions(BaseModel):
    """
    Options consumed by M3LParser and M3LPipeline.

    `pre_process` rewrites the source text before tokenizing;
    `post_process` receives the finished Document and may mutate it (or
    return a replacement).
    """

    pre_process: Optional[Callable[[str], str]] = Field(
        default=None, description="Text transform applied before parsing."
    )
    post_process: Optional[Callable[[Any], Any]] = Field(
        default=None, description="Document transform applied after parsing."
    )
    strict_mode: bool = Field(
        default=False, description="Raise on malformed clauses instead of skipping them."
    )
    normalize_names: bool = Field(
        default=False,
        description="PascalCase entity names and camelCase field names.",
    )
    resolve_inheritance: bool = Field(
        default=True, description="Compute the effective field list of every model."
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


# --- Pydantic Models for the Settings File ---


class ParserSettings(BaseModel):
    """Parser flags as written in the settings file."""

    strict_mode: bool = False
    normalize_names: bool = False
    resolve_inheritance: bool = True
    apply_default_inheritance: bool = Field(
        default=True,
        description="Models without a model base inherit from the @default model.",
    )
    strict_inheritance: bool = Field(
        default=False,
        description="Report inheritance cycles and unknown bases as errors.",
    )

    def to_parser_options(self) -> ParserOptions:
        return ParserOptions(
            strict_mode=self.strict_mode,
            normalize_names=self.normalize_names,
            resolve_inheritance=self.resolve_inheritance,
        )


class BuilderSettings(BaseModel):
    """One builder to run against a model file."""

    type: str = Field(..., min_length=1, description="Registered builder type, e.g. 'sql'.")
    config: Dict[str, Any] = Field(
        default_factory=dict, description="Builder specific configuration."
    )

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()


class SourceSettings(BaseModel):
    """A model file and the builders that consume it."""

    path: str = Field(..., min_length=1, description="Path of the M3L model file.")
    builders: List[BuilderSettings] = Field(default_factory=list)


class LoggingSettings(BaseModel):
    verbose: bool = False
    log_file: Optional[str] = Field(default=None, description="Optional log file path.")
    use_colors: bool = True


class ToolConfigSchema(BaseModel):
    """Pydantic schema defining the expected structure of the settings file."""

    sources: List[SourceSettings] = Field(
        ..., description="Model files to process, each with its builders."
    )
    output_dir: str = Field(
        DefaultConfig.OUTPUT_DIR,
        min_length=1,
        description="Base directory for builder output without an explicit output_dir.",
    )
    parser: ParserSettings = Field(default_factory=ParserSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access."""
        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    @model_validator(mode="after")
    def check_sources(self) -> "ToolConfigSchema":
        """Cross-field validation checks."""
        if not self.sources:
            raise ValueError("At least one entry is required under 'sources'.")
        for source in self.sources:
            if not source.builders:
                logger.warning(
                    f"Source '{source.path}' lists no builders; it will only be parsed and validated."
                )
        return self

    model_config = ConfigDict(extra="ignore")


# --- Validation Function ---


def format_validation_errors(error: ValidationError) -> List[str]:
    """One readable line per pydantic error."""
    messages = []
    for item in error.errors():
        loc_parts = [str(loc_item) for loc_item in item.get("loc", ())]
        location = " -> ".join(loc_parts) if loc_parts else "Model Level"
        messages.append(f"{location}: {item.get('msg', 'Unknown validation error')}")
    return messages


def validate_and_parse_config(config_dict: Dict[str, Any], config_file: Optional[str] = None) -> ToolConfigSchema:
    """
    Validate a raw configuration dictionary against ToolConfigSchema.

    Raises:
        ConfigurationError: listing every validation problem
    """
    try:
        validated_config = ToolConfigSchema.model_validate(config_dict)
        logger.debug("Configuration dictionary parsed and validated successfully against schema.")
        return validated_config
    except ValidationError as e:
        problems = format_validation_errors(e)
        raise ConfigurationError(
            "Configuration validation failed",
            config_file=config_file,
            context={'errors': "; ".join(problems)},
            suggestions=problems,
        ) from e


def load_config(config_path: Optional[str], cli_args: Optional[Namespace] = None) -> ToolConfigSchema:
    """
    Load the YAML settings file, apply CLI overrides and validate.

    CLI arguments override the file only when given: `input` replaces the
    source list with a single file, `builders` replaces its builders,
    `output_dir`, `strict` and `verbose` override the matching settings.
    Relative paths from the settings file are resolved against its directory,
    paths given on the command line against the working directory.
    """
    raw_config: Dict[str, Any] = {}
    base_dir = Path.cwd()

    if config_path:
        config_file = Path(config_path)
        if not config_file.is_file():
            raise_configuration_error(f"Settings file not found: {config_path}", config_file=config_path)
        try:
            with open(config_file, "r", encoding=DefaultConfig.ENCODING) as f:
                yaml_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML file: {e}", config_file=config_path) from e

        if yaml_config and isinstance(yaml_config, dict):
            raw_config.update(yaml_config)
            logger.debug(f"Loaded configuration from {config_path}")
        elif yaml_config:
            raise_configuration_error("Settings file content is not a mapping", config_file=config_path)
        base_dir = config_file.resolve().parent

    overridden_keys = _apply_cli_overrides(raw_config, cli_args)
    if overridden_keys:
        logger.debug(f"Overridden config keys from CLI arguments: {overridden_keys}")

    logger.info("Validating final configuration...")
    validated_config = validate_and_parse_config(raw_config, config_path)

    for source in validated_config.sources:
        source.path = str((base_dir / source.path).resolve())
    validated_config.output_dir = str((base_dir / validated_config.output_dir).resolve())

    logger.info("Configuration loaded and validated successfully.")
    return validated_config


def _apply_cli_overrides(raw_config: Dict[str, Any], cli_args: Optional[Namespace]) -> set:
    overridden = set()
    if cli_args is None:
        return overridden
    cli_dict = vars(cli_args)

    if cli_dict.get("input"):
        builders = raw_config.get("sources", [{}])[0].get("builders", []) if raw_config.get("sources") else []
        raw_config["sources"] = [{"path": str(Path(cli_dict["input"]).resolve()), "builders": builders}]
        overridden.add("sources")

    if cli_dict.get("builders"):
        sources = raw_config.setdefault("sources", [])
        for source in sources:
            existing = {str(item.get("type", "")).lower(): item for item in source.get("builders", [])}
            source["builders"] = [
                existing.get(builder_type, {"type": builder_type}) for builder_type in cli_dict["builders"]
            ]
        overridden.add("builders")

    if cli_dict.get("output_dir"):
        raw_config["output_dir"] = str(Path(cli_dict["output_dir"]).resolve())
        overridden.add("output_dir")

    if cli_dict.get("strict"):
        raw_config.setdefault("parser", {})["strict_mode"] = True
        overridden.add("parser.strict_mode")

    if cli_dict.get("verbose"):
        raw_config.setdefault("logging", {})["verbose"] = True
        overridden.add("logging.verbose")

    return overridden
