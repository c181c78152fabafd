"""
Custom exception hierarchy for M3L Codegen.

Every error carries a context mapping and a list of suggestions that are
printed with the message. Subclasses declare their error code and default
suggestions as class attributes; parse failures add their source location.
"""

from typing import Any, Dict, List, Optional


class M3LCodegenError(Exception):
    """
    Base exception for all M3L Codegen errors.

    Args:
        message: Human-readable error message
        context: Where the error happened (file, line, model, ...)
        suggestions: Next steps for the user; the class defaults when empty
        error_code: Stable code for programmatic handling; the class code when None
    """

    error_code: Optional[str] = None
    default_suggestions: List[str] = []

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})
        self.suggestions = list(suggestions or self.default_suggestions)
        if error_code is not None:
            self.error_code = error_code

    def add_context(self, **values: Any) -> None:
        """Record the non-empty values in the context mapping."""
        self.context.update({key: value for key, value in values.items() if value is not None and value != ""})

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"Error Code: {self.error_code}")
        if self.context:
            parts.append("Context:")
            parts.extend(f"  {key}: {value}" for key, value in self.context.items())
        if self.suggestions:
            parts.append("Suggestions:")
            parts.extend(f"  • {suggestion}" for suggestion in self.suggestions)
        return "\n".join(parts)


class ParseError(M3LCodegenError):
    """Raised when M3L source text cannot be parsed."""

    error_code = "PARSE_ERROR"
    default_suggestions = [
        "Check the heading and field syntax on the reported line",
        "Close every bracketed directive and quoted default value",
        "Parse in lenient mode to skip malformed clauses",
    ]

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        block: Optional[str] = None,
        line: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.line_number = line_number
        self.block = block
        self.line = line
        self.add_context(line_number=line_number, block=block, line=line)


class ConfigurationError(M3LCodegenError):
    """Raised when the settings file is missing or invalid."""

    error_code = "CONFIG_ERROR"
    default_suggestions = [
        "Check the settings file syntax",
        "Every source needs a path and at least one builder",
    ]

    def __init__(self, message: str, config_file: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(config_file=config_file)


class InheritanceError(M3LCodegenError):
    """Raised by strict resolution for cycles and unknown inheritance targets."""

    error_code = "INHERITANCE_ERROR"
    default_suggestions = [
        "Check the inheritance clause of the model heading",
        "Define every base model and interface in the same document",
        "Disable strict inheritance to tolerate cycles",
    ]

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        target: Optional[str] = None,
        chain: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.add_context(model=model, target=target, chain=" -> ".join(chain) if chain else None)


class BuilderError(M3LCodegenError):
    """Raised when a target builder cannot run or fails to write output."""

    error_code = "BUILDER_ERROR"
    default_suggestions = [
        "Check the builder type is registered",
        "Check the output directory is writable",
        "Run the full pipeline before invoking builders",
    ]

    def __init__(self, message: str, builder: Optional[str] = None, model: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(builder=builder, model=model)


def raise_parse_error(message: str, line_number: Optional[int] = None, block: Optional[str] = None, **kwargs):
    raise ParseError(message, line_number=line_number, block=block, **kwargs)


def raise_configuration_error(message: str, config_file: Optional[str] = None, **kwargs):
    raise ConfigurationError(message, config_file=config_file, **kwargs)
