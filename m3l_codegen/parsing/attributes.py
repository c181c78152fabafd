"""
Attribute parser chain.

Bracketed directives such as `[DataType(DataType.Password)]` or
`[OnDelete(SetNull)]` are interpreted by a caller-ordered list of small
parsers. The first parser that claims the text and returns a result wins;
the default parser always produces at least a name, so directive parsing
never fails.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Protocol, Sequence

from ..constants import DirectiveNames, DefaultConfig
from ..domain.enriched import FrameworkAttribute
from .patterns import split_parameters, strip_quotes, is_quoted

logger = logging.getLogger(__name__)

NAME_AND_ARGUMENTS_PATTERN = re.compile(r"^([^(]+)(?:\((.*)\))?$", re.DOTALL)


def _split_name_and_arguments(text: str):
    """`Name(args)` -> ('Name', 'args'); `Name` -> ('Name', None); None if no match."""
    match = NAME_AND_ARGUMENTS_PATTERN.match(text.strip())
    if not match:
        return None
    name = match.group(1).strip()
    if not name:
        return None
    return name, match.group(2)


class AttributeParserProtocol(Protocol):
    """Protocol for directive parsers."""

    def can_parse(self, text: str) -> bool:
        ...

    def parse(self, text: str) -> Optional[FrameworkAttribute]:
        ...


class AttributeParser(ABC):
    """Base class for directive parsers."""

    @abstractmethod
    def can_parse(self, text: str) -> bool:
        """Check if this parser understands the directive text."""
        pass

    @abstractmethod
    def parse(self, text: str) -> Optional[FrameworkAttribute]:
        """Interpret the directive text, or return None to let the chain continue."""
        pass


class DefaultAttributeParser(AttributeParser):
    """
    Generic `Name(arg1, arg2)` parser.

    A parameter text that is quoted as a whole is kept as a single argument
    (commas included) with its outer quotes removed. Text that does not
    look like `Name(...)` becomes a name-only attribute.
    """

    def can_parse(self, text: str) -> bool:
        return True

    def parse(self, text: str) -> FrameworkAttribute:
        raw_text = text
        parts = _split_name_and_arguments(text)
        if parts is None:
            return FrameworkAttribute(name=text.strip(), raw_text=raw_text)

        name, arguments = parts
        if arguments is None or not arguments.strip():
            return FrameworkAttribute(name=name, raw_text=raw_text)

        arguments = arguments.strip()
        if is_quoted(arguments) and arguments[0] not in arguments[1:-1]:
            return FrameworkAttribute(name=name, parameters=[arguments[1:-1]], raw_text=raw_text)

        parameters = [strip_quotes(param) for param in split_parameters(arguments)]
        return FrameworkAttribute(name=name, parameters=parameters, raw_text=raw_text)


class NamedAttributeParser(AttributeParser):
    """Parser claiming directives by name (case-insensitive)."""

    names: Sequence[str] = ()

    def can_parse(self, text: str) -> bool:
        parts = _split_name_and_arguments(text)
        if parts is None:
            return False
        return parts[0].lower() in {name.lower() for name in self.names}

    def canonical_name(self, name: str) -> str:
        for known in self.names:
            if known.lower() == name.lower():
                return known
        return name


class ReferenceAttributeParser(NamedAttributeParser):
    """
    `OnDelete(action)` and `ForeignKey(name)`.

    OnDelete without an action means CASCADE; actions are upper-cased so
    `SetNull` and `SET NULL` both end up as SQL keywords.
    """

    names = (DirectiveNames.ON_DELETE, DirectiveNames.FOREIGN_KEY)

    def parse(self, text: str) -> Optional[FrameworkAttribute]:
        parts = _split_name_and_arguments(text)
        if parts is None:
            return None
        name, arguments = parts
        name = self.canonical_name(name)
        parameters = [strip_quotes(param) for param in split_parameters(arguments or "")]

        if name == DirectiveNames.ON_DELETE:
            action = parameters[0] if parameters else DefaultConfig.ON_DELETE
            parameters = [_normalize_action(action)]

        if name == DirectiveNames.FOREIGN_KEY and not parameters:
            return None

        return FrameworkAttribute(name=name, parameters=parameters, raw_text=text)


def _normalize_action(action: str) -> str:
    # SetNull / set_null / SET NULL -> SET NULL
    action = re.sub(r"([a-z])([A-Z])", r"\1 \2", action.strip())
    return re.sub(r"[\s_]+", " ", action).upper()


class DataTypeAttributeParser(NamedAttributeParser):
    """`DataType(DataType.Password)` and `DataType(Password)` -> ['Password']"""

    names = (DirectiveNames.DATA_TYPE,)

    def parse(self, text: str) -> Optional[FrameworkAttribute]:
        parts = _split_name_and_arguments(text)
        if parts is None or not parts[1] or not parts[1].strip():
            return None
        value = strip_quotes(parts[1])
        if "." in value:
            value = value.rsplit(".", 1)[1]
        value = value.strip()
        if not value:
            return None
        return FrameworkAttribute(name=DirectiveNames.DATA_TYPE, parameters=[value], raw_text=text)


class SqlValueAttributeParser(NamedAttributeParser):
    """
    SQL target directives: `Insert("expr")`, `Update("expr")` and `Without`.

    The expression is kept whole, commas and all.
    """

    names = (DirectiveNames.INSERT, DirectiveNames.UPDATE, DirectiveNames.WITHOUT)

    def parse(self, text: str) -> Optional[FrameworkAttribute]:
        parts = _split_name_and_arguments(text)
        if parts is None:
            return None
        name, arguments = parts
        name = self.canonical_name(name)
        if name == DirectiveNames.WITHOUT:
            parameters = [strip_quotes(param) for param in split_parameters(arguments or "")]
            return FrameworkAttribute(name=name, parameters=parameters, raw_text=text)
        if not arguments or not arguments.strip():
            return None
        return FrameworkAttribute(name=name, parameters=[strip_quotes(arguments)], raw_text=text)


class DisplayAttributeParser(NamedAttributeParser):
    """`Display(Name = "User name")` or `Display("User name")`"""

    names = (DirectiveNames.DISPLAY,)

    def parse(self, text: str) -> Optional[FrameworkAttribute]:
        parts = _split_name_and_arguments(text)
        if parts is None or not parts[1]:
            return None
        for param in split_parameters(parts[1]):
            key, sep, value = param.partition("=")
            if not sep:
                return FrameworkAttribute(name=DirectiveNames.DISPLAY, parameters=[strip_quotes(param)], raw_text=text)
            if key.strip().lower() == "name":
                return FrameworkAttribute(name=DirectiveNames.DISPLAY, parameters=[strip_quotes(value)], raw_text=text)
        return None


def default_attribute_parsers() -> List[AttributeParser]:
    """The standard parser ordering, most specific first."""
    return [
        ReferenceAttributeParser(),
        DataTypeAttributeParser(),
        SqlValueAttributeParser(),
        DisplayAttributeParser(),
    ]


class AttributeParserChain:
    """
    Ordered directive parser list with an unconditional fallback.

    The order is exactly the list handed in; nothing registers itself.
    """

    def __init__(
        self,
        parsers: Optional[Sequence[AttributeParserProtocol]] = None,
        fallback: Optional[AttributeParserProtocol] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.parsers = list(parsers) if parsers is not None else default_attribute_parsers()
        self.fallback = fallback or DefaultAttributeParser()
        self.logger = logger or logging.getLogger(__name__)

    def parse(self, text: str) -> FrameworkAttribute:
        """Parse one directive text; never raises for malformed input."""
        for parser in self.parsers:
            if not parser.can_parse(text):
                continue
            result = parser.parse(text)
            if result is not None:
                return result
            self.logger.debug(
                f"{type(parser).__name__} claimed '{text}' but produced no result, trying next parser"
            )

        result = self.fallback.parse(text)
        if result is None:
            self.logger.warning(f"Directive '{text}' could not be parsed, keeping raw text")
            return FrameworkAttribute(name=text.strip(), raw_text=text)
        return result

    def parse_all(self, texts: Sequence[str]) -> List[FrameworkAttribute]:
        return [self.parse(text) for text in texts]
