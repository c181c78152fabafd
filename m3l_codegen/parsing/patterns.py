"""
Regular expressions and small tokenizing helpers for M3L lines.

Everything here works on single, already-trimmed lines. Block structure is
handled by the document parser.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Any


# =============================================================================
# LINE PATTERNS
# =============================================================================

NAMESPACE_PATTERN = re.compile(r"^#\s*Namespace\s*:\s*(?P<namespace>.+?)\s*$", re.IGNORECASE)
TITLE_PATTERN = re.compile(r"^#\s+(?P<title>[^#].*?)\s*$")
SECTION_PATTERN = re.compile(r"^###\s*(?P<section>.+?)\s*$")
KIND_PATTERN = re.compile(r"::\s*(?P<kind>[A-Za-z_]\w*)")

# Name(Label) : Base1, Base2
HEADING_NAME_PATTERN = re.compile(
    r"^(?P<name>[^(:]*?)\s*(?:\((?P<label>[^)]*)\))?\s*(?::\s*(?P<inherits>.*?))?\s*$"
)

# name(Label): rest  /  name(Label)
FIELD_HEAD_PATTERN = re.compile(
    r"^(?P<name>[^\s:(=\"'@\[]+)\s*(?:\((?P<label>[^)]*)\))?\s*(?::\s*(?P<rest>.*))?$"
)

# Type (with optional <generic args>), optional ?, optional (length), optional ?
TYPE_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z_][\w.]*(?:<[^\s=@\[]*>)?)\s*(?P<nullable_before>\?)?\s*"
    r"(?:\((?P<length>[^)]*)\))?(?P<nullable_after>\?)?"
)

INDEX_DIRECTIVE_PATTERN = re.compile(
    r"^@(?P<kind>index|unique)\s*\((?P<params>.*)\)\s*(?:\"(?P<description>[^\"]*)\")?\s*$",
    re.IGNORECASE,
)
RELATION_DIRECTIVE_PATTERN = re.compile(
    r"^@relation\s*\((?P<params>.*)\)\s*(?:\"(?P<description>[^\"]*)\")?\s*$",
    re.IGNORECASE,
)
RELATION_LINE_PATTERN = re.compile(
    r"^(?P<direction>[<>])\s*(?P<name>[^\s\"]+)\s*(?:\"(?P<description>.*?)\")?\s*$"
)
INDEX_LINE_PATTERN = re.compile(r"^(?P<name>[^(\s]+)\s*(?:\((?P<description>[^)]*)\))?\s*$")
KEY_VALUE_PATTERN = re.compile(r"^(?P<key>[^:]+?)\s*:\s*(?P<value>.*)$")

# Enum values: Name: type = value "desc" | Name = value "desc" | Name = value (desc) | Name: "desc"
ENUM_TYPED_VALUE_PATTERN = re.compile(
    r"^(?P<name>[^\s:=]+)\s*:\s*(?P<type>[A-Za-z_]\w*)\s*=\s*(?P<value>[^\s\"(]+)"
    r"\s*(?:\"(?P<description>.*?)\"|\((?P<paren_description>[^)]*)\))?\s*$"
)
ENUM_ASSIGNED_VALUE_PATTERN = re.compile(
    r"^(?P<name>[^\s:=]+)\s*=\s*(?P<value>[^\s\"(]+)"
    r"\s*(?:\"(?P<description>.*?)\"|\((?P<paren_description>[^)]*)\))?\s*$"
)
ENUM_DESCRIBED_VALUE_PATTERN = re.compile(
    r"^(?P<name>[^\s:=]+)\s*:\s*(?:\"(?P<description>.*?)\"|(?P<bare_description>.*?))\s*$"
)


# =============================================================================
# TEXT HELPERS
# =============================================================================

QUOTES = ("\"", "'")


def strip_quotes(text: str) -> str:
    """Remove one pair of matching outer quotes."""
    text = text.strip()
    if len(text) >= 2 and text[0] in QUOTES and text[-1] == text[0]:
        return text[1:-1]
    return text


def is_quoted(text: str) -> bool:
    text = text.strip()
    return len(text) >= 2 and text[0] in QUOTES and text[-1] == text[0]


def find_closing(text: str, start: int, opener: str, closer: str) -> int:
    """
    Index of the `closer` that balances the `opener` at `start`.

    Quoted spans are skipped. Returns -1 when the text ends first.
    """
    depth = 0
    quote = None
    for index in range(start, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
            continue
        if char in QUOTES:
            quote = char
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return -1


def split_parameters(text: str) -> List[str]:
    """
    Split a parameter list on commas outside quotes and brackets.

    Example:
        >>> split_parameters('a, "b, c", f(x, y)')
        ['a', '"b, c"', 'f(x, y)']
    """
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote = None
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in QUOTES:
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return [part for part in parts if part]


def coerce_value(text: str) -> Any:
    """Metadata value coercion: quoted -> str, true/false, int, float, else str."""
    text = text.strip()
    if is_quoted(text):
        return text[1:-1]
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def parse_list_value(text: str) -> List[str]:
    """`[a, b]` or `a, b` -> ['a', 'b']"""
    text = text.strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return [strip_quotes(part) for part in split_parameters(text)]


# =============================================================================
# TAG TOKENIZER
# =============================================================================

@dataclass
class TagTokens:
    """Result of tokenizing the tag tail of a field or heading line."""

    attributes: List[str] = field(default_factory=list)
    directives: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def tokenize_tags(text: str) -> TagTokens:
    """
    Split a tag tail into `@attribute` tokens and `[directive]` bodies.

    Each token is read independently, in any number and order. Tokens that
    are neither kind are kept verbatim with the attributes. An unterminated
    bracket or parenthesis is reported in `errors` and the rest of the text
    is kept verbatim.
    """
    tokens = TagTokens()
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        if char.isspace():
            index += 1
            continue

        if char == "[":
            end = find_closing(text, index, "[", "]")
            if end == -1:
                tokens.errors.append(f"Unterminated directive: {text[index:].strip()}")
                tokens.attributes.append(text[index:].strip())
                break
            body = text[index + 1:end].strip()
            if body:
                tokens.directives.append(body)
            index = end + 1
            continue

        if char == "@":
            end = index + 1
            while end < length and (text[end].isalnum() or text[end] in "_.-"):
                end += 1
            if end < length and text[end] == "(":
                close = find_closing(text, end, "(", ")")
                if close == -1:
                    tokens.errors.append(f"Unterminated attribute: {text[index:].strip()}")
                    tokens.attributes.append(text[index:].strip())
                    break
                end = close + 1
            tokens.attributes.append(text[index:end])
            index = end
            continue

        # Anything else up to the next whitespace, bracket or attribute
        end = index
        while end < length and not text[end].isspace() and text[end] not in "[@":
            end += 1
        end = max(end, index + 1)
        tokens.attributes.append(text[index:end])
        index = end

    return tokens


def read_default_value(text: str) -> Optional[Tuple[str, str]]:
    """
    Read a default value from the start of `text`.

    Quoted values lose their quotes; unquoted values run to the next
    whitespace outside parentheses (so `now()` and `fn(a, b)` stay whole).

    Returns:
        (value, remaining text), or None when the value cannot be read
    """
    text = text.lstrip()
    if not text:
        return None

    if text[0] in QUOTES:
        close = text.find(text[0], 1)
        if close == -1:
            return None
        return text[1:close], text[close + 1:]

    depth = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return None
        elif char.isspace() and depth == 0:
            break
        index += 1

    if depth != 0:
        return None
    value = text[:index]
    if value.startswith(("@", "[")):
        return None
    return value, text[index:]


def skip_to_tags(text: str) -> str:
    """Drop an unreadable clause up to the first whitespace-separated tag."""
    match = re.search(r"\s(?=[@\[])", text)
    return text[match.end():] if match else ""
