"""
Line cursor and error policy shared by the structural parser.
"""

import logging
from typing import List, Optional

from ..constants import M3LSyntax
from ..exceptions import ParseError


def indent_of(line: str) -> int:
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip())


class ParserContext:
    """
    Cursor over the source lines of one parse call.

    In strict mode `report` raises a ParseError; in lenient mode it logs a
    warning with the line number and lets the caller skip the clause.
    """

    def __init__(self, content: str, strict: bool = False, logger: Optional[logging.Logger] = None):
        self.lines: List[str] = content.splitlines()
        self.index = 0
        self.strict = strict
        self.logger = logger or logging.getLogger(__name__)
        self.block: Optional[str] = None
        self.warnings: List[str] = []

    @property
    def has_more(self) -> bool:
        return self.index < len(self.lines)

    @property
    def line(self) -> str:
        return self.lines[self.index]

    @property
    def stripped(self) -> str:
        return self.lines[self.index].strip()

    @property
    def line_number(self) -> int:
        """1-based number of the current line."""
        return self.index + 1

    @property
    def last_line_number(self) -> int:
        """1-based number of the last consumed line."""
        return self.index

    def advance(self) -> None:
        self.index += 1

    def is_comment(self, stripped: str) -> bool:
        return stripped.startswith(M3LSyntax.COMMENT_PREFIXES)

    def skip_trivia(self) -> bool:
        """
        Skip a blank line or a comment at the cursor.

        `<!--` comments may span lines and run to the line holding `-->`.
        Returns True when something was skipped.
        """
        if not self.has_more:
            return False
        stripped = self.stripped
        if not stripped:
            self.advance()
            return True
        if stripped.startswith("<!--"):
            while self.has_more and "-->" not in self.stripped:
                self.advance()
            self.advance()
            return True
        if self.is_comment(stripped):
            self.advance()
            return True
        return False

    def peek_meaningful(self, start: int) -> Optional[str]:
        """Raw text of the first non-blank, non-comment line at or after `start`."""
        for index in range(start, len(self.lines)):
            stripped = self.lines[index].strip()
            if stripped and not self.is_comment(stripped):
                return self.lines[index]
        return None

    def error(self, message: str, line_number: Optional[int] = None) -> ParseError:
        line_number = line_number or min(self.line_number, len(self.lines))
        line = self.lines[line_number - 1] if 0 < line_number <= len(self.lines) else None
        return ParseError(message, line_number=line_number, block=self.block, line=line)

    def report(self, message: str, line_number: Optional[int] = None) -> None:
        """Raise in strict mode, warn in lenient mode."""
        if self.strict:
            raise self.error(message, line_number)
        line_number = line_number or self.line_number
        location = f"line {line_number}" + (f" in '{self.block}'" if self.block else "")
        warning = f"{message} ({location}), skipping"
        self.warnings.append(warning)
        self.logger.warning(warning)
