"""
Console logging for M3L Codegen.

Records are colored by level. INFO and DEBUG lines are colored by what they
say: a milestone (models parsed, files written) is green, a stage starting
is blue, and a notable detail (skipped column, ignored base) is cyan.
"""

import logging
import sys
from typing import Optional, Tuple

RESET = '\033[0m'
BOLD = '\033[1m'

LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}

SUCCESS_MARK = '✓'
PROGRESS_MARK = '→'
HIGHLIGHT_MARK = '•'
SECTION_RULE = '=' * 60

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps each line in an ANSI color chosen per record."""

    COLORS = LEVEL_COLORS

    SPECIAL_COLORS = {
        'success': '\033[92m',
        'progress': '\033[94m',
        'highlight': '\033[96m',
    }

    # Checked in order; the first group with a matching word decides the color.
    MESSAGE_INDICATORS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ('success', (SUCCESS_MARK, 'complete', 'successfully', 'generated', 'written', 'done')),
        ('progress', (PROGRESS_MARK, 'parsing', 'enriching', 'resolving', 'building', 'loading', 'running')),
        ('highlight', (HIGHLIGHT_MARK, 'skipping', 'found', 'detected', 'ignored')),
    )

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        """
        Args:
            fmt: Format string, CONSOLE_FORMAT when None
            use_colors: Emit escape codes; only honoured when stderr is a terminal
        """
        super().__init__(fmt or CONSOLE_FORMAT)
        self.use_colors = use_colors and getattr(sys.stderr, 'isatty', lambda: False)()

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = self.pick_color(record) if self.use_colors else ''
        return f"{color}{text}{RESET}" if color else text

    def pick_color(self, record: logging.LogRecord) -> str:
        """Return the ANSI prefix for a record, or an empty string."""
        if record.levelno >= logging.WARNING:
            return self.COLORS.get(record.levelname, '')

        message = record.getMessage().lower()
        for kind, words in self.MESSAGE_INDICATORS:
            if any(word in message for word in words):
                prefix = self.SPECIAL_COLORS[kind]
                return prefix + BOLD if kind == 'success' else prefix
        if SECTION_RULE in message:
            return BOLD + self.SPECIAL_COLORS['highlight']
        if record.levelno == logging.DEBUG:
            return self.COLORS['DEBUG']
        return ''


def _file_handler(log_file: str) -> logging.Handler:
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(logging.DEBUG)
    return handler


def setup_colored_logging(
    level: int = logging.INFO,
    use_colors: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Route all logging through one colored console handler.

    Calling it again replaces the handlers installed by the previous call,
    so the CLI can reconfigure once the settings file is loaded.

    Args:
        level: Root and console level
        use_colors: Color console output when stderr is a terminal
        log_file: Also write every record, uncolored, to this file
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColoredFormatter(use_colors=use_colors))
    console.setLevel(level)
    root_logger.addHandler(console)

    if log_file:
        root_logger.addHandler(_file_handler(log_file))
    root_logger.setLevel(logging.DEBUG if log_file else level)


def log_success(logger: logging.Logger, message: str) -> None:
    logger.info(f"{SUCCESS_MARK} {message}")


def log_progress(logger: logging.Logger, message: str) -> None:
    logger.info(f"{PROGRESS_MARK} {message}")


def log_highlight(logger: logging.Logger, message: str) -> None:
    logger.info(f"{HIGHLIGHT_MARK} {message}")


def log_section(logger: logging.Logger, section_name: str) -> None:
    """Log a banner: rule, upper-cased title, rule."""
    logger.info(SECTION_RULE)
    logger.info(f"  {section_name.upper()}")
    logger.info(SECTION_RULE)
