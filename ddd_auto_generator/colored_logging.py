"""
Colored logging for DDD Auto Generator.

Console output is colored by level, and INFO lines that report a finished
artifact, a running phase or a discovery get their own accent so a long
generation run stays readable.
"""

import logging
import sys
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """
    Logging formatter that adds ANSI color codes to log messages.
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }

    ACCENTS = {
        'success': '\033[92m',    # Bright Green
        'progress': '\033[94m',   # Bright Blue
        'highlight': '\033[96m',  # Bright Cyan
    }

    RESET = '\033[0m'
    BOLD = '\033[1m'

    SUCCESS_PREFIX = "✓ "
    PROGRESS_PREFIX = "→ "
    HIGHLIGHT_PREFIX = "• "
    SECTION_RULE = "=" * 60

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True, stream=None):
        """
        Initialize the colored formatter.

        Args:
            fmt: Log format string (uses default if None)
            use_colors: Whether to use colors at all
            stream: Stream the handler writes to, used for TTY detection
        """
        if fmt is None:
            fmt = "%(levelname)s: %(message)s"
        super().__init__(fmt)

        stream = stream if stream is not None else sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with colors."""
        formatted_message = super().format(record)
        if not self.use_colors:
            return formatted_message

        message = record.getMessage()

        if record.levelno >= logging.WARNING:
            color = self.COLORS.get(record.levelname, '')
            return f"{color}{formatted_message}{self.RESET}" if color else formatted_message

        if message.startswith(self.SUCCESS_PREFIX):
            return f"{self.ACCENTS['success']}{self.BOLD}{formatted_message}{self.RESET}"
        if message.startswith(self.PROGRESS_PREFIX):
            return f"{self.ACCENTS['progress']}{formatted_message}{self.RESET}"
        if message.startswith(self.HIGHLIGHT_PREFIX):
            return f"{self.ACCENTS['highlight']}{formatted_message}{self.RESET}"
        if self.SECTION_RULE in message or (message.startswith("  ") and message.isupper()):
            return f"{self.BOLD}{self.ACCENTS['highlight']}{formatted_message}{self.RESET}"
        if record.levelname == 'DEBUG':
            return f"{self.COLORS['DEBUG']}{formatted_message}{self.RESET}"

        return formatted_message


def setup_colored_logging(level: int = logging.INFO, use_colors: bool = True) -> None:
    """
    Set up colored logging for the application.

    Args:
        level: Logging level (default: INFO)
        use_colors: Whether to use colors (default: True)
    """
    formatter = ColoredFormatter(use_colors=use_colors)

    root_logger = logging.getLogger()

    # Remove existing handlers to avoid duplication
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)


def get_colored_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def log_success(logger: logging.Logger, message: str) -> None:
    """Log a success message with special formatting."""
    logger.info(f"{ColoredFormatter.SUCCESS_PREFIX}{message}")


def log_progress(logger: logging.Logger, message: str) -> None:
    """Log a progress message with special formatting."""
    logger.info(f"{ColoredFormatter.PROGRESS_PREFIX}{message}")


def log_highlight(logger: logging.Logger, message: str) -> None:
    """Log a highlighted message with special formatting."""
    logger.info(f"{ColoredFormatter.HIGHLIGHT_PREFIX}{message}")


def log_section(logger: logging.Logger, section_name: str) -> None:
    """Log a section header with special formatting."""
    logger.info(ColoredFormatter.SECTION_RULE)
    logger.info(f"  {section_name.upper()}")
    logger.info(ColoredFormatter.SECTION_RULE)
