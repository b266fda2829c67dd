"""Logging setup for pausectl.

structlog renders the event and its key/value context, the stdlib logging
module routes it: a rich handler on stderr, plus an optional plain-text
transcript file.
"""

import logging
from pathlib import Path

import structlog
from rich.console import Console
from rich.logging import RichHandler

# Diagnostics go to stderr so stdout only carries results
console = Console(stderr=True)

TRANSCRIPT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    append: bool = False,
) -> logging.Handler | None:
    """
    Configure structlog and the root logger.

    Args:
        level: Root log level name.
        log_file: Optional transcript file.
        append: Append to the transcript instead of truncating it.

    Returns:
        The transcript handler, if one was installed.

    Raises:
        OSError: The transcript file cannot be opened.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Opened before the root logger is touched, so a bad path leaves it intact
    transcript = None
    if log_file is not None:
        transcript = logging.FileHandler(log_file, mode="a" if append else "w", encoding="utf-8")
        transcript.setFormatter(logging.Formatter(TRANSCRIPT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if transcript is not None:
        root_logger.addHandler(transcript)

    return transcript


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance by name."""
    return structlog.get_logger(name)
