"""
Logging.

structlog on top of the stdlib root logger, configured from
config/settings/logging.yaml. Every record passes through the same
processor chain; the console handler renders it as JSON or as coloured
text, the optional file handler always writes JSON lines.

Records carry timestamp, level, logger, event, func_name and lineno, plus
whatever the request middleware binds (request_id, frontend, method, path)
and the keyword arguments of the call.

Usage:
    from notesapp.backend.core.logging import get_logger, setup_logging

    setup_logging()                                   # at process start
    setup_logging(level="DEBUG", format_type="console")

    logger = get_logger(__name__)
    logger.info("Note created", extra={"note_id": 3})

    # Outside HTTP requests (client layer, CLI) name the source explicitly
    log_with_source(logger, "client", "info", "Notes refetched", count=3)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.typing import Processor

from notesapp.backend.core.config import find_project_root, get_app_config
from notesapp.backend.core.config_schema import FileHandlerSchema

VALID_SOURCES = frozenset({
    "web",
    "cli",
    "api",
    "client",
    "internal",
    "unknown",
})
"""Values used for the `source` field. Callers set it; it is never inferred."""

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "hpack")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _formatter(renderer: Processor, pre_chain: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    )


def _file_handler(config: FileHandlerSchema, formatter: logging.Formatter) -> logging.Handler:
    """Rotating JSONL file, path relative to the project root."""
    path = find_project_root() / config.path
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Arguments left as None take their value from logging.yaml.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        format_type: 'json' or 'console' for the console handler
        enable_console: Write to stdout
        enable_file_logging: Write JSON lines to the configured file
    """
    config = get_app_config().logging
    level = level if level is not None else config.level
    format_type = format_type if format_type is not None else config.format
    if enable_console is None:
        enable_console = config.handlers.console.enabled
    if enable_file_logging is None:
        enable_file_logging = config.handlers.file.enabled

    processors = _shared_processors()
    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = _formatter(structlog.processors.JSONRenderer(), processors)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        if format_type == "console":
            console.setFormatter(
                _formatter(structlog.dev.ConsoleRenderer(colors=True), processors)
            )
        else:
            console.setFormatter(json_formatter)
        root.addHandler(console)

    if enable_file_logging:
        root.addHandler(_file_handler(config.handlers.file, json_formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Return a structlog logger, typically for __name__."""
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Log with an explicit `source` field.

    Raises:
        AttributeError: If level is not a logger method
    """
    getattr(logger, level.lower())(message, source=source, **kwargs)
