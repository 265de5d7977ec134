"""Pipeline logging configuration with file and console handlers.

The JSON file format is rendered by structlog processors.
Module loggers are created with ``logging.getLogger(__name__)`` and
propagate to the ``src`` logger, which entry points configure once via
``setup_logger("src")``.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

import structlog

from src.settings import settings

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOG_DATE_FORMAT = "%H:%M:%S"
_LOGGERS_CACHE: dict[str, logging.Logger] = {}


_JSON_PRE_CHAIN = [
    structlog.processors.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=False),
    structlog.processors.CallsiteParameterAdder(
        [
            structlog.processors.CallsiteParameter.MODULE,
            structlog.processors.CallsiteParameter.LINENO,
        ]
    ),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def build_json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Render stdlib log records as one JSON object per line with structlog."""
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        foreign_pre_chain=_JSON_PRE_CHAIN,
    )


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_dir: Path | None = None,
    log_format: str | None = None,
) -> logging.Logger:
    """Configure and return a logger with file and console handlers.

    Args:
        name: Logger name (e.g., 'src' or 'pipeline.cli').
        level: Logging level; defaults to LOG_LEVEL.
        log_dir: Directory for log files; defaults to LOG_DIR.
        log_format: 'text' or 'json' for the file handler; defaults to LOG_FORMAT.

    Returns:
        Configured logger instance.
    """
    if name in _LOGGERS_CACHE:
        return _LOGGERS_CACHE[name]

    resolved_level = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = _create_console_handler(
        logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT), resolved_level
    )
    logger.addHandler(console_handler)

    file_handler = _create_file_handler(
        name, _build_file_formatter(log_format), resolved_level, log_dir
    )
    if file_handler:
        logger.addHandler(file_handler)

    _LOGGERS_CACHE[name] = logger
    return logger


def _resolve_level(level: int | str | None) -> int:
    """Turn a level name or number into a logging level.

    Args:
        level: Explicit level, or None to use settings.

    Returns:
        Numeric logging level.
    """
    if level is None:
        level = settings.logging.level
    if isinstance(level, str):
        return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    return level


def _build_file_formatter(log_format: str | None) -> logging.Formatter:
    """Select the file formatter.

    Args:
        log_format: 'json' or 'text'; None uses settings.

    Returns:
        Formatter instance.
    """
    resolved = (log_format or settings.logging.format).lower()
    if resolved == "json":
        return build_json_formatter()
    return logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT)


def _create_console_handler(
    formatter: logging.Formatter,
    level: int,
) -> logging.StreamHandler:
    """Create console stream handler.

    Args:
        formatter: Log formatter.
        level: Logging level.

    Returns:
        Configured StreamHandler.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _create_file_handler(
    name: str,
    formatter: logging.Formatter,
    level: int,
    log_dir: Path | None,
) -> logging.FileHandler | None:
    """Create a dated file handler.

    Args:
        name: Logger name for filename.
        formatter: Log formatter.
        level: Logging level.
        log_dir: Directory for log files.

    Returns:
        Configured FileHandler or None on failure.
    """
    try:
        log_path = _get_log_file_path(name, log_dir)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler
    except OSError as e:
        print(f"Warning: Could not create log file: {e}", file=sys.stderr)
        return None


def _get_log_file_path(name: str, log_dir: Path | None) -> Path:
    """Build log file path with date suffix.

    Args:
        name: Logger name.
        log_dir: Base directory for logs.

    Returns:
        Full path to log file.
    """
    if log_dir is None:
        log_dir = Path(settings.logging.log_dir)

    log_dir.mkdir(parents=True, exist_ok=True)

    safe_name = name.replace(".", "_").replace("/", "_")
    date_suffix = datetime.now().strftime("%Y%m%d")
    filename = f"{safe_name}_{date_suffix}.log"

    return log_dir / filename
