"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False
_LOGGER_NAME = "catalog_discovery"


def _default_log_dir() -> Path:
    env_root = os.environ.get("CATALOG_DISCOVERY_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def configure_logging(
    verbose: bool = False, log_dir: Path | None = None
) -> structlog.stdlib.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        log_dir = log_dir or _default_log_dir()
        (log_dir / "sources").mkdir(parents=True, exist_ok=True)
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "json",
                    },
                    "discovery_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(log_dir / "discovery.log"),
                        "formatter": "json",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(log_dir / "error.log"),
                        "formatter": "json",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    _LOGGER_NAME: {
                        "handlers": ["console", "discovery_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        # structlog hands the event name to stdlib as the message and the
        # bound key/values as ``extra`` so the JSON formatter emits them as fields
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.render_to_log_kwargs,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(_LOGGER_NAME)


def source_logger(source_id: str, verbose: bool = False) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to a specific source and ensure its file handler exists."""

    configure_logging(verbose)
    logger_name = f"{_LOGGER_NAME}.source.{source_id}"
    py_logger = logging.getLogger(logger_name)
    global_logger = logging.getLogger(_LOGGER_NAME)
    file_handlers = [h for h in global_logger.handlers if isinstance(h, logging.FileHandler)]
    if file_handlers:
        log_dir = Path(file_handlers[0].baseFilename).parent
        source_log_path = log_dir / "sources" / f"{source_id}.log"
        source_log_path.parent.mkdir(parents=True, exist_ok=True)
        if not any(
            isinstance(handler, logging.FileHandler)
            and handler.baseFilename == str(source_log_path)
            for handler in py_logger.handlers
        ):
            file_handler = logging.FileHandler(source_log_path, encoding="utf-8")
            file_handler.setFormatter(global_logger.handlers[0].formatter)
            file_handler.setLevel(logging.INFO)
            py_logger.addHandler(file_handler)

    return structlog.get_logger(logger_name).bind(source=source_id)


__all__ = ["configure_logging", "source_logger"]
