"""Logging utilities for the normalization CLI."""

from __future__ import annotations

import logging
import logging.config
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

LOGGER_NAME = "MasterDataNormalizer.cli"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(category)s %(transaction_id)s] %(message)s"


class NormalizationContextFilter(logging.Filter):
    """Lifts the category and transaction of telemetry payloads onto the record.

    Records without a payload get ``-`` so both formatters can reference the
    fields unconditionally.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        payload = getattr(record, "payload", None)
        if not isinstance(payload, Mapping):
            payload = {}
        for key in ("category", "transaction_id"):
            if not hasattr(record, key):
                setattr(record, key, payload.get(key) or "-")
        return True


def configure_logging(
    log_path: Optional[Path],
    log_format: str,
    verbose: bool,
    level: str = "INFO",
) -> logging.Logger:
    formatter = "json" if log_format == "json" else "text"
    effective_level = "DEBUG" if verbose else level.upper()
    handlers: dict[str, dict[str, object]] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stderr,
            "formatter": formatter,
            "filters": ["normalization"],
            "level": effective_level,
        }
    }
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": str(log_path),
            "mode": "a",
            "encoding": "utf-8",
            "formatter": formatter,
            "filters": ["normalization"],
        }

    formatters = {
        "text": {
            "format": LOG_FORMAT,
        },
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": LOG_FORMAT,
        },
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatters,
            "filters": {"normalization": {"()": NormalizationContextFilter}},
            "handlers": handlers,
            "loggers": {
                LOGGER_NAME: {
                    "handlers": list(handlers.keys()),
                    "level": effective_level,
                    "propagate": False,
                }
            },
            "root": {
                "level": effective_level,
                "handlers": list(handlers.keys()),
            },
        }
    )
    logger = logging.getLogger(LOGGER_NAME)
    logger.debug(
        "Logging configured",
        extra={"log_path": str(log_path) if log_path else None, "log_format": log_format},
    )
    return logger


@contextmanager
def progress_spinner(message: str) -> Iterator[Progress]:
    console = Console(stderr=True)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        transient=True,
        console=console,
    )
    task_id = progress.add_task(message)
    with progress:
        yield progress
    progress.update(task_id, completed=1)
