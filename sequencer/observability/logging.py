"""Logging setup for sequencer runs.

Console output is colored text unless JSON is requested; the optional log
file is always JSON. Records logged through ``LoggerAdapter`` carry the run
id and network, so interleaved runs in one file can be told apart.
"""

import json
import logging
import os
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Record attributes copied into JSON output when present
CONTEXT_FIELDS = ("run_id", "network", "unit")

# Client libraries that log every RPC round trip at INFO/DEBUG
QUIET_LOGGERS = ("web3", "urllib3", "aiohttp", "asyncio")

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        extra = getattr(record, "extra", None)
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Text formatter that colors the level name on a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        if sys.stderr.isatty() and record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"

        return super().format(record)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | str | None = None,
) -> None:
    """Configure the root logger for a CLI invocation.

    ``LOG_LEVEL`` and ``LOG_JSON`` in the environment take precedence over
    the arguments. Existing root handlers are replaced.

    Args:
        level: Logging level name; unknown names fall back to INFO.
        json_format: Emit JSON on the console instead of colored text.
        log_file: Also append JSON records to this file.
    """
    log_level = getattr(logging, os.getenv("LOG_LEVEL", level).upper(), logging.INFO)
    json_format = json_format or _env_flag("LOG_JSON")

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        JSONFormatter()
        if json_format
        else ConsoleFormatter(fmt=CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    handlers.append(console)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LoggerAdapter(logging.LoggerAdapter):
    """Attach a run id and target network to every record.

    A per-call ``extra={"unit": ...}`` is merged with the run context.
    """

    def __init__(self, logger: logging.Logger, run_id: str, network: str | None = None):
        super().__init__(logger, {"run_id": run_id, "network": network})

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs
