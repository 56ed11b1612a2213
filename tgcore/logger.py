"""BotLogger — Singleton JSON logger with console and rotating file output.

Provides a single, project-wide logger instance that writes structured JSON to
both stdout and ``logs/tgpoll.log`` (with automatic rotation).
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """Format every log record as a single-line JSON object.

    Standard fields (timestamp, level, logger, message, module, func_name)
    are always present.  Any *extra* key-value pairs passed via the ``extra``
    parameter of a logging call are merged into the JSON object, so callers
    can attach polling context such as ``api_endpoint``, ``update_id``,
    ``kind`` or ``offset``.

    Bot tokens inside API URLs (for example in the text of a ``requests``
    connection error) are masked before the line is written.

    Example::

        logger.info(
            "Update dispatched",
            extra={"update_id": 812, "kind": "message", "offset": 813},
        )

    Produces::

        {"timestamp": "…", "level": "INFO", …, "update_id": 812, "kind": "message", …}
    """

    # Bot API URLs embed the token as ``bot<id>:<secret>``; keep the id only.
    _TOKEN_RE = re.compile(r"\bbot(\d+):[A-Za-z0-9_-]+")

    # Keys that belong to the standard LogRecord; everything else is extra.
    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    )))

    def format(self, record: logging.LogRecord) -> str:
        """Serialize *record* to a JSON string."""
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        line = json.dumps(log_entry, ensure_ascii=False, default=str)
        return self._TOKEN_RE.sub(r"bot\1:<redacted>", line)


class BotLogger:
    """Singleton logger with dual handlers (console + rotating file).

    Usage::

        from tgcore.logger import BotLogger

        logger = BotLogger.get_logger()
        logger.info("Polling started")
    """

    _instance: Optional["BotLogger"] = None
    _logger: Optional[logging.Logger] = None

    _LOGGER_NAME: str = "tgpoll"

    # Rotation settings
    _LOG_DIR: str = "logs"
    _LOG_FILE: str = "tgpoll.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "BotLogger":
        """Ensure only one instance is ever created (Singleton)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level)
        return cls._instance

    # ------------------------------------------------------------------
    # Initialisation helpers
    # ------------------------------------------------------------------

    def _init_logger(self, level: int) -> None:
        """Create the underlying :class:`logging.Logger` and attach handlers."""
        self._logger = logging.getLogger(self._LOGGER_NAME)
        self._logger.setLevel(level)

        # Avoid duplicate handlers if the module is reloaded.
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        os.makedirs(self._LOG_DIR, exist_ok=True)
        log_path = os.path.join(self._LOG_DIR, self._LOG_FILE)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def get_logger(level: int = logging.INFO) -> logging.Logger:
        """Return the shared :class:`logging.Logger` instance.

        Creates the singleton on first call; subsequent calls return the
        same logger regardless of the *level* argument.
        """
        instance = BotLogger(level)
        assert instance._logger is not None  # guaranteed by __new__
        return instance._logger

    def cleanup(self) -> None:
        """Flush and close all handlers attached to the logger."""
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)
