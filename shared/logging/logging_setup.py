from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
import re
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

# ANSI colors accepted by the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
}

_LEVEL_PREFIX: dict[int, str] = {
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
    logging.WARNING: "⚠️ ",
}

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-_.]+")


class TokenRedactionFilter(logging.Filter):
    """Masks bearer tokens that end up in log messages (e.g. echoed request headers)."""

    def filter(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        if "Bearer" in message:
            record.msg = _BEARER_PATTERN.sub(r"\1***", message)
            record.args = ()
        return True


class CustomFormatter(logging.Formatter):
    """Formats timestamps in the configured timezone and prefixes warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # broken format string, keep the raw message instead of crashing the handler
            message = str(record.msg)
        record.msg = _LEVEL_PREFIX.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter, colors the line when the record carries a ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts an optional ``color=`` keyword on every log call.

    Usage::

        logger.info("record saved", color="green")

    Only the console handler renders the color; the file handler writes plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs = {**kwargs, "extra": {**(kwargs.get("extra") or {}), "color": color}}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        """Delegate other Logger attributes (e.g. setLevel, handlers)."""
        return getattr(self._logger, name)


def setup_logging() -> ColorLogger:
    """
    Configures console and rotating file logging for the checklist bridge.

    Environment:
        ROOT_DIR: Base directory of the logs/ folder (defaults to the working directory).
        TIMEZONE: Timezone of the log timestamps.
        LOG_LEVEL: "debug" for verbose output, including httpx request logs.
        LOG_FILE_MAX_BYTES / LOG_FILE_BACKUPS: Rotation of logs/app.log.

    Returns:
        ColorLogger: The application logger.
    """
    root_dir = os.getenv("ROOT_DIR") or os.getcwd()
    log_dir = os.path.join(root_dir, "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Paris")
    os.makedirs(log_dir, exist_ok=True)

    line_format = "%(asctime)s - %(levelname)s - %(message)s"
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"()": CustomFormatter, "format": line_format, "datefmt": "%Y-%m-%d %H:%M:%S", "tz_name": tz_name},
            "colored": {"()": ColoredFormatter, "format": line_format, "datefmt": "%Y-%m-%d %H:%M:%S", "tz_name": tz_name},
        },
        "filters": {
            "redact_tokens": {"()": TokenRedactionFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "filters": ["redact_tokens"],
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filters": ["redact_tokens"],
                "level": loglevel,
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": int(os.getenv("LOG_FILE_MAX_BYTES", 5 * 1024 * 1024)),
                "backupCount": int(os.getenv("LOG_FILE_BACKUPS", 3)),
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    # httpx logs every request at info level
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("checklist_bridge"))
