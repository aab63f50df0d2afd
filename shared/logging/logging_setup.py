import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

LOGGER_NAME = "pdfman"

debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.DEBUG if debug_mode else logging.INFO

_ANSI_RESET = "\033[0m"
_ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}

# highest matching threshold wins
_LEVEL_PREFIXES: list[tuple[int, str]] = [
    (logging.ERROR, "⛔ "),
    (logging.WARNING, "⚠️ "),
]


class PdfParserFilter(logging.Filter):
    """Drop the PDF parser's per-object warnings about malformed xref tables.

    Those warnings fire for nearly every scanned PDF and say nothing about
    whether text extraction succeeded.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name.startswith("PyPDF2") and record.levelno < logging.ERROR)


class ZonedFormatter(logging.Formatter):
    """Timestamps in a configurable time zone, level marker in front of the message."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record) -> str:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # broken format string from a third-party logger
            return ""
        prefix = next((marker for level, marker in _LEVEL_PREFIXES if record.levelno >= level), "")
        record.msg = prefix + message
        record.args = ()
        return super().format(record)


class ConsoleFormatter(ZonedFormatter):
    """Adds ANSI colors for records logged with color=<name>."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _ANSI_COLORS.get(getattr(record, "color", None) or "")
        if not line or not ansi:
            return line
        return f"{ansi}{line}{_ANSI_RESET}"


class ColorLogger:
    """Wraps a :class:`logging.Logger` so every log call accepts ``color=``.

    Usage::

        logger.info("Summary stored for %s", doc_hash, color="green")

    The color only shows up on the console; the log file stays plain.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        # keep the caller's frame as the record origin
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

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._log(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def _build_config(log_file: str, tz_name: str) -> dict:
    def formatter(factory: type) -> dict:
        return {
            "()": factory,
            "format": "%(asctime)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "tz_name": tz_name,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"pdf_parser": {"()": PdfParserFilter}},
        "formatters": {
            "plain": formatter(ZonedFormatter),
            "console": formatter(ConsoleFormatter),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "filters": ["pdf_parser"],
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "plain",
                "filters": ["pdf_parser"],
                "level": loglevel,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": loglevel},
        "loggers": {
            # request lines only in debug mode
            "httpx": {"level": logging.DEBUG if debug_mode else logging.WARNING},
        },
    }


def setup_logging() -> ColorLogger:
    """Configure console and file logging and return the application logger.

    Log files go to <ROOT_DIR>/logs/app.log; timestamps use TIMEZONE.
    """
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")

    logging.config.dictConfig(_build_config(os.path.join(log_dir, "app.log"), tz_name))
    return ColorLogger(logging.getLogger(LOGGER_NAME))
