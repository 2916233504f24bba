import json
import logging
import os
import sys
from datetime import datetime

# Sits between INFO (20) and WARNING (30) so conflicts survive a
# WARNING-only terminal but are not mistaken for failures.
CONFLICT = 25
logging.addLevelName(CONFLICT, "CONFLICT")

_TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
_FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object (ts, level, logger, msg).

    A traceback, when attached, is added under "exc".
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class VerboseFilter(logging.Filter):
    """Drop records tagged ``verbose_only`` unless verbose output is on.

    Attached to the terminal handler only, so the log file keeps every
    "identical, no action" event regardless of the flag.
    """

    def __init__(self, verbose: bool = False) -> None:
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "verbose_only", False):
            return self.verbose
        return True


def default_log_file(now: datetime | None = None) -> str:
    """Return the run-timestamp log file name used when none is configured."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"twinsync_{stamp}.log"


def _make_formatter(debug_format: str, fmt: str) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATE_FORMAT)
    return logging.Formatter(fmt, datefmt=_DATE_FORMAT)


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    verbose: bool = False,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging for a sync run.

    Terminal output goes to stderr so stdout stays free for the report.
    When a log file is given every event is also appended there.

    Args:
        debug: If True, overrides LOG_LEVEL to DEBUG.
        log_file: Log file path. ``None`` disables the file handler.
        verbose: Echo "identical, no action" events to the terminal.
        debug_format: "text" (default) or "json" for structured output.
        level: Level name from the config file; LOG_LEVEL env var wins.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: INFO.
    """
    env_level = os.getenv("LOG_LEVEL", level or "INFO").upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    handlers: list[logging.Handler] = []

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_make_formatter(debug_format, _TEXT_FORMAT))
    stderr_handler.addFilter(VerboseFilter(verbose))
    handlers.append(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(
            log_file, mode="a", encoding="utf-8"
        )
        file_handler.setFormatter(
            _make_formatter(debug_format, _FILE_FORMAT)
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )
