# product_research/config/logging_config.py

"""Per-run logging for product_research.

Every launch writes ``logs/run_<YYYYmmdd_HHMMSS>.log``.  Stage loggers
(``product_research.capture``, ``product_research.enrichment`` ...) all
propagate into that one file.  Paced batch stages run for minutes, often
in a TUI worker thread, so file records carry the thread name and the
row-level warnings logged with ``exc_info``.

Only the newest ``Settings.LOG_RETENTION`` run logs are kept.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from product_research.config.settings import Settings

LOGGER_NAME = "product_research"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | "
    "%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)-8s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(
    handler: logging.Handler, level: int | str, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def _prune_old_runs(logs_dir: Path, keep: int) -> None:
    runs = sorted(logs_dir.glob("run_*.log"))
    for stale in runs[:-keep] if keep > 0 else []:
        stale.unlink(missing_ok=True)


def setup_logging(console_level: int | str | None = None) -> Path:
    """Attach the run file and stderr handlers to the project logger.

    Args:
        console_level: stderr threshold; defaults to
            ``Settings.CONSOLE_LOG_LEVEL``.  The file always gets DEBUG.

    Returns:
        Path of this run's log file.  A second call in the same process
        leaves the existing handlers in place.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return log_file

    _prune_old_runs(logs_dir, Settings.LOG_RETENTION)
    logger.addHandler(_handler(
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.DEBUG,
        _FILE_FORMAT,
    ))
    logger.addHandler(_handler(
        logging.StreamHandler(sys.stderr),
        console_level or Settings.CONSOLE_LOG_LEVEL,
        _CONSOLE_FORMAT,
    ))
    logger.info("Run log: %s", log_file)
    return log_file
