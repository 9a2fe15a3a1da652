"""
Logging setup for the CLI process and for batch worker processes.
Every module logs through the single "kbdocx" logger.
"""
import io
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

LOGGER_NAME = "kbdocx"
LOG_DIR = Path("./logs")
LOG_PATTERN = "kbdocx_*.log"
MAX_LOG_FILES = 20
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"
FILE_LOG_FORMAT = (
    "%(asctime)s [%(process)d] %(levelname)s - [%(module)s:%(lineno)d] - %(message)s"
)


def prune_old_logs(log_dir: Path, keep: int) -> list[Path]:
    """Deletes the oldest run logs in `log_dir` until `keep` remain. Returns the deleted files."""
    logs = sorted((p for p in log_dir.glob(LOG_PATTERN) if p.is_file()), key=os.path.getmtime)
    deleted = []
    for path in logs[:max(len(logs) - keep, 0)]:
        try:
            path.unlink()
        except OSError:
            # Still open in another run
            continue
        deleted.append(path)
    return deleted


def _run_log_handler(log_dir: Path) -> logging.FileHandler:
    """A DEBUG level handler writing to a new timestamped file."""
    log_dir.mkdir(parents=True, exist_ok=True)
    prune_old_logs(log_dir, MAX_LOG_FILES - 1)

    path = log_dir / f"kbdocx_{datetime.now():%Y%m%d_%H%M%S}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_main_logger(console_level=logging.ERROR, log_dir: Path = LOG_DIR) -> logging.Logger:
    """
    Configures the application logger for a CLI run: messages at
    `console_level` and above go to stdout, everything goes to a run log
    in `log_dir`. Calling it again replaces the previous handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT))
    logger.addHandler(console)

    try:
        run_log = _run_log_handler(log_dir)
    except OSError:
        logger.error("Failed to set up file logging.", exc_info=True)
    else:
        logger.addHandler(run_log)
        logger.info(f"Logging to {run_log.baseFilename} "
                    f"(console level {logging.getLevelName(console_level)}).")
    return logger


@contextmanager
def capture_worker_logs() -> Iterator[io.StringIO]:
    """
    Routes the records of a batch worker into a string buffer, so the parent
    can write them to its run log in input order. Handlers inherited from the
    parent process are dropped; the buffer handler is removed on exit.
    """
    logger = logging.getLogger(LOGGER_NAME)
    buffer = io.StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt="%H:%M:%S"))

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        yield buffer
    finally:
        logger.removeHandler(handler)
        handler.close()
