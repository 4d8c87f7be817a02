import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from depotfetch.constants import (
    DEBUG_LOG_FORMAT,
    INFO_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    LOG_FILE_NAME,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

# Shared application logger; doubles as the progress sink for retrievals
logger = logging.getLogger(LOGGER_NAME)

_file_handler: Optional[RotatingFileHandler] = None


def _resolve_level(level_name: str) -> Optional[int]:
    level = getattr(logging, str(level_name).upper(), None)
    return level if isinstance(level, int) else None


def _formatter_for(handler: logging.Handler, level: int) -> logging.Formatter:
    """
    Pick the formatter for a handler at the given level.

    Rich handlers render their own time and level columns, so they only ever get
    the bare message. Plain handlers (the rotating file) get the verbose format
    below INFO and the compact format otherwise.
    """
    if isinstance(handler, RichHandler):
        return logging.Formatter("%(message)s")
    if level >= logging.INFO:
        return logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    return logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def set_log_level(level_name: str) -> None:
    """
    Set the log level for the depotfetch logger and every attached handler.

    Invalid level names are reported with a warning and leave the current
    configuration unchanged.

    Parameters:
        level_name (str): Case-insensitive level name such as "debug" or "INFO".
    """
    level = _resolve_level(level_name)
    if level is None:
        logger.warning(f"Invalid log level name: {level_name}. Using current level.")
        return

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
        handler.setFormatter(_formatter_for(handler, level))

    logger.log(level, f"Log level set to {logging.getLevelName(level)}")


def add_file_logging(log_dir_path: Path, level_name: str = "INFO") -> Path:
    """
    Enable rotating file logging for the depotfetch logger.

    Creates the directory when needed and attaches a RotatingFileHandler writing
    to LOG_FILE_NAME inside it. A handler previously installed by this function
    is closed and replaced. Invalid level names fall back to INFO.

    Returns:
        Path: The log file being written.
    """
    global _file_handler
    if _file_handler is not None and _file_handler in logger.handlers:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    log_dir_path = Path(log_dir_path)
    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file = log_dir_path / LOG_FILE_NAME

    file_log_level = _resolve_level(level_name)
    if file_log_level is None:
        logger.warning(
            f"Invalid file log level name: {level_name}. Defaulting to INFO."
        )
        file_log_level = logging.INFO

    _file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    _file_handler.setLevel(file_log_level)
    _file_handler.setFormatter(_formatter_for(_file_handler, file_log_level))
    logger.addHandler(_file_handler)

    logger.info(
        f"File logging enabled at {log_file} with level {logging.getLevelName(file_log_level)}"
    )
    return log_file


def _initialize_logger() -> None:
    """
    Attach a console RichHandler to the depotfetch logger.

    Existing handlers are removed, propagation to the root logger is disabled and
    the initial level is read from LOG_LEVEL_ENV_VAR (INFO when unset or invalid).
    File logging stays off until add_file_logging() is called.
    """
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )

    requested = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    initial_level = _resolve_level(requested)
    if initial_level is None:
        logger.warning(f"Invalid {LOG_LEVEL_ENV_VAR}={requested}; defaulting to INFO.")
        initial_level = logging.INFO

    console_handler.setFormatter(_formatter_for(console_handler, initial_level))
    logger.addHandler(console_handler)
    logger.setLevel(initial_level)
    console_handler.setLevel(initial_level)


_initialize_logger()
