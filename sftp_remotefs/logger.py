import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(threadName)s - %(message)s"

# Third-party loggers that report every channel event below WARNING
LIBRARY_LOGGERS = ("paramiko",)


def _build_handlers(config: LogConfig) -> list[logging.Handler]:
    """Create the file and/or stderr handlers requested by config."""
    handlers: list[logging.Handler] = []

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    return handlers


def setup_logging(config: LogConfig) -> None:
    """
    Route sftp-remotefs log records to a log file and/or stderr.

    Args:
        config: LogConfig object containing settings.

    Note:
        - Handlers from an earlier call are replaced; file handlers are closed.
        - paramiko is held at WARNING unless the level is DEBUG.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    for handler in _build_handlers(config):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
