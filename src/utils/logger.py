import logging
import sys
from typing import Iterable, List, Optional

# Top-level packages whose module loggers (logging.getLogger(__name__)) roll up here
PACKAGES = ("parsers", "resolver", "matcher", "lifecycle", "database", "api", "main")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _handlers(log_file: Optional[str]) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    handlers = [console]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)
    return handlers


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, packages: Iterable[str] = PACKAGES) -> None:
    """
    Route every project package to one console handler and an optional log file.

    The handlers are shared, so the file is opened once however many packages
    log to it. Calling this again replaces the previous handlers.
    """
    handlers = _handlers(log_file)
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    for package in packages:
        logger = logging.getLogger(package)
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        logger.setLevel(numeric_level)
        for handler in handlers:
            logger.addHandler(handler)
