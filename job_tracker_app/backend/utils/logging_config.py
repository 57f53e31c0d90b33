"""
Logging setup for the Job Tracker API.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where records go and which third-party loggers are turned down.
"""
import logging
import sys
from typing import Dict, List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Per-request access lines and SQL echo drown out tracker events at INFO
QUIET_LOGGERS: Dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "urllib3": logging.WARNING,
    "passlib": logging.WARNING,
}


def _handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    return handlers


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, sql_echo: bool = False) -> None:
    """
    Route all records to stdout (and ``log_file`` when given) at ``level``.

    Safe to call more than once: existing root handlers are replaced. With
    ``sql_echo`` the SQLAlchemy engine logger is left at INFO.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    for handler in _handlers(log_file):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name, quiet_level in QUIET_LOGGERS.items():
        if sql_echo and name == "sqlalchemy.engine":
            quiet_level = logging.INFO
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
