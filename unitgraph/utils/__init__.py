"""unitgraph utilities package."""

from .constants import DATA_DIR_NAME, ERROR_LOG_FILE, REPO_CONFIG_FILE
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .logging import logger

__all__ = [
    "DATA_DIR_NAME",
    "ERROR_LOG_FILE",
    "REPO_CONFIG_FILE",
    "ExitCodes",
    "handle_exceptions",
    "logger",
]
