"""Centralized error handler for unitgraph commands."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from unitgraph.utils.logging import logger

from .constants import ERROR_LOG_FILE


def unwrap_exception_group(exc: BaseException) -> BaseException:
    """Return the first leaf exception of a (possibly nested) ExceptionGroup."""
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return exc


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that logs command failures and re-raises them as ClickException.

    The traceback goes to the error log under the command's ``--root``.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except Exception as e:
            error = unwrap_exception_group(e)
            error_type = type(error).__name__
            error_msg = str(error)

            logger.opt(exception=error).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            error_log_path = _write_error_log(
                func.__name__, error, Path(kwargs.get("root") or ".") / ERROR_LOG_FILE
            )
            user_message = f"{error_type}: {error_msg}"
            if error_log_path is not None:
                user_message += f"\n\nFull traceback logged to: {error_log_path}"

            raise click.ClickException(user_message) from e

    return wrapper


def _write_error_log(command: str, error: BaseException, path: Path) -> Path | None:
    tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write("\n" + "=" * 80 + "\n")
            f.write(f"[{datetime.now().isoformat()}] Error in command: {command}\n")
            f.write("=" * 80 + "\n")
            f.write(tb)
            f.write("=" * 80 + "\n\n")
    except OSError as log_error:
        logger.warning("Could not write {path}: {err}", path=path, err=log_error)
        return None
    return path
