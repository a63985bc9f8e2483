"""Centralized logging configuration using Loguru with Pino-compatible output.

Usage:
    from unitgraph.utils.logging import logger
    logger.info("Scanning {root}", root=root)
    logger.debug("Only shows if UNITGRAPH_LOG_LEVEL=DEBUG")

Environment Variables:
    UNITGRAPH_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    UNITGRAPH_LOG_JSON: 0|1 (default: 0, human-readable)
    UNITGRAPH_LOG_FILE: path to log file (optional, always NDJSON)
    UNITGRAPH_REQUEST_ID: correlation ID passed on to sandboxed tools
"""

import json
import os
import sys
import uuid

from loguru import logger

logger.remove()

# Pino-compatible numeric levels
PINO_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get("UNITGRAPH_LOG_LEVEL", "INFO").upper()
_json_mode = os.environ.get("UNITGRAPH_LOG_JSON", "0") == "1"
_log_file = os.environ.get("UNITGRAPH_LOG_FILE")
_request_id = os.environ.get("UNITGRAPH_REQUEST_ID") or str(uuid.uuid4())


def _pino_record(record) -> dict:
    pino_log = {
        "level": PINO_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "request_id": record["extra"].get("request_id", _request_id),
    }
    for key, value in record["extra"].items():
        if key != "request_id":
            pino_log[key] = value
    if record["exception"]:
        exc = record["exception"]
        pino_log["err"] = {
            "type": exc.type.__name__ if exc.type else "Error",
            "message": str(exc.value) if exc.value else "",
        }
    return pino_log


def pino_compatible_sink(message):
    """Write one NDJSON line per record to stderr.

    Never call logger.* inside a sink: it recurses.
    """
    sys.stderr.write(json.dumps(_pino_record(message.record), default=str) + "\n")
    sys.stderr.flush()


_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")

if _json_mode:
    logger.add(pino_compatible_sink, level=_log_level, colorize=False)
else:
    # stderr keeps stdout clean for JSON written by the CLI
    logger.add(sys.stderr, level=_log_level, format=_human_format, colorize=None)

if _log_file:

    def _file_pino_sink(message):
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(_pino_record(message.record), default=str) + "\n")

    logger.add(_file_pino_sink, level="DEBUG")


def get_subprocess_env() -> dict[str, str]:
    """Environment for sandboxed tools, carrying the correlation ID."""
    env = os.environ.copy()
    env["UNITGRAPH_REQUEST_ID"] = _request_id
    return env


__all__ = [
    "logger",
    "get_subprocess_env",
]
