"""Runtime configuration for unitgraph - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from unitgraph.utils.constants import ENV_PREFIX, RUNTIME_CONFIG_FILE
from unitgraph.utils.logging import logger

DEFAULTS = {
    "paths": {
        "data_dir": "./.unitgraph",
        "build_dir": "./.unitgraph/build",
        "makefile": "./.unitgraph/Makefile",
    },
    "sandbox": {
        # "docker" or "process"
        "runner": "docker",
        "docker_bin": "docker",
        "shell": "sh",
        "keep_images": True,
    },
    "timeouts": {
        "scan": 600,
        "list": 300,
        "resolve": 120,
        "graph": 1800,
        "teardown": 60,
        # environment preparation: setup commands and image builds
        "setup": 900,
    },
    "limits": {
        "concurrency": 4,
        "output_excerpt_chars": 400,
    },
}


# seconds may be fractional; counts may not
FRACTIONAL_SECTIONS = {"timeouts"}


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .unitgraph/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (UNITGRAPH_<SECTION>_<KEY>)
    2. .unitgraph/config.json file
    3. Built-in defaults

    Unknown keys and values whose type differs from the default are ignored.
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / RUNTIME_CONFIG_FILE
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            known = key in cfg[section]
                            if known and _accepts(section, cfg[section][key], value):
                                cfg[section][key] = value
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    cfg[section][key] = _coerce(value, cfg[section][key], section)
                except ValueError as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg


def _accepts(section: str, default: Any, value: Any) -> bool:
    # bool is an int subclass, so it only replaces bools
    if isinstance(default, bool) or isinstance(value, bool):
        return isinstance(default, bool) and isinstance(value, bool)
    if isinstance(default, int) and section in FRACTIONAL_SECTIONS:
        return isinstance(value, (int, float))
    return isinstance(value, type(default))


def _coerce(value: str, default: Any, section: str = "") -> Any:
    # bool before int: bool is an int subclass
    if isinstance(default, bool):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected a boolean")
    if isinstance(default, int):
        if section in FRACTIONAL_SECTIONS:
            number = float(value)
            return int(number) if number.is_integer() else number
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, list):
        return [v.strip() for v in value.split(",")]
    return value
