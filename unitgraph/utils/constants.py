"""Centralized constants for the unitgraph utils package."""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

# Working directory for unitgraph artifacts, under the repository root
DATA_DIR_NAME = ".unitgraph"

# Traceback log, relative to the repository root
ERROR_LOG_FILE = Path(DATA_DIR_NAME) / "error.log"

# Repository configuration file, looked up at the repository root
REPO_CONFIG_FILE = ".unitgraph.yml"

# Runtime configuration file, relative to the repository root
RUNTIME_CONFIG_FILE = Path(DATA_DIR_NAME) / "config.json"

# ============================================================================
# PLUGINS
# ============================================================================

# Entry point group scanned for toolchain registration callables
TOOLCHAIN_ENTRY_POINT_GROUP = "unitgraph.toolchains"

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_PREFIX = "UNITGRAPH"
