"""unitgraph - source unit dependency and symbol graph orchestration."""

__version__ = "0.1.0"
