"""Sandboxed tool execution: command descriptors and the runners that execute them."""

from .container import Command, Container, Mount, identity_transform
from .runner import DockerRunner, ProcessRunner, Runner, get_runner

__all__ = [
    "Command",
    "Container",
    "DockerRunner",
    "Mount",
    "ProcessRunner",
    "Runner",
    "get_runner",
    "identity_transform",
]
