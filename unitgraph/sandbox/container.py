"""Descriptors for isolated tool invocations.

Plugins never execute anything themselves. They describe an environment and
an invocation (a :class:`Container`) plus a pure function that normalizes the
tool's raw output into canonical JSON (a :class:`Command`), and hand that to a
runner.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

Transform = Callable[[bytes], "bytes | None | Awaitable[bytes | None]"]


def identity_transform(raw: bytes) -> bytes:
    return raw


@dataclass(frozen=True)
class Mount:
    """Host directory made visible inside the sandbox."""

    host_path: str
    sandbox_path: str
    read_only: bool = True

    def docker_volume(self) -> str:
        spec = f"{self.host_path}:{self.sandbox_path}"
        return spec + ":ro" if self.read_only else spec


@dataclass
class Container:
    """Environment setup plus invocation for one sandboxed tool run."""

    cmd: list[str]
    base_image: str = "ubuntu:22.04"
    # Shell steps executed while preparing the environment (Dockerfile RUN lines)
    setup: list[str] = field(default_factory=list)
    mounts: list[Mount] = field(default_factory=list)
    # (host file, sandbox path) pairs copied into the environment
    add_files: list[tuple[str, str]] = field(default_factory=list)
    dir: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def dockerfile(self) -> str:
        """Render the environment part of this container as a Dockerfile."""
        lines = [f"FROM {self.base_image}"]
        lines.extend(f"RUN {step}" for step in self.setup)
        for i, (_, dest) in enumerate(self.add_files):
            lines.append(f"COPY {_context_name(i)} {dest}")
        return "\n".join(lines) + "\n"


@dataclass
class Command:
    """A container run whose stdout is normalized by ``transform``.

    ``transform`` receives the raw stdout bytes and returns canonical JSON
    bytes (``None`` or empty means "no output", decoded as JSON null). It may
    be a coroutine function when normalizing needs other async work, such as
    resolving import paths through the dependency resolver.
    """

    container: Container
    transform: Transform = identity_transform
    timeout: float | None = None
    label: str = ""


def _context_name(index: int) -> str:
    return f"add_file_{index}"
