"""Runners: the only components that execute sandboxed commands.

Every run follows the same contract:

1. enter the sandbox (build the environment, materialize mounts),
2. execute the invocation and capture stdout,
3. tear the sandbox down, whatever happened in step 2,
4. apply the command's transform, parse JSON and decode it.

Failures surface as one of three distinguishable errors: ToolFailedError
(non-zero exit, timeout or an environment that could not be prepared, told
apart by its stage), UnusableOutputError (transform rejected the raw output
or returned something other than bytes, str or None) and SchemaMismatchError
(canonical JSON did not decode).
"""

import asyncio
import hashlib
import inspect
import json
import os
import shutil
import tempfile
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from unitgraph.errors import (
    SchemaMismatchError,
    ToolFailedError,
    UnitGraphError,
    UnusableOutputError,
)
from unitgraph.sandbox.container import Command, Container, _context_name
from unitgraph.utils.logging import get_subprocess_env, logger

T = TypeVar("T")


@dataclass
class ProcessResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


async def run_process(
    argv: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    stdin: bytes | None = None,
    label: str = "",
    stage: str = "invocation",
) -> ProcessResult:
    """Execute a subprocess using asyncio pipes.

    The child is killed on timeout and on cancellation of the awaiting task.
    A missing executable is reported like a shell would, with code 127.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=env,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise ToolFailedError(127, f"cannot execute {argv[0]!r}: {e}", label, stage) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(stdin), timeout=timeout)
    except TimeoutError:
        await _kill(process)
        raise ToolFailedError(-1, f"timed out after {timeout}s", label, stage) from None
    except asyncio.CancelledError:
        await _kill(process)
        raise

    return ProcessResult(process.returncode, stdout, stderr)


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


class Runner(ABC):
    """Builds the sandbox, executes, tears down, normalizes and decodes."""

    def __init__(
        self,
        *,
        default_timeout: float | None = None,
        setup_timeout: float | None = None,
        excerpt_chars: int = 400,
    ):
        self.default_timeout = default_timeout
        # bounds each environment preparation step (setup commands, image build)
        self.setup_timeout = setup_timeout
        self.excerpt_chars = excerpt_chars

    async def run(
        self,
        command: Command,
        decode: Callable[[Any], T],
        *,
        timeout: float | None = None,
    ) -> T:
        """Run ``command`` and return ``decode(json.loads(transform(stdout)))``."""
        container = command.container
        label = command.label or (container.cmd[0] if container.cmd else "command")
        effective_timeout = command.timeout or timeout or self.default_timeout

        logger.debug(f"[{label}] running {container.cmd}")
        async with self.sandbox(container, label) as sandbox:
            raw = await self.execute(sandbox, container, effective_timeout, label)

        canonical = await self._transform(command, raw, label)
        return self._decode(canonical, decode, label)

    @abstractmethod
    def sandbox(self, container: Container, label: str):
        """Async context manager yielding a prepared sandbox, torn down on exit."""

    @abstractmethod
    async def execute(
        self, sandbox: Any, container: Container, timeout: float | None, label: str
    ) -> bytes:
        """Run the invocation inside ``sandbox`` and return its stdout."""

    async def _transform(self, command: Command, raw: bytes, label: str) -> bytes | str | None:
        try:
            result = command.transform(raw)
            if inspect.isawaitable(result):
                result = await result
        except UnitGraphError:
            raise
        except Exception as e:
            raise UnusableOutputError(e, self._excerpt(raw), label) from e
        if result is not None and not isinstance(result, (bytes, bytearray, str)):
            error = TypeError(
                f"transform returned {type(result).__name__}, expected bytes, str or None"
            )
            raise UnusableOutputError(error, self._excerpt(raw), label)
        return result

    def _excerpt(self, raw: bytes) -> str:
        return raw[: self.excerpt_chars].decode("utf-8", errors="replace")

    def _decode(self, canonical: bytes | str | None, decode: Callable[[Any], T], label: str) -> T:
        if canonical is None or not canonical.strip():
            value = None
        else:
            try:
                value = json.loads(canonical)
            except (ValueError, UnicodeDecodeError) as e:
                raise SchemaMismatchError(f"transformed output is not JSON: {e}", label) from e
        try:
            return decode(value)
        except SchemaMismatchError as e:
            if e.label or not label:
                raise
            raise SchemaMismatchError(str(e).removeprefix("schema mismatch: "), label) from e
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise SchemaMismatchError(str(e), label) from e


@dataclass
class ProcessSandbox:
    """A throwaway directory standing in for the container filesystem."""

    root: Path
    # sandbox path -> host location inside root, longest first
    paths: list[tuple[str, Path]] = field(default_factory=list)

    def translate(self, arg: str) -> str:
        for sandbox_path, location in self.paths:
            if arg == sandbox_path:
                return str(location)
            if arg.startswith(sandbox_path.rstrip("/") + "/"):
                return str(location) + arg[len(sandbox_path.rstrip("/")) :]
        return arg

    def location(self, sandbox_path: str) -> Path:
        return self.root / sandbox_path.lstrip("/")


class ProcessRunner(Runner):
    """Runs tools as host processes inside a temporary directory.

    Read-only mounts are copied in, read-write mounts are symlinked. Sandbox
    paths in argv and the working directory are rewritten to their location in
    the temporary directory. The base image is not used.
    """

    def __init__(self, *, shell: str = "sh", **kwargs):
        super().__init__(**kwargs)
        self.shell = shell

    @asynccontextmanager
    async def sandbox(self, container: Container, label: str) -> AsyncIterator[ProcessSandbox]:
        root = Path(tempfile.mkdtemp(prefix="unitgraph-sandbox-"))
        try:
            sandbox = ProcessSandbox(root)
            try:
                self._materialize(sandbox, container)
            except OSError as e:
                raise ToolFailedError(-1, str(e), label, stage="mount") from e

            env = self._env(sandbox, container)
            for step in container.setup:
                result = await run_process(
                    [self.shell, "-c", step],
                    cwd=str(root),
                    env=env,
                    timeout=self.setup_timeout,
                    label=label,
                    stage="setup",
                )
                if result.returncode != 0:
                    raise ToolFailedError(
                        result.returncode, result.stderr_text, label, stage="setup"
                    )
            yield sandbox
        finally:
            _remove_tree(root, label)

    @staticmethod
    def _materialize(sandbox: ProcessSandbox, container: Container) -> None:
        for mount in container.mounts:
            target = sandbox.location(mount.sandbox_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            source = Path(mount.host_path)
            if not source.exists():
                raise FileNotFoundError(f"mount source {mount.host_path} does not exist")
            if not mount.read_only:
                target.symlink_to(source.resolve(), target_is_directory=source.is_dir())
            elif source.is_dir():
                shutil.copytree(source, target, symlinks=True)
            else:
                shutil.copy2(source, target)
            sandbox.paths.append((mount.sandbox_path, target))
        for host_file, dest in container.add_files:
            target = sandbox.location(dest)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(host_file, target)
            sandbox.paths.append((dest, target))
        sandbox.paths.sort(key=lambda item: len(item[0]), reverse=True)

    async def execute(
        self, sandbox: ProcessSandbox, container: Container, timeout: float | None, label: str
    ) -> bytes:
        argv = [sandbox.translate(arg) for arg in container.cmd]
        cwd = sandbox.translate(container.dir) if container.dir else str(sandbox.root)
        result = await run_process(
            argv, cwd=cwd, env=self._env(sandbox, container), timeout=timeout, label=label
        )
        if result.returncode != 0:
            raise ToolFailedError(result.returncode, result.stderr_text, label)
        return result.stdout

    @staticmethod
    def _env(sandbox: ProcessSandbox, container: Container) -> dict[str, str]:
        env = get_subprocess_env()
        env.update(container.env)
        env["UNITGRAPH_SANDBOX_ROOT"] = str(sandbox.root)
        return env


@dataclass
class DockerSandbox:
    image: str
    name: str


class DockerRunner(Runner):
    """Runs tools in Docker containers.

    The image is built from ``Container.dockerfile()`` and tagged by content
    hash, so identical environments are reused. Each invocation gets a
    uniquely named container that is force-removed on every exit path.
    """

    def __init__(
        self,
        *,
        docker_bin: str = "docker",
        keep_images: bool = True,
        teardown_timeout: float = 60,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.docker_bin = docker_bin
        self.keep_images = keep_images
        self.teardown_timeout = teardown_timeout

    @staticmethod
    def image_tag(container: Container) -> str:
        digest = hashlib.sha256(container.dockerfile().encode("utf-8"))
        for host_file, dest in container.add_files:
            digest.update(f"\0{host_file}\0{dest}".encode())
        return f"unitgraph-env:{digest.hexdigest()[:16]}"

    @asynccontextmanager
    async def sandbox(self, container: Container, label: str) -> AsyncIterator[DockerSandbox]:
        context_dir = Path(tempfile.mkdtemp(prefix="unitgraph-docker-"))
        sandbox = DockerSandbox(self.image_tag(container), f"unitgraph-{uuid.uuid4().hex[:12]}")
        try:
            (context_dir / "Dockerfile").write_text(container.dockerfile(), encoding="utf-8")
            try:
                for i, (host_file, _) in enumerate(container.add_files):
                    shutil.copy2(host_file, context_dir / _context_name(i))
            except OSError as e:
                raise ToolFailedError(-1, str(e), label, stage="mount") from e

            result = await run_process(
                [self.docker_bin, "build", "-q", "-t", sandbox.image, str(context_dir)],
                env=get_subprocess_env(),
                timeout=self.setup_timeout,
                label=label,
                stage="docker build",
            )
            if result.returncode != 0:
                raise ToolFailedError(
                    result.returncode, result.stderr_text, label, stage="docker build"
                )
            yield sandbox
        finally:
            await self._teardown(sandbox, label)
            _remove_tree(context_dir, label)

    async def execute(
        self, sandbox: DockerSandbox, container: Container, timeout: float | None, label: str
    ) -> bytes:
        argv = [self.docker_bin, "run", "--name", sandbox.name]
        for mount in container.mounts:
            argv += ["-v", mount.docker_volume()]
        if container.dir:
            argv += ["-w", container.dir]
        for key, value in container.env.items():
            argv += ["-e", f"{key}={value}"]
        argv.append(sandbox.image)
        argv.extend(container.cmd)

        result = await run_process(argv, env=get_subprocess_env(), timeout=timeout, label=label)
        if result.returncode != 0:
            raise ToolFailedError(result.returncode, result.stderr_text, label)
        return result.stdout

    async def _teardown(self, sandbox: DockerSandbox, label: str) -> None:
        commands = [[self.docker_bin, "rm", "-f", sandbox.name]]
        if not self.keep_images:
            commands.append([self.docker_bin, "rmi", "-f", sandbox.image])
        for argv in commands:
            try:
                result = await run_process(argv, timeout=self.teardown_timeout, label=label)
            except ToolFailedError as e:
                logger.warning(f"[{label}] teardown {argv[1]} failed: {e}")
                continue
            if result.returncode != 0:
                # rm -f of a container that was never created lands here too
                logger.debug(f"[{label}] {' '.join(argv)}: {result.stderr_text.strip()}")


def _remove_tree(path: Path, label: str) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"[{label}] could not remove sandbox directory {path}: {e}")


def get_runner(runtime_config: dict[str, Any]) -> Runner:
    """Build the runner selected by ``sandbox.runner`` in the runtime config."""
    sandbox_cfg = runtime_config["sandbox"]
    limits = runtime_config["limits"]
    kind = sandbox_cfg["runner"]
    if kind == "docker":
        return DockerRunner(
            docker_bin=sandbox_cfg["docker_bin"],
            keep_images=sandbox_cfg["keep_images"],
            teardown_timeout=runtime_config["timeouts"]["teardown"],
            setup_timeout=runtime_config["timeouts"]["setup"],
            excerpt_chars=limits["output_excerpt_chars"],
        )
    if kind == "process":
        return ProcessRunner(
            shell=sandbox_cfg["shell"],
            setup_timeout=runtime_config["timeouts"]["setup"],
            excerpt_chars=limits["output_excerpt_chars"],
        )
    raise ValueError(f"unknown sandbox runner {kind!r} (expected 'docker' or 'process')")


__all__ = [
    "DockerRunner",
    "ProcessRunner",
    "ProcessResult",
    "Runner",
    "get_runner",
    "run_process",
]
