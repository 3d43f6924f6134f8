"""Sandbox engine protocol.

The engine is host-provided: it boots isolated environments, mounts a
filesystem, spawns processes and emits events. Implementations live under
`preview_core.engines` or in third-party packages registered through the
`preview_core.engines` entry point group.
"""

from collections.abc import AsyncIterator
from typing import Any, Callable, Protocol, runtime_checkable

SERVER_READY = "server-ready"

ServerReadyListener = Callable[[int, str], None]


@runtime_checkable
class SandboxProcess(Protocol):
    """A process spawned inside a sandbox."""

    @property
    def output(self) -> AsyncIterator[str]:
        """Output chunks (stdout and stderr merged) in emission order.

        Chunks are not line-aligned. Iteration ends when the process exits.
        """
        ...

    async def wait(self) -> int:
        """Wait for the process to exit and return its exit code."""
        ...

    async def kill(self) -> None:
        """Terminate the process. No-op once it has exited."""
        ...


@runtime_checkable
class SandboxHandle(Protocol):
    """A booted, isolated environment."""

    async def mount(self, tree: dict[str, Any]) -> None:
        """Mount a nested file tree at the working directory root."""
        ...

    async def spawn(self, command: str, args: list[str]) -> SandboxProcess:
        """Start a process in the working directory."""
        ...

    def on(self, event: str, listener: ServerReadyListener) -> None:
        """Register an event listener.

        `server-ready` listeners receive (port, url) once the engine sees a
        spawned process bind a port.
        """
        ...

    async def write_file(self, path: str, content: str) -> None:
        """Write a single file into the mounted filesystem."""
        ...

    async def teardown(self) -> None:
        """Stop every process and release the environment."""
        ...


@runtime_checkable
class SandboxEngine(Protocol):
    """Factory for sandbox handles."""

    async def boot(self) -> SandboxHandle:
        """Allocate a new isolated environment."""
        ...
