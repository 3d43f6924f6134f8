"""Scriptable in-memory sandbox engine.

Used for testing and demos without a real sandbox. Behaviour is scripted
per command line; every call is recorded for assertions.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from preview_core.exceptions import WriteError
from preview_core.files.vfs import VFSDirectory, VFSFile, from_mount_tree, normalize_path
from preview_core.protocols.engine import SERVER_READY, ServerReadyListener


@dataclass
class ScriptedCommand:
    """How a spawned command behaves.

    Attributes:
        output: Chunks emitted before exit (or before readiness)
        exit_code: Exit code; None keeps the process alive until killed
        ready_port/ready_url: Emit server-ready after the output when set
    """

    output: list[str] = field(default_factory=list)
    exit_code: int | None = 0
    ready_port: int | None = None
    ready_url: str | None = None


class MockProcess:
    """A scripted process."""

    def __init__(self, handle: "MockSandboxHandle", script: ScriptedCommand) -> None:
        self._handle = handle
        self._script = script
        self._killed = asyncio.Event()
        self._exit_code: int | None = None
        self._done = asyncio.Event()

    @property
    def output(self) -> AsyncIterator[str]:
        return self._emit()

    async def _emit(self) -> AsyncIterator[str]:
        for chunk in self._script.output:
            if self._killed.is_set():
                break
            # Yield to the loop between chunks, like real stream reads
            await asyncio.sleep(0)
            yield chunk

        if self._script.ready_url is not None and not self._killed.is_set():
            self._handle.emit_server_ready(self._script.ready_port or 0, self._script.ready_url)

        if self._script.exit_code is None:
            await self._killed.wait()
            self._finish(-15)
        elif not self._killed.is_set():
            self._finish(self._script.exit_code)

    def _finish(self, code: int) -> None:
        if self._exit_code is None:
            self._exit_code = code
            self._done.set()

    async def wait(self) -> int:
        await self._done.wait()
        assert self._exit_code is not None
        return self._exit_code

    async def kill(self) -> None:
        self._killed.set()
        self._finish(-15)


class MockSandboxHandle:
    """In-memory sandbox recording every call."""

    def __init__(self, engine: "MockSandboxEngine", handle_id: int) -> None:
        self.engine = engine
        self.handle_id = handle_id
        self.root = VFSDirectory()
        self.mounted_tree: dict[str, Any] | None = None
        self.spawned: list[tuple[str, list[str]]] = []
        self.processes: list[MockProcess] = []
        self.writes: list[tuple[str, str]] = []
        self.torn_down = False
        self._listeners: dict[str, list[ServerReadyListener]] = {}

    def on(self, event: str, listener: ServerReadyListener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def emit_server_ready(self, port: int, url: str) -> None:
        for listener in list(self._listeners.get(SERVER_READY, [])):
            listener(port, url)

    async def mount(self, tree: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if self.engine.mount_error is not None:
            raise self.engine.mount_error
        self.mounted_tree = tree
        self.root = from_mount_tree(tree)

    async def spawn(self, command: str, args: list[str]) -> MockProcess:
        await asyncio.sleep(0)
        self.spawned.append((command, list(args)))
        key = " ".join([command, *args])
        script = self.engine.scripts.get(key, ScriptedCommand())
        process = MockProcess(self, script)
        self.processes.append(process)
        return process

    async def write_file(self, path: str, content: str) -> None:
        await asyncio.sleep(0)
        self.writes.append((path, content))
        if path in self.engine.failing_writes:
            raise WriteError(f"Failed to write {path}")
        segments = normalize_path(path)
        directory = self.root
        for segment in segments[:-1]:
            node = directory.children.setdefault(segment, VFSDirectory())
            if not isinstance(node, VFSDirectory):
                raise WriteError(f"Not a directory: {segment}")
            directory = node
        directory.children[segments[-1]] = VFSFile(contents=content)

    def read_file(self, path: str) -> str:
        node: Any = self.root
        for segment in normalize_path(path):
            node = node.children[segment]
        return node.contents

    async def teardown(self) -> None:
        self.engine.teardown_calls += 1
        if self.torn_down:
            return
        self.torn_down = True
        if self.engine.teardown_delay:
            await asyncio.sleep(self.engine.teardown_delay)
        for process in self.processes:
            await process.kill()
        self._listeners.clear()
        self.engine.live_handles.discard(self.handle_id)


class MockSandboxEngine:
    """Engine whose sandboxes follow a script.

    Example:
        engine = MockSandboxEngine(scripts={
            "npm install": ScriptedCommand(output=["added 1 package\\n"]),
            "npm run dev": ScriptedCommand(
                exit_code=None, ready_port=3000, ready_url="http://localhost:3000"
            ),
        })
    """

    def __init__(
        self,
        scripts: dict[str, ScriptedCommand] | None = None,
        boot_error: Exception | None = None,
        mount_error: Exception | None = None,
        failing_writes: set[str] | None = None,
        boot_delay: float = 0,
        teardown_delay: float = 0,
        **kwargs: Any,
    ) -> None:
        self.scripts = scripts or {}
        self.boot_error = boot_error
        self.mount_error = mount_error
        self.failing_writes = failing_writes or set()
        self.boot_delay = boot_delay
        self.teardown_delay = teardown_delay
        self.handles: list[MockSandboxHandle] = []
        self.live_handles: set[int] = set()
        self.max_live_handles = 0
        self.teardown_calls = 0

    async def boot(self) -> MockSandboxHandle:
        await asyncio.sleep(self.boot_delay)
        if self.boot_error is not None:
            raise self.boot_error
        handle = MockSandboxHandle(self, len(self.handles))
        self.handles.append(handle)
        self.live_handles.add(handle.handle_id)
        self.max_live_handles = max(self.max_live_handles, len(self.live_handles))
        return handle
