"""Local subprocess-based sandbox engine for development."""

import asyncio
import codecs
import os
import re
import shutil
import signal
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from preview_core.exceptions import MountError, WriteError
from preview_core.files.vfs import VFSDirectory, VFSFile, from_mount_tree, normalize_path
from preview_core.observability import get_logger
from preview_core.protocols.engine import SERVER_READY, ServerReadyListener

logger = get_logger(__name__)

# Dev servers announce their address on stdout, e.g. "- Local: http://localhost:3000"
SERVER_URL_PATTERN = re.compile(
    r"(https?)://(localhost|127\.0\.0\.1|0\.0\.0\.0|\[::1?\]|[A-Za-z0-9.-]+):(\d{2,5})(?=\D)"
)
_SCAN_WINDOW = 256
_READ_SIZE = 4096


class ServerUrlScanner:
    """Finds the first server URL in one process's output stream.

    Keeps a short window so a URL split across chunks is still found.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self.found = False

    def feed(self, chunk: str) -> tuple[int, str] | None:
        """Return (port, url) the first time a server URL appears."""
        if self.found:
            return None
        self._buffer = (self._buffer + chunk)[-_SCAN_WINDOW:]
        match = SERVER_URL_PATTERN.search(self._buffer)
        if match is None:
            return None
        scheme, host, port = match.groups()
        if host in ("0.0.0.0", "[::]", "[::1]", "127.0.0.1"):
            host = "localhost"
        self.found = True
        return int(port), f"{scheme}://{host}:{port}"


class LocalProcess:
    """A subprocess whose merged stdout/stderr is exposed as text chunks."""

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        handle: "LocalSandboxHandle",
    ) -> None:
        self._proc = proc
        self._handle = handle
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._scanner = ServerUrlScanner()

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def output(self) -> AsyncIterator[str]:
        """Output chunks. Single consumer: each access starts a new reader."""
        return self._read_output()

    async def _read_output(self) -> AsyncIterator[str]:
        stream = self._proc.stdout
        if stream is None:
            return
        while True:
            data = await stream.read(_READ_SIZE)
            if not data:
                tail = self._decoder.decode(b"", final=True)
                if tail:
                    self._scan(tail)
                    yield tail
                return
            chunk = self._decoder.decode(data)
            if chunk:
                self._scan(chunk)
                yield chunk

    def _scan(self, chunk: str) -> None:
        found = self._scanner.feed(chunk)
        if found is not None:
            self._handle._emit_server_ready(*found)

    async def wait(self) -> int:
        return await self._proc.wait()

    async def kill(self) -> None:
        if self._proc.returncode is not None:
            return
        try:
            if os.name == "posix":
                # Process group so npm's children go down too
                os.killpg(os.getpgid(self._proc.pid), signal.SIGTERM)
            else:
                self._proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=5)
        except asyncio.TimeoutError:
            self._proc.kill()
            await self._proc.wait()


class LocalSandboxHandle:
    """A temporary working directory plus the processes spawned in it.

    WARNING: NOT for production use. Provides no security isolation.
    """

    def __init__(self, root: Path, env: dict[str, str] | None = None) -> None:
        self.root = root
        self._env = env or {}
        self._processes: list[LocalProcess] = []
        self._listeners: dict[str, list[ServerReadyListener]] = {}
        self._closed = False

    def on(self, event: str, listener: ServerReadyListener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    async def mount(self, tree: dict[str, Any]) -> None:
        self._ensure_open()
        root = from_mount_tree(tree)
        await asyncio.to_thread(self._write_tree, root, self.root)

    def _write_tree(self, directory: VFSDirectory, target: Path) -> None:
        target.mkdir(parents=True, exist_ok=True)
        for name, node in directory.children.items():
            if name in ("", ".", "..") or "/" in name:
                raise MountError(f"Malformed entry name: {name!r}")
            if isinstance(node, VFSFile):
                (target / name).write_text(node.contents, encoding="utf-8")
            else:
                self._write_tree(node, target / name)

    async def spawn(self, command: str, args: list[str]) -> LocalProcess:
        self._ensure_open()
        env = {**os.environ, **self._env}
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=self.root,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=os.name == "posix",
        )
        process = LocalProcess(proc, self)
        self._processes.append(process)
        logger.debug(
            "Spawned process",
            context={"command": command, "args": args, "pid": proc.pid},
        )
        return process

    async def write_file(self, path: str, content: str) -> None:
        self._ensure_open()
        try:
            segments = normalize_path(path)
        except MountError as e:
            raise WriteError(str(e)) from e
        target = self.root.joinpath(*segments)
        try:
            await asyncio.to_thread(self._write_text, target, content)
        except OSError as e:
            raise WriteError(f"Failed to write {path}: {e}") from e

    @staticmethod
    def _write_text(target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    async def teardown(self) -> None:
        if self._closed:
            return
        self._closed = True
        for process in self._processes:
            await process.kill()
        self._processes.clear()
        self._listeners.clear()
        await asyncio.to_thread(shutil.rmtree, self.root, ignore_errors=True)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Sandbox has been torn down")

    def _emit_server_ready(self, port: int, url: str) -> None:
        for listener in list(self._listeners.get(SERVER_READY, [])):
            listener(port, url)


class LocalSandboxEngine:
    """Boots sandboxes as temporary directories on the local machine."""

    def __init__(
        self,
        workdir: str | None = None,
        env: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize local engine.

        Args:
            workdir: Parent directory for sandbox roots (system temp if None)
            env: Extra environment variables for spawned processes
            **kwargs: Ignored (for compatibility with other engines)
        """
        self._workdir = workdir
        self._env = env or {}

    async def boot(self) -> LocalSandboxHandle:
        if self._workdir:
            Path(self._workdir).mkdir(parents=True, exist_ok=True)
        root = Path(tempfile.mkdtemp(prefix="preview-sandbox-", dir=self._workdir))
        return LocalSandboxHandle(root, env=self._env)
