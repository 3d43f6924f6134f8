"""Sandbox lifecycle controller.

Drives one view's session through Loading -> Booting -> Installing ->
Running -> Ready, or to Error on the first failing stage. Stage failures
are caught here, appended to the session log with an "Error:" prefix and
never propagate to the caller.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from preview_core.config import Config
from preview_core.exceptions import (
    BootError,
    InstallError,
    MountError,
    SandboxError,
    SessionBusyError,
    StageTimeoutError,
    WriteError,
)
from preview_core.files.vfs import build_vfs, default_bootstrap_files, to_mount_tree
from preview_core.models import ProjectFile
from preview_core.observability import StructuredLogger, Timer, emit_counter, get_logger
from preview_core.preview.aggregator import OutputAggregator
from preview_core.preview.readiness import ReadinessDetector
from preview_core.preview.session import SandboxSession, SessionState
from preview_core.protocols.engine import SandboxEngine, SandboxHandle, SandboxProcess

logger = get_logger(__name__)

T = TypeVar("T")

# How long to keep reading output after the install process exits
OUTPUT_DRAIN_SECONDS = 2.0


def _log(session: SandboxSession) -> StructuredLogger:
    return logger.bind(session_id=session.id)


class PreviewController:
    """Owns at most one sandbox session for a single builder view.

    Example:
        controller = PreviewController(engine, config)
        session = await controller.start(files)
        if session.state is SessionState.READY:
            print(session.preview_url)
        await controller.teardown()
    """

    def __init__(
        self,
        engine: SandboxEngine,
        config: Config | None = None,
        bootstrap_files: list[ProjectFile] | None = None,
    ) -> None:
        """Initialize controller.

        Args:
            engine: Sandbox engine used to boot environments
            config: Commands, timeouts and log settings
            bootstrap_files: Files injected into every mount
                (built from config when omitted)
        """
        self.engine = engine
        self.config = config or Config()
        self.bootstrap_files = (
            bootstrap_files
            if bootstrap_files is not None
            else default_bootstrap_files(self.config.bootstrap)
        )
        self._session: SandboxSession | None = None
        self._detector: ReadinessDetector | None = None
        self._pumps: list[asyncio.Task[None]] = []
        # Set while a start is tearing down its predecessor
        self._starting = False

    @property
    def session(self) -> SandboxSession | None:
        return self._session

    @property
    def state(self) -> SessionState | None:
        return self._session.state if self._session else None

    @property
    def preview_url(self) -> str | None:
        return self._session.preview_url if self._session else None

    @property
    def logs(self) -> list[str]:
        return self._session.log.entries if self._session else []

    @property
    def is_busy(self) -> bool:
        """Whether a start sequence is in flight."""
        if self._starting:
            return True
        return self._session is not None and not self._session.state.settled

    async def start(self, files: list[ProjectFile]) -> SandboxSession:
        """Boot, mount, install and run the project until it is ready.

        A settled prior session is torn down first. Suspends until the
        session reaches Ready or Error (or is torn down meanwhile).

        Args:
            files: Project files to mount

        Returns:
            The session this call created

        Raises:
            SessionBusyError: If another start is still in flight
        """
        if self.is_busy:
            raise SessionBusyError("A preview session is already starting")

        self._starting = True
        try:
            await self.teardown()
        finally:
            self._starting = False

        session = SandboxSession(log=OutputAggregator(self.config.logs.capacity))
        detector = ReadinessDetector()
        self._session = session
        self._detector = detector
        _log(session).info("Starting preview session", context={"files": len(files)})

        try:
            await self._run(session, detector, files)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if self._session is session or (task is not None and task.cancelling()):
                raise
            _log(session).info("Start abandoned after teardown")
        except SandboxError as e:
            await self._fail(session, e)
        return session

    async def rebuild(self, files: list[ProjectFile]) -> SandboxSession:
        """Tear down whatever is running and start over."""
        await self.teardown()
        return await self.start(files)

    async def teardown(self) -> None:
        """Release the sandbox handle and stop all processes. Idempotent."""
        session = self._session
        if session is None:
            return

        self._session = None
        detector, self._detector = self._detector, None
        pumps, self._pumps = self._pumps, []
        handle, session.handle = session.handle, None
        session.preview_url = None

        if detector is not None:
            detector.cancel()

        if handle is not None:
            await self._release(session, handle)

        for task in pumps:
            task.cancel()
        if pumps:
            await asyncio.gather(*pumps, return_exceptions=True)

        _log(session).info("Preview session torn down", context={"state": session.state.value})

    @staticmethod
    async def _release(session: SandboxSession, handle: SandboxHandle) -> None:
        try:
            await handle.teardown()
        except Exception as e:
            _log(session).warning("Sandbox teardown failed", error=e)

    async def write_file(self, path: str, content: str) -> None:
        """Write one file into the running sandbox.

        Raises:
            WriteError: If no session is ready or the engine write fails
        """
        session = self._session
        if session is None or session.state is not SessionState.READY or session.handle is None:
            raise WriteError("No ready preview session")
        try:
            await session.handle.write_file(path, content)
        except WriteError:
            raise
        except Exception as e:
            raise WriteError(f"Failed to write {path}: {e}") from e

    async def _run(
        self,
        session: SandboxSession,
        detector: ReadinessDetector,
        files: list[ProjectFile],
    ) -> None:
        timeouts = self.config.timeouts

        session.transition(SessionState.BOOTING)
        handle = await self._stage(session, "boot", self.engine.boot(), timeouts.boot_seconds, BootError)
        if self._superseded(session):
            # Torn down while booting: the late handle is never owned
            await self._release(session, handle)
            return
        session.handle = handle

        tree = to_mount_tree(build_vfs(files, self.bootstrap_files))
        await self._stage(session, "mount", handle.mount(tree), timeouts.mount_seconds, MountError)
        if self._superseded(session):
            return

        session.transition(SessionState.INSTALLING)
        install = await self._spawn(session, handle, self.config.commands.install, InstallError)
        if install is None:
            return
        exit_code = await self._stage(
            session,
            "install",
            self._wait_for_exit(install),
            timeouts.install_seconds,
            InstallError,
        )
        if self._superseded(session):
            return
        if exit_code != 0:
            raise InstallError(exit_code, session.log.tail(self.config.logs.error_tail_lines))

        session.transition(SessionState.RUNNING)
        # Only the dev server may announce readiness, not install output
        detector.attach(handle)
        if await self._spawn(session, handle, self.config.commands.dev, SandboxError) is None:
            return
        ready = await self._stage(session, "ready", detector.wait(), timeouts.ready_seconds, SandboxError)
        if self._superseded(session):
            return

        session.transition(SessionState.READY, preview_url=ready.url)
        _log(session).info("Preview ready", context={"port": ready.port, "url": ready.url})
        emit_counter("preview.session.ready")

    async def _stage(
        self,
        session: SandboxSession,
        stage: str,
        awaitable: Awaitable[T],
        timeout: float | None,
        error_cls: type[SandboxError],
    ) -> T:
        """Await one stage, converting engine failures to the stage's error."""
        with Timer(f"preview.stage.{stage}") as timer:
            try:
                result = await asyncio.wait_for(awaitable, timeout)
            except asyncio.TimeoutError:
                raise StageTimeoutError(stage, timeout or 0) from None
            except SandboxError:
                raise
            except Exception as e:
                raise error_cls(str(e) or type(e).__name__) from e

        _log(session).info(f"Stage {stage} complete", context={"stage": stage}, duration_ms=timer.duration_ms)
        return result

    async def _spawn(
        self,
        session: SandboxSession,
        handle: SandboxHandle,
        command: list[str],
        error_cls: type[SandboxError],
    ) -> tuple[SandboxProcess, asyncio.Task[None]] | None:
        """Spawn a command and pump its output into the session log.

        Returns None if the session was torn down while spawning.
        """
        if not command:
            raise error_cls("No command configured")
        try:
            process = await handle.spawn(command[0], list(command[1:]))
        except SandboxError:
            raise
        except Exception as e:
            raise error_cls(f"Failed to spawn {' '.join(command)}: {e}") from e

        if self._superseded(session):
            await process.kill()
            return None

        pump = asyncio.create_task(self._pump_output(session.log, process))
        self._pumps.append(pump)
        return process, pump

    async def _wait_for_exit(self, spawned: tuple[SandboxProcess, asyncio.Task[None]]) -> int:
        process, pump = spawned
        exit_code = await process.wait()
        # Let buffered output land before the exit code is acted on
        await asyncio.wait({pump}, timeout=OUTPUT_DRAIN_SECONDS)
        if not pump.done():
            # Pipe held open by a detached child
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)
        return exit_code

    @staticmethod
    async def _pump_output(log: OutputAggregator, process: SandboxProcess) -> None:
        try:
            await log.pump(process.output)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Process output stream failed", error=e)

    def _superseded(self, session: SandboxSession) -> bool:
        return self._session is not session

    async def _fail(self, session: SandboxSession, error: SandboxError) -> None:
        """Record a stage failure and release the session's sandbox.

        The session stays current in Error so its log remains visible. The
        handle is released before the state settles, so no new start can
        boot alongside it.
        """
        stage = session.state.value
        log = _log(session)
        if not self._superseded(session):
            handle, session.handle = session.handle, None
            if handle is not None:
                await self._release(session, handle)
            if not self._superseded(session):
                pumps, self._pumps = self._pumps, []
                if pumps:
                    # Output still in flight from the killed processes
                    await asyncio.wait(pumps, timeout=OUTPUT_DRAIN_SECONDS)
                for task in pumps:
                    task.cancel()
                await asyncio.gather(*pumps, return_exceptions=True)

        session.error = error
        session.log.append(f"Error: {error}")
        if session.state is not SessionState.ERROR:
            session.transition(SessionState.ERROR)

        if self._superseded(session):
            log.info("Abandoned session failed after teardown", context={"stage": stage})
            return
        log.error("Preview session failed", context={"stage": stage}, error=error)
        emit_counter("preview.session.error", {"stage": stage, "error": type(error).__name__})
