"""Server readiness detection."""

import asyncio
from dataclasses import dataclass

from preview_core.exceptions import StageTimeoutError
from preview_core.observability import get_logger
from preview_core.protocols.engine import SERVER_READY, SandboxHandle

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServerReady:
    """Address a dev server is accepting connections on."""

    port: int
    url: str


class ReadinessDetector:
    """Turns the engine's server-ready callback into a one-shot future.

    Only the first event per session is captured; later ones are ignored.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[ServerReady] = asyncio.get_running_loop().create_future()
        self._attached = False

    def attach(self, handle: SandboxHandle) -> None:
        """Subscribe to the handle's server-ready event. Once per session."""
        if self._attached:
            raise RuntimeError("Readiness detector is already attached")
        handle.on(SERVER_READY, self._on_server_ready)
        self._attached = True

    def _on_server_ready(self, port: int, url: str) -> None:
        if self._future.done():
            logger.debug("Ignoring repeated server-ready event", context={"port": port, "url": url})
            return
        self._future.set_result(ServerReady(port=port, url=url))

    @property
    def ready(self) -> ServerReady | None:
        if self._future.done() and not self._future.cancelled():
            return self._future.result()
        return None

    async def wait(self, timeout: float | None = None) -> ServerReady:
        """Wait for the readiness signal.

        Raises:
            StageTimeoutError: If timeout elapses first
            asyncio.CancelledError: If the detector was cancelled
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except asyncio.TimeoutError:
            raise StageTimeoutError("readiness wait", timeout or 0) from None

    def cancel(self) -> None:
        """Release any waiter. Used on teardown."""
        if not self._future.done():
            self._future.cancel()
