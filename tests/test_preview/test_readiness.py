"""Tests for readiness detection."""

import asyncio

import pytest

from preview_core.exceptions import StageTimeoutError
from preview_core.preview.readiness import ReadinessDetector, ServerReady
from preview_core.protocols.engine import SERVER_READY


class FakeHandle:
    """Records event listeners."""

    def __init__(self) -> None:
        self.listeners: dict[str, list] = {}

    def on(self, event: str, listener) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def emit(self, port: int, url: str) -> None:
        for listener in self.listeners.get(SERVER_READY, []):
            listener(port, url)


class TestReadinessDetector:
    """Tests for ReadinessDetector."""

    @pytest.mark.asyncio
    async def test_captures_event(self) -> None:
        handle = FakeHandle()
        detector = ReadinessDetector()
        detector.attach(handle)

        handle.emit(3000, "https://abc.local:3000")

        assert await detector.wait() == ServerReady(port=3000, url="https://abc.local:3000")
        assert detector.ready.url == "https://abc.local:3000"

    @pytest.mark.asyncio
    async def test_first_event_wins(self) -> None:
        """Only the first server-ready event is captured."""
        handle = FakeHandle()
        detector = ReadinessDetector()
        detector.attach(handle)

        handle.emit(3000, "http://localhost:3000")
        handle.emit(3001, "http://localhost:3001")

        assert (await detector.wait()).port == 3000

    @pytest.mark.asyncio
    async def test_wait_before_event(self) -> None:
        """A waiter suspends until the event arrives."""
        handle = FakeHandle()
        detector = ReadinessDetector()
        detector.attach(handle)

        waiter = asyncio.create_task(detector.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        handle.emit(5173, "http://localhost:5173")
        assert (await waiter).port == 5173

    @pytest.mark.asyncio
    async def test_attach_once(self) -> None:
        detector = ReadinessDetector()
        detector.attach(FakeHandle())

        with pytest.raises(RuntimeError):
            detector.attach(FakeHandle())

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        detector = ReadinessDetector()
        detector.attach(FakeHandle())

        with pytest.raises(StageTimeoutError) as exc_info:
            await detector.wait(timeout=0.01)
        assert exc_info.value.stage == "readiness wait"

    @pytest.mark.asyncio
    async def test_timeout_keeps_detector_usable(self) -> None:
        """A timed-out wait does not consume the one-shot signal."""
        handle = FakeHandle()
        detector = ReadinessDetector()
        detector.attach(handle)

        with pytest.raises(StageTimeoutError):
            await detector.wait(timeout=0.01)

        handle.emit(3000, "http://localhost:3000")
        assert (await detector.wait()).port == 3000

    @pytest.mark.asyncio
    async def test_cancel_releases_waiter(self) -> None:
        detector = ReadinessDetector()
        detector.attach(FakeHandle())

        waiter = asyncio.create_task(detector.wait())
        await asyncio.sleep(0)
        detector.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert detector.ready is None

    @pytest.mark.asyncio
    async def test_event_after_cancel_is_ignored(self) -> None:
        handle = FakeHandle()
        detector = ReadinessDetector()
        detector.attach(handle)
        detector.cancel()

        handle.emit(3000, "http://localhost:3000")
        assert detector.ready is None
