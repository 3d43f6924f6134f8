"""Bounded, ordered aggregation of process output."""

from collections import deque
from collections.abc import AsyncIterator, Iterable

DEFAULT_CAPACITY = 50


class OutputAggregator:
    """Ring buffer of output chunks from every subscribed process.

    Chunks are stored as received, interleaved in arrival order. Once the
    buffer is full the oldest chunk is evicted.

    Example:
        log = OutputAggregator()
        task = asyncio.create_task(log.pump(process.output))
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[str] = deque(maxlen=capacity)
        self.total_appended = 0

    def append(self, chunk: str) -> None:
        self._entries.append(chunk)
        self.total_appended += 1

    def extend(self, chunks: Iterable[str]) -> None:
        for chunk in chunks:
            self.append(chunk)

    @property
    def entries(self) -> list[str]:
        """Buffered chunks, oldest first."""
        return list(self._entries)

    @property
    def last(self) -> str | None:
        return self._entries[-1] if self._entries else None

    def tail(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def pump(self, stream: AsyncIterator[str]) -> None:
        """Append every chunk from a stream until it ends."""
        async for chunk in stream:
            if chunk:
                self.append(chunk)
