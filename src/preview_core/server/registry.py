"""App-scoped registry of builder views."""

import asyncio
from collections.abc import Callable

from preview_core.builder import BuilderView
from preview_core.exceptions import SessionBusyError, ViewNotFoundError
from preview_core.observability import get_logger

logger = get_logger(__name__)


class ViewRegistry:
    """Holds the live builder views of one application instance.

    Starts triggered over HTTP run as background tasks; the registry keeps
    a reference so they are not garbage collected and can be awaited on
    shutdown.
    """

    def __init__(self, view_factory: Callable[[], BuilderView]) -> None:
        self._factory = view_factory
        self._views: dict[str, BuilderView] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def create(self) -> BuilderView:
        view = self._factory()
        self._views[view.id] = view
        return view

    def get(self, view_id: str) -> BuilderView:
        view = self._views.get(view_id)
        if view is None:
            raise ViewNotFoundError(f"View not found: {view_id}")
        return view

    def __len__(self) -> int:
        return len(self._views)

    def start_in_background(self, view: BuilderView, rebuild: bool = False) -> asyncio.Task:
        """Kick off a start (or rebuild) without waiting for readiness.

        Raises:
            SessionBusyError: If a plain start is requested while one is in flight
        """
        if not rebuild and (view.controller.is_busy or self._pending(view.id)):
            raise SessionBusyError("A preview session is already starting")

        task = asyncio.create_task(view.rebuild() if rebuild else view.start())
        self._tasks[view.id] = task
        task.add_done_callback(lambda t, view_id=view.id: self._task_done(view_id, t))
        return task

    def _pending(self, view_id: str) -> bool:
        task = self._tasks.get(view_id)
        return task is not None and not task.done()

    def _task_done(self, view_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(view_id) is task:
            del self._tasks[view_id]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background start failed", context={"view_id": view_id}, error=error)

    async def close(self, view_id: str) -> None:
        """Tear down and forget a view."""
        view = self._views.pop(view_id, None)
        if view is None:
            raise ViewNotFoundError(f"View not found: {view_id}")
        task = self._tasks.pop(view_id, None)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await view.close()

    async def close_all(self) -> None:
        for view_id in list(self._views):
            await self.close(view_id)
