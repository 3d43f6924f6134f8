"""Live edit propagation from the editor into the running sandbox."""

from preview_core.exceptions import WriteError
from preview_core.files.workspace import ProjectWorkspace
from preview_core.observability import emit_counter, get_logger
from preview_core.preview.controller import PreviewController
from preview_core.preview.session import SessionState

logger = get_logger(__name__)


class LiveEditSynchronizer:
    """Applies single-file edits to the workspace and, when ready, the sandbox.

    The in-memory edit always sticks. A failed sandbox write is logged and
    not retried; the preview may show stale content until a reload.
    """

    def __init__(self, workspace: ProjectWorkspace, controller: PreviewController) -> None:
        self.workspace = workspace
        self.controller = controller

    def select(self, path: str | None) -> None:
        """Select the file the editor is showing."""
        self.workspace.select(path)

    async def apply_edit(self, path: str, content: str) -> bool:
        """Record an edit and push it into the sandbox if one is ready.

        Args:
            path: File path being edited
            content: New full content of the file

        Returns:
            True if the sandbox write was issued and succeeded
        """
        self.workspace.update(path, content)

        if self.controller.state is not SessionState.READY:
            return False

        try:
            await self.controller.write_file(path, content)
        except WriteError as e:
            logger.warning("Live edit write failed", context={"path": path}, error=e)
            emit_counter("preview.write.error")
            return False

        logger.debug("Live edit written", context={"path": path, "bytes": len(content)})
        return True

    async def edit_selected(self, content: str) -> bool:
        """Apply an edit to the currently selected file.

        Raises:
            ValueError: If no file is selected
        """
        path = self.workspace.selected_path
        if path is None:
            raise ValueError("No file selected")
        return await self.apply_edit(path, content)
