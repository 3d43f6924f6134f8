"""In-memory project file list owned by one builder view."""

from preview_core.files.tree import build_file_tree
from preview_core.models import FileTreeNode, ProjectFile


class ProjectWorkspace:
    """Ordered, editable project file list.

    Edits here are synchronous and independent of any sandbox write.
    """

    def __init__(self, files: list[ProjectFile] | None = None) -> None:
        self._files: list[ProjectFile] = [
            ProjectFile(path=f.path, content=f.content) for f in files or []
        ]
        self.selected_path: str | None = None

    @property
    def files(self) -> list[ProjectFile]:
        """Snapshot of the current file list."""
        return list(self._files)

    @property
    def tree(self) -> list[FileTreeNode]:
        """File tree, rebuilt from the current list."""
        return build_file_tree(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return any(f.path == path for f in self._files)

    def get(self, path: str) -> ProjectFile | None:
        for file in self._files:
            if file.path == path:
                return file
        return None

    def replace_all(self, files: list[ProjectFile]) -> None:
        self._files = [ProjectFile(path=f.path, content=f.content) for f in files]
        if self.selected_path is not None and self.selected_path not in self:
            self.selected_path = None

    def update(self, path: str, content: str) -> ProjectFile:
        """Set a file's content, appending the file if it is new.

        Every entry carrying the path is updated so duplicates never diverge.
        """
        updated = None
        for index, file in enumerate(self._files):
            if file.path == path:
                updated = ProjectFile(path=path, content=content)
                self._files[index] = updated
        if updated is None:
            updated = ProjectFile(path=path, content=content)
            self._files.append(updated)
        return updated

    def select(self, path: str | None) -> None:
        if path is not None and path not in self:
            raise KeyError(path)
        self.selected_path = path
