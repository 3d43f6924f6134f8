"""File tree assembly for UI display."""

from preview_core.models import FileTreeNode, NodeType, ProjectFile


def split_path(path: str) -> list[str]:
    """Split a posix-style relative path into its non-empty segments."""
    return [segment for segment in path.strip("/").split("/") if segment]


def build_file_tree(files: list[ProjectFile]) -> list[FileTreeNode]:
    """Assemble a hierarchical tree from a flat file list.

    Intermediate directories are created on first use and reused by exact
    name match afterwards. Sibling order follows first appearance in the
    input. Duplicate paths are not collapsed: each occurrence adds a leaf.

    Args:
        files: Project files in display order

    Returns:
        Children of the (implicit) root directory
    """
    root: list[FileTreeNode] = []

    for file in files:
        segments = split_path(file.path)
        if not segments:
            continue

        level = root
        for depth, segment in enumerate(segments[:-1]):
            node = _find_directory(level, segment)
            if node is None:
                node = FileTreeNode(
                    name=segment,
                    path="/".join(segments[: depth + 1]),
                    type=NodeType.DIRECTORY,
                    children=[],
                )
                level.append(node)
            level = node.children  # type: ignore[assignment]

        level.append(
            FileTreeNode(
                name=segments[-1],
                path="/".join(segments),
                type=NodeType.FILE,
            )
        )

    return root


def _find_directory(level: list[FileTreeNode], name: str) -> FileTreeNode | None:
    for node in level:
        if node.is_directory and node.name == name:
            return node
    return None


def iter_leaves(nodes: list[FileTreeNode]):
    """Yield every file node in depth-first order."""
    for node in nodes:
        if node.is_directory:
            yield from iter_leaves(node.children or [])
        else:
            yield node
