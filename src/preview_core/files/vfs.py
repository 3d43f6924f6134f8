"""Virtual filesystem built for a single sandbox mount.

The mount structure is a recursive tagged union: a VFSFile holds text
contents, a VFSDirectory maps child names to nodes. `build_vfs` is the one
conversion from the flat project file list; `to_mount_tree` renders the
nested literal the engine's mount call accepts.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union

from preview_core.config import BootstrapConfig
from preview_core.exceptions import MountError
from preview_core.models import ProjectFile

MANIFEST_PATH = "package.json"


@dataclass
class VFSFile:
    """File leaf."""

    contents: str


@dataclass
class VFSDirectory:
    """Directory mapping child names to nodes."""

    children: dict[str, "VFSNode"] = field(default_factory=dict)


VFSNode = Union[VFSFile, VFSDirectory]


def default_bootstrap_files(config: BootstrapConfig | None = None) -> list[ProjectFile]:
    """Build the fixed file set injected into every mount.

    Args:
        config: Bootstrap settings (defaults apply when omitted)

    Returns:
        Manifest and framework config stub
    """
    config = config or BootstrapConfig()
    manifest: dict[str, Any] = {
        "name": config.project_name,
        "version": "0.1.0",
        "private": True,
        "scripts": dict(config.scripts),
        "dependencies": dict(config.dependencies),
    }
    if config.dev_dependencies:
        manifest["devDependencies"] = dict(config.dev_dependencies)

    return [
        ProjectFile(path=MANIFEST_PATH, content=json.dumps(manifest, indent=2) + "\n"),
        ProjectFile(path=config.framework_config_path, content=config.framework_config),
    ]


def normalize_path(path: str) -> list[str]:
    """Validate a relative posix path and return its segments.

    Raises:
        MountError: If the path is empty or contains empty, "." or ".." segments
    """
    if not path or not path.strip():
        raise MountError("Empty file path")
    if "\\" in path or "\x00" in path:
        raise MountError(f"Malformed file path: {path!r}")

    # A single leading slash is tolerated (Sandpack-style paths)
    stripped = path[1:] if path.startswith("/") else path
    segments = stripped.split("/")
    for segment in segments:
        if segment in ("", ".", ".."):
            raise MountError(f"Malformed file path: {path!r}")
    return segments


def build_vfs(
    files: list[ProjectFile],
    bootstrap: list[ProjectFile] | None = None,
) -> VFSDirectory:
    """Convert flat project files into a mount tree.

    Bootstrap files are placed first so generated files with the same path
    overlay them. Within the project list a repeated path keeps the last
    content.

    Args:
        files: Generated project files
        bootstrap: Fixed files to inject (defaults to `default_bootstrap_files()`)

    Returns:
        Root directory node

    Raises:
        MountError: On malformed paths or a file/directory collision
    """
    if bootstrap is None:
        bootstrap = default_bootstrap_files()

    root = VFSDirectory()
    for file in [*bootstrap, *files]:
        _insert(root, file)
    return root


def _insert(root: VFSDirectory, file: ProjectFile) -> None:
    segments = normalize_path(file.path)
    directory = root
    for segment in segments[:-1]:
        node = directory.children.get(segment)
        if node is None:
            node = VFSDirectory()
            directory.children[segment] = node
        elif isinstance(node, VFSFile):
            raise MountError(f"Path conflict: {segment!r} is a file in {file.path!r}")
        directory = node

    name = segments[-1]
    if isinstance(directory.children.get(name), VFSDirectory):
        raise MountError(f"Path conflict: {file.path!r} is a directory")
    directory.children[name] = VFSFile(contents=file.content)


def to_mount_tree(root: VFSDirectory) -> dict[str, Any]:
    """Render the tagged union as the engine's nested mount literal.

    Files become ``{"file": {"contents": ...}}`` and directories
    ``{"directory": {...}}``.
    """
    tree: dict[str, Any] = {}
    for name, node in root.children.items():
        if isinstance(node, VFSFile):
            tree[name] = {"file": {"contents": node.contents}}
        else:
            tree[name] = {"directory": to_mount_tree(node)}
    return tree


def from_mount_tree(tree: dict[str, Any]) -> VFSDirectory:
    """Parse an engine mount literal back into the tagged union.

    Raises:
        MountError: If an entry is neither a file nor a directory
    """
    root = VFSDirectory()
    for name, entry in tree.items():
        if not isinstance(entry, dict):
            raise MountError(f"Invalid mount entry for {name!r}")
        if "file" in entry:
            root.children[name] = VFSFile(contents=entry["file"].get("contents", ""))
        elif "directory" in entry:
            root.children[name] = from_mount_tree(entry["directory"])
        else:
            raise MountError(f"Invalid mount entry for {name!r}")
    return root


def flatten_vfs(root: VFSDirectory, prefix: str = "") -> list[ProjectFile]:
    """Flatten a mount tree back into (path, content) pairs."""
    files: list[ProjectFile] = []
    for name, node in root.children.items():
        path = f"{prefix}{name}"
        if isinstance(node, VFSFile):
            files.append(ProjectFile(path=path, content=node.contents))
        else:
            files.extend(flatten_vfs(node, prefix=f"{path}/"))
    return files
