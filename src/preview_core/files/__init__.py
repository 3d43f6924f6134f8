"""Project file handling: UI tree, mount VFS, export."""

from preview_core.files.export import export_filename, export_text
from preview_core.files.tree import build_file_tree
from preview_core.files.vfs import (
    VFSDirectory,
    VFSFile,
    VFSNode,
    build_vfs,
    default_bootstrap_files,
    flatten_vfs,
    to_mount_tree,
)
from preview_core.files.workspace import ProjectWorkspace

__all__ = [
    "ProjectWorkspace",
    "VFSDirectory",
    "VFSFile",
    "VFSNode",
    "build_file_tree",
    "build_vfs",
    "default_bootstrap_files",
    "export_filename",
    "export_text",
    "flatten_vfs",
    "to_mount_tree",
]
