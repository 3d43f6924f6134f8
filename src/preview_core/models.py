"""Project file and tree data types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class ProjectFile:
    """A generated project file: posix-style relative path plus text content."""

    path: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectFile":
        return cls(path=str(data["path"]), content=str(data.get("content", "")))


class NodeType(str, Enum):
    """Kind of file tree node."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class FileTreeNode:
    """A node of the UI file tree.

    Directory nodes always own a children list; file nodes have None.
    """

    name: str
    path: str
    type: NodeType
    children: list["FileTreeNode"] | None = None

    @property
    def is_directory(self) -> bool:
        return self.type == NodeType.DIRECTORY

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.type.value,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class Project:
    """A loaded project."""

    id: str
    name: str
    files: list[ProjectFile] = field(default_factory=list)
