"""Plain-text download export."""

import re

from preview_core.models import ProjectFile

_WHITESPACE = re.compile(r"\s+")


def export_text(files: list[ProjectFile]) -> str:
    """Concatenate files into one text blob with ``=== path ===`` headers."""
    return "\n".join(f"\n\n=== {file.path} ===\n{file.content}" for file in files)


def export_filename(project_name: str) -> str:
    """Download file name for a project."""
    return f"{_WHITESPACE.sub('-', project_name.strip()) or 'project'}.txt"
