"""Tests for the download export."""

from preview_core.files.export import export_filename, export_text
from preview_core.models import ProjectFile


class TestExportText:
    """Tests for export_text."""

    def test_single_file(self) -> None:
        text = export_text([ProjectFile(path="README.md", content="# Demo")])
        assert text == "\n\n=== README.md ===\n# Demo"

    def test_multiple_files_in_order(self) -> None:
        files = [
            ProjectFile(path="a.ts", content="A"),
            ProjectFile(path="src/b.ts", content="B"),
        ]
        assert export_text(files) == "\n\n=== a.ts ===\nA\n\n\n=== src/b.ts ===\nB"

    def test_empty(self) -> None:
        assert export_text([]) == ""


class TestExportFilename:
    """Tests for export_filename."""

    def test_whitespace_becomes_dashes(self) -> None:
        assert export_filename("My  Landing Page") == "My-Landing-Page.txt"

    def test_blank_name_falls_back(self) -> None:
        assert export_filename("   ") == "project.txt"
