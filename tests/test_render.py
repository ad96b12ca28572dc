"""
Tests for report rendering.
"""

import json

from templatize.engine.runner import FileReport, FileStatus, RunReport, ValidationResult
from templatize.render import build_table, file_notes, render_markdown, render_report, render_validation


def sample_report(dry_run=False):
    report = RunReport("convert", "/tmp/demo", dry_run=dry_run)
    report.files = [
        FileReport("README.md", FileStatus.CHANGED, "markdown", changes=2,
                   placeholders={"CONTENT_TITLE": "My App"}),
        FileReport("index.html", FileStatus.OK, "html",
                   warnings=["Selector 'h1': no matching content"]),
        FileReport("package.json", FileStatus.ERROR, "json", error_type="ParseError", error="a | b"),
    ]
    return report


class TestFileNotes:

    def test_error_wins(self):
        assert file_notes({"error": "boom", "error_type": "ParseError", "reason": "x"}) == "ParseError: boom"

    def test_reason(self):
        assert file_notes({"reason": "cancelled"}) == "cancelled"

    def test_warnings_are_joined(self):
        assert file_notes({"warnings": ["a", "b"]}) == "a; b"
        assert file_notes({}) == ""


class TestRenderReport:

    def test_json(self, capsys):
        render_report(sample_report(), "json")
        data = json.loads(capsys.readouterr().out)
        assert data["counts"] == {"ok": 1, "changed": 1, "skipped": 0, "error": 1}
        assert data["files"][2]["error_type"] == "ParseError"

    def test_markdown(self):
        text = render_markdown(sample_report(dry_run=True))
        assert text.startswith("# templatize convert (dry run)\n")
        assert "| `README.md` | changed | markdown | 2 |  |" in text
        assert "ParseError: a \\| b" in text
        assert "- `CONTENT_TITLE`: My App" in text

    def test_table_summary(self, capsys):
        render_report(sample_report(dry_run=True))
        out = capsys.readouterr().out
        assert "2 change(s) (dry run): ok 1, changed 1, skipped 0, error 1" in out

    def test_table_rows(self):
        assert build_table(sample_report()).row_count == 3

    def test_empty_report(self, capsys):
        render_report(RunReport("restore", "/tmp/demo"))
        assert "No files matched" in capsys.readouterr().out


class TestRenderValidation:

    def test_valid(self, capsys):
        render_validation(ValidationResult(warnings=["Placeholder 'X' is declared but not used"]))
        out = capsys.readouterr().out
        assert "⚠️  Placeholder 'X'" in out
        assert "✅ Template is valid" in out

    def test_invalid(self, capsys):
        render_validation(ValidationResult(undeclared={"a.txt": ["B", "C"]}))
        out = capsys.readouterr().out
        assert "❌ a.txt: undeclared placeholder(s) B, C" in out
        assert "valid" not in out

    def test_json(self, capsys):
        render_validation(ValidationResult(errors=["broken"]), as_json=True)
        data = json.loads(capsys.readouterr().out)
        assert data == {"valid": False, "errors": ["broken"], "warnings": [], "undeclared": {}}
