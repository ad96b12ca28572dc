"""
Output rendering functions for templatize.
Handles formatting run reports as tables, JSON or Markdown.
"""
import json

import click
from jinja2 import Environment
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "ok": "green",
    "changed": "cyan",
    "skipped": "yellow",
    "error": "red",
}

MARKDOWN_TEMPLATE = """\
# templatize {{ report.operation }}{% if report.dry_run %} (dry run){% endif %}

Project: `{{ report.project }}`

| File | Status | Format | Changes | Notes |
|------|--------|--------|---------|-------|
{% for file in report.files -%}
| `{{ file.path }}` | {{ file.status }} | {{ file.format_id or "-" }} | {{ file.changes }} | {{ file | notes }} |
{% endfor %}
**{{ report.changes }}** change(s): {% for status, count in report.counts.items() %}{{ status }} {{ count }}{% if not loop.last %}, {% endif %}{% endfor %}
{% if placeholders %}

## Placeholders

{% for name, value in placeholders.items() -%}
- `{{ name }}`: {{ value }}
{% endfor %}
{%- endif %}
"""


def file_notes(file):
    """One-line summary of a file's warnings, skip reason or error."""
    if file.get("error"):
        return f"{file.get('error_type')}: {file['error']}"
    if file.get("reason"):
        return file["reason"]
    return "; ".join(file.get("warnings") or [])


def render_markdown(report):
    """Renders a RunReport through the Markdown template."""
    env = Environment(trim_blocks=False, keep_trailing_newline=True)
    env.filters['notes'] = lambda file: file_notes(file).replace("|", "\\|")
    template = env.from_string(MARKDOWN_TEMPLATE)
    return template.render(report=report.to_dict(), placeholders=report.placeholders)


def build_table(report):
    table = Table(title=f"templatize {report.operation}", show_header=True, header_style="bold magenta")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Format")
    table.add_column("Changes", justify="right")
    table.add_column("Notes")

    for file in report.files:
        data = file.to_dict()
        status = data["status"]
        table.add_row(
            escape(file.path),
            f"[{STATUS_STYLES[status]}]{status}[/{STATUS_STYLES[status]}]",
            file.format_id or "-",
            str(file.changes),
            escape(file_notes(data)),
        )
    return table


def render_report(report, output_format="table"):
    """
    Render a RunReport to stdout.

    Args:
        report: RunReport from a convert, restore or test run
        output_format: 'table', 'json' or 'markdown'
    """
    if output_format == "json":
        click.echo(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return
    if output_format == "markdown":
        click.echo(render_markdown(report), nl=False)
        return

    if not report.files:
        click.echo("ℹ️  No files matched")
        return
    console.print(build_table(report))
    counts = ", ".join(f"{status} {count}" for status, count in report.counts.items())
    suffix = " (dry run)" if report.dry_run else ""
    click.echo(f"{report.total_changes} change(s){suffix}: {counts}")


def render_validation(result, as_json=False):
    """Render a ValidationResult to stdout."""
    if as_json:
        click.echo(json.dumps({
            "valid": result.valid,
            "errors": result.errors,
            "warnings": result.warnings,
            "undeclared": result.undeclared,
        }, indent=2, ensure_ascii=False))
        return

    for error in result.errors:
        click.echo(f"❌ {error}")
    for path, names in sorted(result.undeclared.items()):
        click.echo(f"❌ {path}: undeclared placeholder(s) {', '.join(names)}")
    for warning in result.warnings:
        click.echo(f"⚠️  {warning}")
    if result.valid:
        click.echo("✅ Template is valid")
