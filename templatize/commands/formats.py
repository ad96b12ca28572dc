"""
Handles the 'formats' command: lists token formats and file strategies.
"""

import click

from ..cli_utils import emit_json
from ..engine.dispatcher import EXTENSIONS, supported_formats
from ..engine.placeholders import get_format_descriptions


@click.command(name='formats')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
def formats_handler(as_json):
    """List placeholder token formats and supported file formats."""
    strategies = {
        format_id: sorted(ext for ext, target in EXTENSIONS.items() if target == format_id)
        for format_id in supported_formats()
    }
    if as_json:
        emit_json({"placeholderFormats": get_format_descriptions(), "strategies": strategies})
        return

    click.echo("🔖 Placeholder formats:")
    for fmt in get_format_descriptions():
        click.echo(f"   {fmt['name']:<10} {fmt['example']:<10} {fmt['description']}")
    click.echo("\n📄 File formats:")
    for format_id, extensions in strategies.items():
        click.echo(f"   {format_id:<10} {', '.join(extensions)}")
