"""
Handles the 'init' command: writes a default rule file and template.json.
"""

from pathlib import Path

import click

from ..cli_utils import add_common_options, standard_command
from ..engine.rules import generate_config_file
from ..engine.runner import TEMPLATE_MANIFEST, default_manifest, load_manifest, save_manifest


@click.command(name='init')
@click.argument('project', type=click.Path(exists=True, file_okay=False), default='.')
@click.option('--force', is_flag=True, help='Overwrite an existing rule file')
@add_common_options('placeholder_format', 'verbose')
@standard_command
def init_handler(project, force, placeholder_format, settings, **kwargs):
    """Create a default .templatize.json in a project.

    \b
    The default rules cover package.json, README.md, .html and .jsx files.
    A template.json is written next to it unless one already exists.

    Examples:

    \b
        templatize init                  # Current directory
        templatize init my-app --force   # Overwrite existing rules
        templatize init --format unicode # Use ⦃NAME⦄ tokens
    """
    placeholder_format = placeholder_format or settings.get('placeholder_format')
    path = generate_config_file(project, force=force, placeholder_format=placeholder_format)
    click.echo(f"✅ Created {path}")

    if load_manifest(project) is None:
        name = Path(project).resolve().name
        manifest_path = save_manifest(project, default_manifest(name, placeholder_format))
        click.echo(f"✅ Created {manifest_path}")
    else:
        click.echo(f"ℹ️  {TEMPLATE_MANIFEST} already exists, left unchanged")
