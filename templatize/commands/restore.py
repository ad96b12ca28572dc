"""
Handles the 'restore' command: turns a template back into a project.
"""

import sys

import click

from ..cli_utils import GENERAL_ERROR, add_common_options, load_values, standard_command
from ..engine.runner import ProjectRestorer, load_manifest, manifest_defaults
from ..render import render_report


@click.command(name='restore')
@click.argument('project', type=click.Path(exists=True, file_okay=False), default='.')
@click.option('--values', 'values_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON, YAML or TOML file with placeholder values')
@click.option('--set', 'assignments', multiple=True, metavar='NAME=VALUE',
              help='Placeholder value (repeatable)')
@click.option('--defaults/--no-defaults', default=True,
              help='Fill values missing from --values/--set with template.json defaults')
@click.option('--keep-undo', is_flag=True, help='Keep .template-undo.json after restoring')
@add_common_options('placeholder_format', 'workers', 'dry_run', 'output_format', 'verbose')
@standard_command
def restore_handler(project, values_file, assignments, defaults, keep_undo, placeholder_format,
                    workers, dry_run, output_format, settings, **kwargs):
    """Restore a template.

    \b
    Without values, every converted file gets back the exact content it
    had before conversion (from .template-undo.json). With --values or
    --set, every token in the project is replaced by its value, escaped
    for the place it appears in.

    Examples:

    \b
        templatize restore                              # Undo the conversion
        templatize restore my-app --keep-undo           # Keep the undo log
        templatize restore --values values.yaml         # Fill from a file
        templatize restore --set PACKAGE_NAME=my-app    # Fill inline
    """
    values = load_values(values_file, assignments)
    if values is not None and defaults:
        merged = manifest_defaults(load_manifest(project))
        merged.update(values)
        values = merged

    restorer = ProjectRestorer(
        project,
        values=values,
        keep_undo=keep_undo,
        placeholder_format=placeholder_format,
        workers=workers or settings.get('workers', 4),
        dry_run=dry_run,
        ignore=settings.get('ignore'),
    )
    report = restorer.run()
    render_report(report, output_format)

    if report.has_errors:
        sys.exit(GENERAL_ERROR)
