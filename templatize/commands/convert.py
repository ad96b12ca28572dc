"""
Handles the 'convert' command: turns a project into a template.

The command is a thin layer over ProjectConverter; per-file failures are
reported in the run report and make the command exit with status 1.
"""

import sys

import click

from ..cli_utils import GENERAL_ERROR, add_common_options, standard_command
from ..engine.rules import load_rules
from ..engine.runner import ProjectConverter
from ..render import render_report


@click.command(name='convert')
@click.argument('project', type=click.Path(exists=True, file_okay=False), default='.')
@click.option('-y', '--yes', 'assume_yes', is_flag=True,
              help='Convert even if the directory looks like a development checkout')
@click.option('--strict', is_flag=True, help='Treat unmatched rules as errors')
@add_common_options('config', 'placeholder_format', 'workers', 'dry_run', 'output_format', 'verbose')
@standard_command
def convert_handler(project, assume_yes, strict, config_path, placeholder_format, workers,
                    dry_run, output_format, settings, **kwargs):
    """Convert a project into a template.

    \b
    Values selected by the rule file (.templatize.json) are replaced with
    placeholder tokens. Changed files are written atomically, their
    original content is kept in .template-undo.json and detected
    placeholders are added to template.json.

    Examples:

    \b
        templatize convert                      # Current directory
        templatize convert my-app --dry-run     # Preview only
        templatize convert my-app --yes         # Allow .git / node_modules
        templatize convert --format unicode     # Use ⦃NAME⦄ tokens
        templatize convert --output json        # Machine-readable report
    """
    rule_set = load_rules(project, config_path)
    placeholder_format = (placeholder_format or rule_set.placeholder_format
                          or settings.get('placeholder_format'))

    converter = ProjectConverter(
        project,
        rule_set=rule_set,
        placeholder_format=placeholder_format,
        workers=workers or settings.get('workers', 4),
        dry_run=dry_run,
        assume_yes=assume_yes,
        strict=strict,
        ignore=settings.get('ignore'),
    )
    report = converter.run()
    render_report(report, output_format)

    if report.has_errors:
        sys.exit(GENERAL_ERROR)
