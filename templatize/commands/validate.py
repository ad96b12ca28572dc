"""
Handles the 'validate' command.
"""

import sys

import click

from ..cli_utils import GENERAL_ERROR, add_common_options, standard_command
from ..engine.runner import validate_project
from ..render import render_validation


@click.command(name='validate')
@click.argument('project', type=click.Path(exists=True, file_okay=False), default='.')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@add_common_options('config', 'verbose')
@standard_command
def validate_handler(project, as_json, config_path, settings, **kwargs):
    """Check a template's rule file, template.json and placeholders.

    \b
    Every token used in the project must be declared in template.json.
    Declared placeholders that no file uses are reported as warnings.

    Examples:

    \b
        templatize validate
        templatize validate my-template --json
    """
    result = validate_project(project, config_path, ignore=settings.get('ignore'))
    render_validation(result, as_json)
    if not result.valid:
        sys.exit(GENERAL_ERROR)
