"""
Handles the 'test' command: restores a copy of a template and checks it.
"""

import sys
from pathlib import Path

import click

from ..cli_utils import GENERAL_ERROR, add_common_options, load_values, standard_command
from ..engine.runner import run_template_test
from ..render import render_report


@click.command(name='test')
@click.argument('template')
@click.option('--registry', type=click.Path(exists=True, file_okay=False),
              help='Directory holding templates; TEMPLATE is a name inside it')
@click.option('--keep-temp', is_flag=True, help='Keep the restored copy for inspection')
@click.option('--values', 'values_file', type=click.Path(exists=True, dir_okay=False),
              help='Values overriding the template.json defaults')
@click.option('--set', 'assignments', multiple=True, metavar='NAME=VALUE',
              help='Value overriding a template.json default (repeatable)')
@add_common_options('workers', 'output_format', 'verbose')
@standard_command
def test_handler(template, registry, keep_temp, values_file, assignments, workers,
                 output_format, settings, **kwargs):
    """Test that a template restores cleanly.

    \b
    The template is copied to a temporary directory and restored with the
    defaults from its template.json. The test fails if any token is left
    or a JSON/YAML file no longer parses.

    Examples:

    \b
        templatize test ./my-template
        templatize test my-template --registry ~/templates
        templatize test ./my-template --keep-temp --set PACKAGE_NAME=demo
    """
    path = Path(registry) / template if registry else Path(template)
    if not path.is_dir():
        raise click.ClickException(f"Template not found: {path}")

    result = run_template_test(
        path,
        values=load_values(values_file, assignments),
        keep_temp=keep_temp,
        workers=workers or settings.get('workers', 4),
        ignore=settings.get('ignore'),
    )
    render_report(result.report, output_format)

    # keep stdout parseable for --output json
    err = output_format == 'json'
    for problem in result.problems:
        click.echo(f"❌ {problem}", err=err)
    if keep_temp:
        click.echo(f"📁 Restored copy kept in {result.directory}", err=err)

    if result.passed:
        click.echo("✅ Template test passed", err=err)
    else:
        click.echo("❌ Template test failed", err=err)
        sys.exit(GENERAL_ERROR)
