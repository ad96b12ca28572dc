"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
from functools import wraps
from pathlib import Path

import click
import yaml

from .config import load_config, set_verbose
from .engine.errors import TemplatizeError
from .engine.placeholders import PlaceholderFormat
from .engine.rules import read_data_file

GENERAL_ERROR = 1
INTERRUPTED = 130


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Applies --verbose to the templatize logger
    - Injects the user settings as ``settings``
    - Prints engine errors as ``❌ Error: ...`` and exits non-zero
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        set_verbose(kwargs.get('verbose', False))
        kwargs['settings'] = load_config()
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("\n⚠️  Interrupted by user", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except TemplatizeError as e:
            click.echo(f"❌ Error: {e}", err=True)
            sys.exit(GENERAL_ERROR)
        except OSError as e:
            click.echo(f"❌ Error: {e}", err=True)
            sys.exit(GENERAL_ERROR)
    return wrapper


def parse_assignments(assignments):
    """
    Turns ``NAME=VALUE`` strings into a dict.

    Raises:
        click.BadParameter: If an item has no ``=``.
    """
    values = {}
    for item in assignments or ():
        name, sep, value = item.partition('=')
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got '{item}'", param_hint='--set')
        values[name.strip()] = value
    return values


def load_values(values_file=None, assignments=()):
    """
    Builds a ValueMap from a JSON/YAML/TOML file plus ``--set`` overrides.

    Returns None when neither is given.
    """
    if values_file is None and not assignments:
        return None
    values = {}
    if values_file is not None:
        try:
            data = read_data_file(Path(values_file))
        except (ValueError, yaml.YAMLError) as e:
            raise click.BadParameter(f"cannot read {values_file}: {e}", param_hint='--values')
        if not isinstance(data, dict):
            raise click.BadParameter("values file must contain an object", param_hint='--values')
        values.update(data)
    values.update(parse_assignments(assignments))
    return values


# Standard options that many commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                            help='Show debug logging'),
    'dry_run': click.option('--dry-run', is_flag=True,
                            help='Preview changes without saving'),
    'placeholder_format': click.option('--format', 'placeholder_format',
                                       type=click.Choice([fmt.value for fmt in PlaceholderFormat]),
                                       help='Placeholder token format'),
    'workers': click.option('--workers', type=int,
                            help='Number of files processed in parallel'),
    'output_format': click.option('--output', 'output_format',
                                  type=click.Choice(['table', 'json', 'markdown']),
                                  default='table', help='Report format'),
    'config': click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
                           help='Rule file to use instead of the project one'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'dry_run')
        def my_command(verbose, dry_run):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator


def emit_json(data):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))
