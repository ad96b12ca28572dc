#!/usr/bin/env python3

import click

from templatize.commands.convert import convert_handler
from templatize.commands.formats import formats_handler
from templatize.commands.init import init_handler
from templatize.commands.restore import restore_handler
from templatize.commands.test import test_handler
from templatize.commands.validate import validate_handler


@click.group()
@click.version_option()
def cli():
    """Turn working projects into reusable templates and back."""
    pass


cli.add_command(init_handler, name='init')
cli.add_command(convert_handler, name='convert')
cli.add_command(restore_handler, name='restore')
cli.add_command(validate_handler, name='validate')
cli.add_command(test_handler, name='test')
cli.add_command(formats_handler, name='formats')


if __name__ == '__main__':
    cli()
