#!/usr/bin/env python3
"""
Allocator - Command Line Interface

A CLI for inspecting random-allocation collections, replaying mint
scenarios against them, and managing allocator configuration.
"""

import sys
from typing import Optional

import click

from cli import __version__
from cli.commands.collection import collection
from cli.commands.config import config
from cli.config import ConfigurationManager, OUTPUT_FORMATS, PROFILES
from cli.context import CLIContext, pass_context


@click.group(
    context_settings={'help_option_names': ['-h', '--help']},
    invoke_without_command=True
)
@click.option('--config-file', '-c',
              type=click.Path(dir_okay=False),
              help='Path to configuration file')
@click.option('--profile',
              type=click.Choice(sorted(PROFILES)),
              help='Configuration profile to apply')
@click.option('--output-format', '-o',
              type=click.Choice(OUTPUT_FORMATS),
              help='Output format (defaults to cli.output_format)')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.option('--version',
              is_flag=True,
              help='Show version information')
@pass_context
@click.pass_context
def cli(click_ctx: click.Context, ctx: CLIContext, config_file: Optional[str],
        profile: Optional[str], output_format: Optional[str], verbose: int, version: bool):
    """
    Random-allocation collection allocator.

    Issues uniquely numbered tokens from a fixed-size pool: a reserved
    block for the owner, random draws for everyone else.

    Examples:
        allocator collection info
        allocator --profile simulation collection simulate scenario.yml
        allocator config show --key collection
    """

    if version:
        click.echo(f"Allocator CLI v{__version__}")
        sys.exit(0)

    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        return

    ctx.config_file = config_file
    ctx.profile = profile
    ctx.config_manager = ConfigurationManager(config_file, profile)

    try:
        settings = ctx.config_manager.load()
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Failed to load configuration: {e}")

    cli_settings = settings.get('cli', {})
    ctx.output_format = output_format or cli_settings.get('output_format', 'table')
    ctx.verbose = verbose or cli_settings.get('verbose', 0)

    # Initialize logging
    ctx.setup_logging()

    ctx.logger.debug(f"CLI initialized, config sources: {ctx.config_manager.get_sources()}")


cli.add_command(collection)
cli.add_command(config)


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
