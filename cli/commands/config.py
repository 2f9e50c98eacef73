"""
Configuration Management Commands for the Allocator CLI

Commands for inspecting, validating and exporting allocator configuration.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from cli.config import CONFIG_SEARCH_PATHS, ENV_PREFIX, PROFILES
from cli.context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def config(ctx: CLIContext):
    """
    Configuration management commands.

    Inspect the merged configuration, validate it, and list profiles.
    """
    ctx.logger.debug("Config command group invoked")


@config.command('show')
@click.option('--key', help='Specific configuration key to show (dot notation)')
@click.option('--sources', is_flag=True, help='Show configuration sources')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key: Optional[str], sources: bool):
    """
    Display current configuration settings.

    Shows the merged configuration from defaults, profile, file and
    environment variables.

    Examples:
        allocator config show
        allocator config show --key collection.cost_per_token
        allocator config show --sources
    """
    manager = ctx.config_manager

    if sources:
        click.echo("Configuration sources (lowest to highest precedence):")
        for i, source in enumerate(manager.get_sources(), 1):
            click.echo(f"   {i}. {source}")
        return

    if key:
        value = manager.get(key)
        if value is None:
            click.echo(f"Configuration key not found: {key}", err=True)
            sys.exit(1)

        if isinstance(value, dict):
            ctx.output(value)
        else:
            click.echo(f"{key}: {value}")
        return

    # Nested sections read better as YAML than as a flat table
    output_format = ctx.output_format if ctx.output_format in ('json', 'yaml') else 'yaml'
    ctx.output(manager.load(), output_format)


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """
    Validate configuration for errors and inconsistencies.

    Checks the collection section against the collection model and the
    audit and CLI sections for sane values.

    Examples:
        allocator config validate
        allocator -c launch.yml config validate
    """
    ctx.logger.info("Validating configuration")

    errors = ctx.config_manager.validate()

    if errors:
        click.echo("Configuration validation failed:")
        for error in errors:
            click.echo(f"   - {error}")
        sys.exit(1)

    settings = ctx.config_manager.load()
    section = settings['collection']
    click.echo("Configuration is valid")
    click.echo(f"   Collection: {section['name']} ({section['symbol']})")
    click.echo(f"   Supply: {section['max_supply']} from id {section['start_from']}, "
               f"{section['reserved_count']} reserved")
    click.echo(f"   Cost per token: {section['cost_per_token']}")


@config.command('list-profiles')
@pass_context
@handle_cli_error
def list_profiles(ctx: CLIContext):
    """List the built-in configuration profiles and where config is searched."""
    rows = []
    for name, overrides in sorted(PROFILES.items()):
        settings = ', '.join(
            f"{section}.{key}={value}"
            for section, values in overrides.items()
            for key, value in values.items()
        )
        rows.append({'profile': name, 'settings': settings})
    ctx.output(rows)

    if ctx.output_format == 'table':
        click.echo()
        click.echo("Config file search paths:")
        for path in CONFIG_SEARCH_PATHS:
            marker = '*' if Path(path).exists() else ' '
            click.echo(f"  {marker} {path}")
        click.echo(f"Environment variables: {ENV_PREFIX}<SECTION>_<KEY>")
