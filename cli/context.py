"""
Shared CLI Context

Global CLI state shared across command groups: configuration, logging,
output formatting and engine construction.
"""

import functools
import logging
import sys
import traceback
from typing import Any, Optional

import click

from collection.engine import CollectionEngine
from collection.entropy import BlockEntropySource, SeededEntropySource
from validator.audit_logger import AuditLogger

from .config import ConfigurationManager, build_collection_config
from .output import OutputFormatter

LOGGER_NAMES = ['allocator-cli', 'collection', 'validator']
CLI_HANDLER_MARK = '_allocator_cli_handler'


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: str = "table"
        self.verbose: int = 0
        self.config_manager: ConfigurationManager = ConfigurationManager()
        self.logger: logging.Logger = logging.getLogger('allocator-cli')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            # Replace only the handler installed by an earlier invocation
            for handler in list(logger.handlers):
                if getattr(handler, CLI_HANDLER_MARK, False):
                    logger.removeHandler(handler)
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            setattr(handler, CLI_HANDLER_MARK, True)
            logger.addHandler(handler)
            logger.setLevel(level)

        self.logger = logging.getLogger('allocator-cli')

    def output(self, data: Any, format_override: Optional[str] = None):
        """Output data in the selected format."""
        formatter = OutputFormatter(format_override or self.output_format)
        click.echo(formatter.format(data))

    def build_engine(self, seed: Optional[int] = None, audit_log: Optional[str] = None) -> CollectionEngine:
        """
        Build a fresh collection engine from the loaded configuration.

        Args:
            seed: Entropy seed overriding collection.entropy_seed
            audit_log: Audit log path overriding audit.log_file
        """
        config = self.config_manager.load()
        collection_config = build_collection_config(config)

        if seed is None:
            seed = config.get('collection', {}).get('entropy_seed')
        entropy = SeededEntropySource(seed) if seed is not None else BlockEntropySource()

        audit_section = config.get('audit', {})
        audit = AuditLogger(
            log_file=audit_log or audit_section.get('log_file'),
            max_events=audit_section.get('max_events', 1000)
        )

        self.logger.debug(
            f"Building engine for {collection_config.name} "
            f"(seed={seed if seed is not None else 'block'})"
        )
        return CollectionEngine(collection_config, entropy=entropy, audit_logger=audit)


# Global context instance
pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to handle CLI errors gracefully."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except Exception as e:
            ctx = click.get_current_context(silent=True)
            cli_ctx = ctx.find_object(CLIContext) if ctx else None

            click.echo(f"Error: {e}", err=True)
            if cli_ctx and cli_ctx.verbose >= 2:
                # Show full traceback in debug mode
                click.echo(traceback.format_exc(), err=True)
            else:
                click.echo("Use -vv for detailed error information.", err=True)

            sys.exit(1)

    return wrapper
