"""
Collection Commands for the Allocator CLI

Commands for inspecting a freshly configured collection and replaying
mint scenarios against it.
"""

import sys
from typing import Optional

import click

from collection.scenario import ScenarioRunner, load_scenario
from cli.context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def collection(ctx: CLIContext):
    """
    Collection inspection and simulation commands.

    Every invocation builds a new collection from the merged configuration;
    no state is kept between runs.
    """
    ctx.logger.debug("Collection command group invoked")


@collection.command('info')
@click.option('--projection', is_flag=True, help='Show only the public sale projection')
@click.option('--seed', type=int, help='Entropy seed (overrides collection.entropy_seed)')
@pass_context
@handle_cli_error
def info(ctx: CLIContext, projection: bool, seed: Optional[int]):
    """
    Show the initial state of the configured collection.

    Examples:
        allocator collection info
        allocator -o json collection info --projection
    """
    engine = ctx.build_engine(seed=seed)

    if projection:
        ctx.output(engine.projection().model_dump(mode='json', by_alias=True))
        return

    summary = engine.state_summary()
    summary['reserved_tokens'] = engine.owned_tokens(engine.owner)
    ctx.output(summary)


@collection.command('simulate')
@click.argument('scenario', type=click.Path(exists=True, dir_okay=False))
@click.option('--seed', type=int, help='Entropy seed (overrides collection.entropy_seed)')
@click.option('--stop-on-error', is_flag=True, help='Stop at the first failed step')
@click.option('--audit-log', type=click.Path(dir_okay=False),
              help='Write audit events to this JSON-lines file')
@click.option('--summary/--no-summary', default=True, help='Show final collection state')
@pass_context
@handle_cli_error
def simulate(ctx: CLIContext, scenario: str, seed: Optional[int], stop_on_error: bool,
             audit_log: Optional[str], summary: bool):
    """
    Replay a scenario of mint, configuration and withdrawal steps.

    Failed steps are reported with their error message; the scenario
    continues unless --stop-on-error is given, in which case the command
    exits with status 1 after the first failure.

    Examples:
        allocator collection simulate scenario.yml
        allocator --profile simulation collection simulate steps.json --seed 7
    """
    steps = load_scenario(scenario)
    engine = ctx.build_engine(seed=seed, audit_log=audit_log)

    ctx.logger.info(f"Running {len(steps)} step(s) from {scenario}")
    runner = ScenarioRunner(engine, stop_on_error=stop_on_error)
    results = runner.run(steps)
    rows = [result.to_dict() for result in results]

    if ctx.output_format in ('json', 'yaml'):
        data = {'steps': rows}
        if summary:
            data['final_state'] = engine.state_summary()
        ctx.output(data)
    else:
        ctx.output(rows)
        if summary:
            click.echo()
            ctx.output(engine.state_summary())

    failed = [result for result in results if not result.ok]
    ctx.logger.info(f"Scenario finished: {len(results) - len(failed)} ok, {len(failed)} failed")

    if failed and stop_on_error:
        sys.exit(1)
