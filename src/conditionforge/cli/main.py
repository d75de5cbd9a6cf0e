"""ConditionForge CLI entry point."""

import logging

import click

from conditionforge.config import ConditionForgeConfig


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: CONDITIONFORGE_LOG_LEVEL or WARNING).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None):
    """ConditionForge: condition DSL and JSON-Logic CLI."""
    try:
        config = ConditionForgeConfig.from_env()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    if log_level:
        config.log_level = log_level.upper()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


# Register subcommand groups
from conditionforge.cli.condition_cmd import catalog, condition  # noqa: E402

cli.add_command(condition)
cli.add_command(catalog)
