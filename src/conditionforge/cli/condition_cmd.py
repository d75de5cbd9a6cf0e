"""Condition and catalog CLI commands."""

import json
from pathlib import Path
from typing import Any

import click

from conditionforge.config import ConditionForgeConfig
from conditionforge.dsl.catalog import ConditionVariableCatalog
from conditionforge.dsl.engine import parse_dsl, to_dsl
from conditionforge.dsl.evaluator import evaluate_condition
from conditionforge.metadata.loader import CatalogError, load_catalog

catalog_option = click.option(
    "--catalog",
    "catalog_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Catalog YAML file (default: CONDITIONFORGE_CATALOG_PATH).",
)


def _config(ctx: click.Context) -> ConditionForgeConfig:
    if isinstance(ctx.obj, ConditionForgeConfig):
        return ctx.obj
    return ConditionForgeConfig.from_env()


def _resolve_catalog(ctx: click.Context, catalog_path: Path | None) -> ConditionVariableCatalog:
    """Load the catalog given on the command line, else the configured one."""
    try:
        if catalog_path is not None:
            return load_catalog(catalog_path)
        return _config(ctx).load_catalog()
    except CatalogError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)


def _load_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        click.echo(f"Error: {what} is not valid JSON: {e}", err=True)
        raise SystemExit(1)


def _emit(data: dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    if not data.get("ok"):
        raise SystemExit(1)


@click.group()
def condition():
    """Condition DSL commands."""
    pass


@condition.command("parse")
@click.argument("expression")
@catalog_option
@click.pass_context
def parse_cmd(ctx: click.Context, expression: str, catalog_path: Path | None):
    """Parse and validate a DSL EXPRESSION; print JSON-Logic and canonical text."""
    catalog = _resolve_catalog(ctx, catalog_path)
    result = parse_dsl(expression, catalog, max_depth=_config(ctx).max_depth)
    _emit(result.to_dict())


@condition.command("render")
@click.argument("json_logic", metavar="JSON")
@catalog_option
@click.pass_context
def render_cmd(ctx: click.Context, json_logic: str, catalog_path: Path | None):
    """Render a JSON-Logic document back to canonical DSL text."""
    catalog = _resolve_catalog(ctx, catalog_path)
    result = to_dsl(_load_json(json_logic, "JSON-Logic"), catalog)
    _emit(result.to_dict())


@condition.command("evaluate")
@click.argument("json_logic", metavar="JSON")
@click.option(
    "--payload",
    "payload_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file holding the payload to evaluate against.",
)
@click.option(
    "--payload-json",
    default=None,
    help="Payload given inline as JSON text.",
)
def evaluate_cmd(json_logic: str, payload_path: Path | None, payload_json: str | None):
    """Evaluate a JSON-Logic condition against a payload (default: {})."""
    if payload_path is not None and payload_json is not None:
        click.echo("Error: use either --payload or --payload-json, not both.", err=True)
        raise SystemExit(1)

    expression = _load_json(json_logic, "JSON-Logic")
    if payload_path is not None:
        payload = _load_json(payload_path.read_text(), "Payload file")
    elif payload_json is not None:
        payload = _load_json(payload_json, "Payload")
    else:
        payload = {}

    _emit(evaluate_condition(expression, payload).to_dict())


@click.group()
def catalog():
    """Variable catalog commands."""
    pass


@catalog.command("list")
@catalog_option
@click.pass_context
def list_cmd(ctx: click.Context, catalog_path: Path | None):
    """List catalog variables with their type and allowed operators."""
    variables = list(_resolve_catalog(ctx, catalog_path))
    if not variables:
        click.echo("No variables in catalog.")
        return

    width = max(len(variable.path) for variable in variables)
    for variable in variables:
        operators = " ".join(variable.allowed_operators)
        click.echo(f"  {variable.path.ljust(width)}  {variable.type.value:<8}  {operators}")
    click.echo(f"\n{len(variables)} variable(s).")
