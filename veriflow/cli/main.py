"""
CLI entry point for the Veriflow SDK.

Provides a small command-line interface for inspecting configuration and
issuing ad-hoc REST and GraphQL reads through the full SDK runtime
(auth, pooling, retries and caching included).
"""

import asyncio
import dataclasses
import functools
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from veriflow._version import __version__
from veriflow.config.settings import build_config, get_default_config_path, load_config
from veriflow.exceptions import ConfigurationError, VeriflowError
from veriflow.logging_config import setup_logging, setup_stderr_logging
from veriflow.cli.context import CLIContext, pass_context

_SECRET_FIELDS = ("api_key", "secret_key")


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help=f'Path to configuration file (default: {get_default_config_path()})',
)
@click.option(
    '--log-level',
    '-l',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help='Set logging level (default: logging.level from the configuration file)',
)
@click.option('--api-key', envvar='VERIFLOW_API_KEY', default=None, help='API key (env: VERIFLOW_API_KEY)')
@click.option('--base-url', envvar='VERIFLOW_BASE_URL', default=None, help='API base URL (env: VERIFLOW_BASE_URL)')
@click.version_option(version=__version__, prog_name='veriflow')
@pass_context
def cli(
    ctx: CLIContext,
    config: Optional[Path],
    log_level: Optional[str],
    api_key: Optional[str],
    base_url: Optional[str],
):
    """
    Veriflow SDK - command-line access to the Veriflow API.
    """
    ctx.config_path = str(config) if config else None

    # Keep stdout clean for command output while the configuration loads
    setup_stderr_logging(log_level or "WARNING")

    # Load configuration
    try:
        loaded = load_config(ctx.config_path)
        ctx.config = build_config(loaded, api_key=api_key, base_url=base_url)
    except ConfigurationError as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(1)

    # Set up logging
    log_file = Path(ctx.config.logging.file) if ctx.config.logging.file else None
    setup_logging(
        level=log_level.upper() if log_level else ctx.config.logging.level,
        log_file=log_file,
        json_format=ctx.config.logging.json_format,
    )


def handle_veriflow_error(func):
    """
    Decorator to handle VeriflowError exceptions in CLI commands.

    Displays a one-line error and exits with status 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except VeriflowError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        except Exception as e:
            click.echo(f"Unexpected error: {e}", err=True)
            if logging.getLogger().level == logging.DEBUG:
                import traceback
                traceback.print_exc()
            sys.exit(1)

    return wrapper


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, sort_keys=True, default=str))


def _parse_params(pairs: Tuple[str, ...]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--param")
        params[key] = value
    return params


async def _run_with_client(ctx: CLIContext, operation):
    client = ctx.make_client()
    try:
        return await operation(client)
    finally:
        await client.aclose()


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@cli.group()
def config():
    """Inspect configuration."""
    pass


@config.command('show')
@pass_context
def config_show(ctx: CLIContext):
    """Print the effective configuration (secrets masked)."""
    data = dataclasses.asdict(ctx.config)
    for name in _SECRET_FIELDS:
        if data.get(name):
            data[name] = "****"
    data["websocket_url"] = ctx.config.websocket_url
    _echo_json(data)


# ---------------------------------------------------------------------------
# get / graphql
# ---------------------------------------------------------------------------

@cli.command('get')
@click.argument('path')
@click.option('--param', '-p', 'params', multiple=True, help='Query parameter as key=value (repeatable)')
@click.option('--no-cache', is_flag=True, help='Bypass the response cache')
@pass_context
@handle_veriflow_error
def get_command(ctx: CLIContext, path: str, params: Tuple[str, ...], no_cache: bool):
    """GET a resource PATH and print the JSON body."""
    query = _parse_params(params)
    if not path.startswith("/"):
        path = "/" + path
    body = asyncio.run(_run_with_client(
        ctx,
        lambda client: client.http.get(path, params=query or None, cacheable=not no_cache),
    ))
    _echo_json(body)


@cli.command('graphql')
@click.argument('query')
@click.option('--variables', '-V', default=None, help='Variables as a JSON object')
@pass_context
@handle_veriflow_error
def graphql_command(ctx: CLIContext, query: str, variables: Optional[str]):
    """Run a GraphQL QUERY and print its data."""
    parsed: Optional[Dict[str, Any]] = None
    if variables:
        try:
            parsed = json.loads(variables)
        except ValueError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--variables")
        if not isinstance(parsed, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--variables")
    data = asyncio.run(_run_with_client(
        ctx,
        lambda client: client.graphql.query(query, parsed),
    ))
    _echo_json(data)


if __name__ == '__main__':
    cli()
