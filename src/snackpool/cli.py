"""Root CLI group for snackpool with global flags and command registration."""

from __future__ import annotations

import click

from snackpool import __version__
from snackpool.commands import register_commands
from snackpool.commands._context import AppContext
from snackpool.config.settings import PoolSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="snackpool")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=None,
    envvar="SNACKPOOL_CONFIG",
    help="Override config file path.",
)
@click.option("--sync", is_flag=True, help="Force synchronous event dispatch.")
@click.option("--as", "actor", default=None, help="Act as this username.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync: bool,
    actor: str | None,
) -> None:
    """snackpool: shared snack orders, deliveries, and balances."""
    # Unset flags pass None so SNACKPOOL_* env vars and the TOML file still apply.
    settings = PoolSettings.from_cli(
        config_path=config_path,
        json_output=json_output or None,
        quiet=quiet or None,
        verbose=verbose or None,
        log_json=log_json or None,
        sync=sync or None,
        actor=actor,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
