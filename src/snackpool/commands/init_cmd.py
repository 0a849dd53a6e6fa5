"""Command: pool initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from snackpool.commands._base import PoolCommand

if TYPE_CHECKING:
    from snackpool.commands._context import AppContext

_INIT_EXAMPLES = """\
  snackpool init
  snackpool init --no-seed
  SNACKPOOL_ADMIN__USERNAME=office snackpool init
  snackpool -c /srv/kitchen/snackpool.toml init"""


@click.command("init", cls=PoolCommand, examples=_INIT_EXAMPLES)
@click.option("--no-seed", is_flag=True, help="Do not add the default item list.")
@click.pass_obj
def init_cmd(app: AppContext, no_seed: bool) -> None:
    """Create the pool database, the admin user, and the default items."""
    from snackpool.services.init import InitService

    app.emit(InitService.init_pool(app.settings, seed_items=not no_seed))
