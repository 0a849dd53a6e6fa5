"""Command group: pool members."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from snackpool.commands._base import PoolGroup
from snackpool.services.users import UserService

if TYPE_CHECKING:
    from snackpool.commands._context import AppContext

_USER_EXAMPLES = """\
  snackpool user list
  snackpool user add alice
  snackpool user add bob --admin
  snackpool user remove 4"""


@click.group(cls=PoolGroup, examples=_USER_EXAMPLES)
def user() -> None:
    """Manage pool members."""


@user.command("list", examples="  snackpool user list\n  snackpool -q user list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List users with their current balance."""
    app.emit(UserService(app.pool).list_users())


@user.command(examples="  snackpool user add alice\n  snackpool user add bob --admin")
@click.argument("username")
@click.option("--admin", "is_admin", is_flag=True, help="Grant admin privileges.")
@click.pass_obj
def add(app: AppContext, username: str, is_admin: bool) -> None:
    """Register a user (admin only)."""
    identity = app.identity("add_user")
    app.emit(UserService(app.pool).add_user(identity, username, is_admin=is_admin))


@user.command(examples="  snackpool user remove 4")
@click.argument("user_id", type=int)
@click.pass_obj
def remove(app: AppContext, user_id: int) -> None:
    """Remove a user without ledger history, dropping their open orders (admin only)."""
    identity = app.identity("remove_user")
    app.emit(UserService(app.pool).remove_user(identity, user_id))
