"""Subcommand modules for snackpool.

``register_commands`` imports each module only when the root group is
built, keeping ``snackpool --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every command group and standalone command to *cli*."""
    from snackpool.commands.balance import balance
    from snackpool.commands.deliver import deliver
    from snackpool.commands.item import item
    from snackpool.commands.order import order
    from snackpool.commands.user import user

    cli.add_command(item)
    cli.add_command(user)
    cli.add_command(order)
    cli.add_command(deliver)
    cli.add_command(balance)

    from snackpool.commands.init_cmd import init_cmd

    cli.add_command(init_cmd)
