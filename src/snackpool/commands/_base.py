"""Click classes carrying worked examples behind an ``--examples`` flag.

``--help`` stays short; ``snackpool order batch --examples`` prints the
invocations registered with the command and exits before any argument
validation, so required arguments need not be supplied.
"""

from __future__ import annotations

import textwrap
from typing import Any

import click


class ExamplesMixin:
    """Accepts ``examples=`` and, when given, adds an eager ``--examples`` flag."""

    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = textwrap.dedent(examples).strip("\n") if examples else None
        if self.examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples and exit.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(textwrap.indent(self.examples or "", "  "))
        ctx.exit(0)


class PoolCommand(ExamplesMixin, click.Command):
    pass


class PoolGroup(ExamplesMixin, click.Group):
    """Group whose ``@group.command(...)`` subcommands are PoolCommands."""

    command_class = PoolCommand
