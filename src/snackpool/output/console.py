"""Rich Console factory and theme for snackpool output.

Consoles render into a StringIO buffer so every renderer returns a plain
string. Under CliRunner or a pipe Rich drops the color codes itself.
"""

from __future__ import annotations

from decimal import Decimal
from io import StringIO

from rich.console import Console
from rich.theme import Theme

SNACK_THEME = Theme(
    {
        "snack.ok": "bold green",
        "snack.error": "bold red",
        "snack.op": "bold cyan",
        "snack.key": "dim",
        "snack.id": "bold blue",
        "snack.name": "bold",
        "snack.credit": "green",
        "snack.debit": "red",
        "snack.zero": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=SNACK_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_amount(amount: Decimal) -> str:
    """Green for credit, red for debit, dim for zero."""
    if amount > 0:
        return "snack.credit"
    if amount < 0:
        return "snack.debit"
    return "snack.zero"
