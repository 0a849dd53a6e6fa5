"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a StringIO-backed Console; :func:`render_result`
picks one by ``result.op`` and falls back to a key-value listing for
operations without a dedicated layout.
"""

from __future__ import annotations

import json as _json
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from snackpool.output.console import create_console, get_output, style_for_amount

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from snackpool.services.result import ServiceResult

    Renderer = Callable[[ServiceResult, Console], None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render *result* to text. Plain text when no terminal is attached."""
    console = create_console()
    if result.ok:
        _OP_RENDERERS.get(result.op, _render_generic)(result, console)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Ids of listed rows, one per line, or a one-line status."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    rows = result.data.get("items")
    if isinstance(rows, list) and rows:
        return "\n".join(str(r["id"]) for r in rows if isinstance(r, dict) and "id" in r)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="snack.ok"), Text(f"  {result.op}", style="snack.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="snack.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="snack.id")
    elif isinstance(value, Decimal):
        v = _amount(value)
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _amount(value: Any) -> Text:
    amount = Decimal(str(value))
    return Text(f"{amount:.2f}", style=style_for_amount(amount))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Telemetry span tree, shown with --verbose."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(f"    {key}: {value}")


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    style = "yellow" if duration > 100 else "dim"
    line = Text(" " * indent)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span.get('name', '?')}")
    annotations = span.get("annotations") or {}
    if annotations:
        line.append("  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")")
    console.print(line)
    for child in span.get("children", []):
        _render_span(console, child, indent + 2)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool) -> None:
    err = result.error
    line = Text("ERROR", style="snack.error")
    line.append(f"  {result.op}", style="snack.op")
    if err is not None:
        line.append(f"  [{err.code}] {err.message}")
    console.print(line)
    if verbose and err is not None:
        for key, value in err.detail.items():
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Catalog / users ──────────────────────────────────────────────────


def _render_items(result: ServiceResult, console: Console) -> None:
    table = Table(title=f"Items ({result.data.get('count', 0)})", title_justify="left")
    table.add_column("ID", style="snack.id", justify="right")
    table.add_column("Name", style="snack.name")
    table.add_column("Price", justify="right")
    for item in result.data.get("items", []):
        table.add_row(str(item["id"]), item["name"], f"{Decimal(str(item['price'])):.2f}")
    console.print(table)


def _render_users(result: ServiceResult, console: Console) -> None:
    table = Table(title=f"Users ({result.data.get('count', 0)})", title_justify="left")
    table.add_column("ID", style="snack.id", justify="right")
    table.add_column("Username", style="snack.name")
    table.add_column("Admin")
    table.add_column("Balance", justify="right")
    for user in result.data.get("items", []):
        table.add_row(
            str(user["id"]),
            user["username"],
            "yes" if user.get("is_admin") else "",
            _amount(user.get("current_balance", 0)),
        )
    console.print(table)


def _render_mutation(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if not isinstance(value, (dict, list)):
            _field(console, key, value)


# ── Orders / delivery ────────────────────────────────────────────────


def _render_orders(result: ServiceResult, console: Console) -> None:
    table = Table(title=f"Open orders ({result.data.get('count', 0)})", title_justify="left")
    table.add_column("User", style="snack.name")
    table.add_column("Item")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Line", justify="right")
    table.add_column("Since", style="dim")
    for order in result.data.get("items", []):
        table.add_row(
            order["username"],
            f"{order['item_name']} (#{order['item_id']})",
            str(order["quantity"]),
            f"{Decimal(str(order['price'])):.2f}",
            f"{Decimal(str(order['line_total'])):.2f}",
            str(order["created_at"])[:19],
        )
    console.print(table)


def _render_batch(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("requested", "upserted", "removed"):
        _field(console, key, d.get(key, 0))


def _render_preview(result: ServiceResult, console: Console) -> None:
    d = result.data
    if not d.get("order_count"):
        console.print(Text("No open orders.", style="dim"))
        return

    items = Table(title="Delivery", title_justify="left")
    items.add_column("Item", style="snack.name")
    items.add_column("Qty", justify="right")
    items.add_column("Price", justify="right")
    items.add_column("Total", justify="right")
    items.add_column("Ordered by", style="dim")
    for item in d.get("items", []):
        by_user = ", ".join(f"{name} x{qty}" for name, qty in item["by_user"].items())
        items.add_row(
            item["item_name"],
            str(item["total_quantity"]),
            f"{Decimal(str(item['price'])):.2f}",
            f"{Decimal(str(item['line_total'])):.2f}",
            by_user,
        )
    console.print(items)

    users = Table(title="Per user", title_justify="left")
    users.add_column("User", style="snack.name")
    users.add_column("Owes", justify="right")
    for user in d.get("users", []):
        users.add_row(user["username"], f"{Decimal(str(user['total'])):.2f}")
    console.print(users)
    _field(console, "total", Decimal(str(d["total"])))


def _render_confirm(result: ServiceResult, console: Console) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "delivering_user_id", d["delivering_user_id"])
    _field(console, "total", Decimal(str(d["total"])))
    _field(console, "source", d.get("source", ""))
    _field(console, "orders_cleared", d.get("orders_cleared", 0))
    table = Table(title="Ledger entries", title_justify="left")
    table.add_column("Entry", style="snack.id", justify="right")
    table.add_column("User", style="snack.name")
    table.add_column("Amount", justify="right")
    for entry in d.get("entries", []):
        table.add_row(str(entry["id"]), str(entry.get("username")), _amount(entry["amount"]))
    console.print(table)


# ── Ledger ───────────────────────────────────────────────────────────


def _render_balances(result: ServiceResult, console: Console) -> None:
    table = Table(title="Balances", title_justify="left")
    table.add_column("ID", style="snack.id", justify="right")
    table.add_column("User", style="snack.name")
    table.add_column("Balance", justify="right")
    for row in result.data.get("items", []):
        table.add_row(str(row["id"]), row["username"], _amount(row["current_balance"]))
    console.print(table)


def _render_history(result: ServiceResult, console: Console) -> None:
    table = Table(title=f"Ledger ({result.data.get('count', 0)})", title_justify="left")
    table.add_column("ID", style="snack.id", justify="right")
    table.add_column("When", style="dim")
    table.add_column("User", style="snack.name")
    table.add_column("Amount", justify="right")
    table.add_column("Description")
    for entry in result.data.get("items", []):
        table.add_row(
            str(entry["id"]),
            str(entry["created_at"])[:19],
            str(entry.get("username")),
            _amount(entry["amount"]),
            entry["description"],
        )
    console.print(table)


# ── Init ─────────────────────────────────────────────────────────────


def _render_init(result: ServiceResult, console: Console) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("name", "path", "db_path"):
        _field(console, key, d[key])
    admin = d.get("admin", {})
    state = "created" if admin.get("created") else "existing"
    _field(console, "admin", f"{admin.get('username')} (id {admin.get('id')}, {state})")
    _field(console, "items_seeded", d.get("items_seeded", 0))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":"), default=str))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Catalog / users
    "list_items": _render_items,
    "add_item": _render_mutation,
    "update_item": _render_mutation,
    "delete_item": _render_mutation,
    "list_users": _render_users,
    "add_user": _render_mutation,
    "remove_user": _render_mutation,
    # Orders / delivery
    "list_orders": _render_orders,
    "apply_batch": _render_batch,
    "set_order": _render_batch,
    "preview_delivery": _render_preview,
    "confirm_delivery": _render_confirm,
    # Ledger
    "balances": _render_balances,
    "balance": _render_mutation,
    "history": _render_history,
    "correct_balance": _render_mutation,
    # Init
    "init_pool": _render_init,
}
