"""Select an output mode for a ServiceResult.

Three modes, checked in order: ``--json`` (the full result as JSON),
``--quiet`` (ids or a one-line status), and the default Rich rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from snackpool.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Output flags lifted from PoolSettings."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format *result* for display according to *settings*."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)

    from snackpool.output.renderers import render_quiet, render_result

    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
