"""AppContext: shared Click context for all commands.

Created by the root group and handed to subcommands via
``@click.pass_obj``. Opens the pool lazily, resolves the acting user,
and centralises result emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

import json
from typing import IO, TYPE_CHECKING, Any, NoReturn

import click

from snackpool.output.formatters import OutputSettings, format_result
from snackpool.services.result import ServiceResult

if TYPE_CHECKING:
    from snackpool.config.settings import PoolSettings
    from snackpool.domain.requests import Identity
    from snackpool.infrastructure.pool import Pool


class AppContext:
    """Per-invocation state shared by every subcommand.

    The pool is opened on first use so ``--help`` and ``--examples``
    never touch the database.
    """

    def __init__(self, settings: PoolSettings) -> None:
        self.settings = settings
        self._pool: Pool | None = None

        from snackpool.config.logging import bind_log_context, configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        bind_log_context(pool=settings.pool.name, actor=settings.actor)

        if settings.verbose:
            from snackpool.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def pool(self) -> Pool:
        if self._pool is None:
            from snackpool.infrastructure.pool import Pool

            self._pool = Pool(self.settings)
            self._pool.init_event_bus(sync=self.settings.sync)
        return self._pool

    @property
    def actor_name(self) -> str:
        """``--as`` / ``SNACKPOOL_ACTOR``, else the configured admin."""
        return self.settings.actor or self.settings.admin.username

    def identity(self, op: str) -> Identity:
        """Resolve the acting user, or emit NOT_FOUND and exit."""
        from snackpool.services.users import UserService

        identity = UserService(self.pool).resolve(self.actor_name)
        if identity is None:
            self.fail(
                ServiceResult.failure(
                    op,
                    "NOT_FOUND",
                    f"Unknown user: {self.actor_name} (run 'snackpool init' or pass --as)",
                    username=self.actor_name,
                )
            )
        return identity

    def read_json(self, stream: IO[str], op: str) -> Any:
        """Parse JSON from *stream*, or emit VALIDATION_FAILED and exit."""
        try:
            return json.load(stream)
        except json.JSONDecodeError as exc:
            self.fail(ServiceResult.failure(op, "VALIDATION_FAILED", f"Invalid JSON: {exc}"))

    def close(self) -> None:
        from snackpool.config.logging import clear_log_context

        if self._pool is not None:
            self._pool.close()
            self._pool = None
        clear_log_context()

    def _format(self, result: ServiceResult) -> str:
        return format_result(
            result,
            settings=OutputSettings(
                json_output=self.settings.json_output,
                quiet=self.settings.quiet,
                verbose=self.settings.verbose,
            ),
        )

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and set the exit status.

        Success goes to stdout and returns; warnings go to stderr unless
        they are already part of the JSON payload. Failure exits 1.
        """
        if not result.ok:
            self.fail(result)
        click.echo(self._format(result))
        if not self.settings.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)

    def fail(self, result: ServiceResult) -> NoReturn:
        """Print a failed *result* to stderr and exit 1."""
        click.echo(self._format(result), err=True)
        raise SystemExit(1)
