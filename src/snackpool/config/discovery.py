"""Locate the pool a command runs against.

A pool directory is marked by ``snackpool.toml`` or, for a pool created
without one, by its ``.snackpool/`` data directory. Lookup walks up from
the working directory the way git finds ``.git/``. ``SNACKPOOL_CONFIG``
names a config file explicitly and disables the walk for it.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from snackpool.config.models import PoolFileConfig

if TYPE_CHECKING:
    from collections.abc import Iterator

CONFIG_FILENAME = "snackpool.toml"
CONFIG_ENV_VAR = "SNACKPOOL_CONFIG"
DATA_DIRNAME = ".snackpool"


def _ancestors(start: Path | None) -> Iterator[Path]:
    current = (start or Path.cwd()).resolve()
    yield current
    yield from current.parents


def find_config(start: Path | None = None) -> Path | None:
    """Nearest ``snackpool.toml`` at or above *start* (default: cwd).

    When ``SNACKPOOL_CONFIG`` is set it is the only candidate: a missing
    file there yields None, not a walk-up match.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        explicit = Path(env_path)
        return explicit if explicit.is_file() else None

    for directory in _ancestors(start):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def find_pool_root(start: Path | None = None) -> Path | None:
    """Nearest directory at or above *start* holding a config file or pool data."""
    for directory in _ancestors(start):
        if (directory / CONFIG_FILENAME).is_file() or (directory / DATA_DIRNAME).is_dir():
            return directory
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*. Malformed TOML is a usage error, reported by click."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> PoolFileConfig:
    """The validated file config, or all defaults when no file is found."""
    path = path or find_config(cwd)
    if path is None:
        return PoolFileConfig()
    return PoolFileConfig.model_validate(read_toml(path))
