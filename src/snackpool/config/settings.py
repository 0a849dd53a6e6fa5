"""PoolSettings: CLI flags, env vars, and ``snackpool.toml`` merged into one frozen object.

Sources, strongest first:

1. keyword arguments (the CLI flags ``from_cli`` receives)
2. ``SNACKPOOL_*`` environment variables, ``__`` reaching into sections
   (``SNACKPOOL_DELIVERY__STRICT_USERNAMES=false``)
3. the TOML file found by :func:`~snackpool.config.discovery.find_config`
4. the defaults on the section models
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from snackpool.config.discovery import DATA_DIRNAME, find_config, find_pool_root, read_toml
from snackpool.config.models import AdminConfig, DatabaseConfig, DeliveryConfig, PoolConfig

# The file the next PoolSettings construction reads; set only inside from_cli.
_toml_path: ContextVar[Path | None] = ContextVar("snackpool_toml_path", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by one parsed TOML document."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = read_toml(path) if path is not None else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class PoolSettings(BaseSettings):
    """Everything a command needs to know about the pool it runs against.

    Attributes:
        pool_root: Directory owning ``.snackpool/``: the config file's
            parent, else the nearest ancestor already holding pool data,
            else the working directory.
        config_path: The TOML file in effect, or None.
        actor: Username the CLI acts as. It is looked up, never authenticated.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "SNACKPOOL_",
        "env_nested_delimiter": "__",
    }

    pool_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False
    actor: str | None = None

    pool: PoolConfig = Field(default_factory=PoolConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)

    @property
    def data_dir(self) -> Path:
        return self.pool_root / DATA_DIRNAME

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.database.filename

    @property
    def plugins_dir(self) -> Path:
        """Single-file local plugins are loaded from here."""
        return self.data_dir / "plugins"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _toml_path.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        pool_root: Path | None = None,
        **cli_flags: Any,
    ) -> PoolSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* that does not exist is ignored rather
        than falling back to discovery. Flags given as None are dropped so
        env vars and the file can still supply them.
        """
        if config_path:
            candidate = Path(config_path)
            toml_path = candidate if candidate.is_file() else None
        else:
            toml_path = find_config(pool_root)

        if pool_root is None:
            if toml_path is not None:
                pool_root = toml_path.parent
            else:
                pool_root = find_pool_root() or Path.cwd()

        flags = {name: value for name, value in cli_flags.items() if value is not None}
        token = _toml_path.set(toml_path)
        try:
            return cls(pool_root=pool_root, config_path=toml_path, **flags)
        finally:
            _toml_path.reset(token)
