"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, snackpool.toml only contains
overrides. A fresh pool needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- snackpool.toml sections ---


class PoolConfig(BaseModel):
    """[pool] section."""

    model_config = {"frozen": True}

    name: str = "snack-pool"


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    filename: str = "snackpool.db"
    busy_timeout: float = Field(default=5.0, gt=0)


class DeliveryConfig(BaseModel):
    """[delivery] section.

    ``trust_client_totals`` posts the caller-supplied per-user totals
    instead of the server-side recomputation. ``strict_usernames`` aborts
    a confirmation on any unknown username instead of skipping it.
    """

    model_config = {"frozen": True}

    trust_client_totals: bool = False
    strict_usernames: bool = True
    payment_description: str = "Order payment"
    receipt_description: str = "Payment received"


class AdminConfig(BaseModel):
    """[admin] section."""

    model_config = {"frozen": True}

    username: str = "admin"


class PoolFileConfig(BaseModel):
    """Root configuration composing all sections of snackpool.toml."""

    model_config = {"frozen": True}

    pool: PoolConfig = Field(default_factory=PoolConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
