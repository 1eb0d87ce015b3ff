"""
Nexus API configuration.

Every tunable the API reads from the environment (or a local .env file)
is declared on ``Settings``. Engine scoring constants are not settings;
they live in ``nexus.graph.scoring.ScoringConfig``.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

WEAK_ADMIN_PASSWORDS = frozenset({"", "admin", "password", "changeme", "123456"})


class Settings(BaseSettings):
    """Environment-backed API settings. Defaults target a local PocketBase."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # --- Datastore ---
    pocketbase_url: str = Field(
        default="http://127.0.0.1:8090",
        description="Base URL of the PocketBase instance holding profiles, contacts and connections",
    )
    pocketbase_admin_email: str = Field(
        default="admin@nexus.local",
        description="Superuser account; the privileged connected-contacts read runs as it",
    )
    pocketbase_admin_password: str = Field(
        default="",
        description="Superuser password (no usable default)",
    )
    skip_pb_auth: bool = Field(
        default=False,
        description="Do not authenticate as superuser at startup (tests, offline work)",
    )

    @field_validator("pocketbase_admin_password", mode="after")
    @classmethod
    def warn_on_weak_password(cls, v: str) -> str:
        if v in WEAK_ADMIN_PASSWORDS:
            logger.warning(
                "SECURITY WARNING: POCKETBASE_ADMIN_PASSWORD is empty or a well-known value; "
                "the privileged contacts read runs with this account"
            )
        return v

    # --- HTTP ---
    # Comma-separated in the environment; read through allowed_origins
    allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="ALLOWED_ORIGINS",
        description="Origins the renderer is served from",
    )
    disconnect_poll_seconds: float = Field(
        default=0.25,
        gt=0,
        description="How often a pending network build checks whether its client went away",
    )

    # --- Network graph ---
    graph_random_seed: int = Field(
        default=42,
        description="Edge-distance jitter seed; the same seed reproduces the same distances",
    )
    graph_jitter_spread: float = Field(
        default=0.15,
        description="Distances vary within base * [1 - spread, 1 + spread]",
    )

    @field_validator("graph_jitter_spread", mode="after")
    @classmethod
    def validate_jitter_spread(cls, v: float) -> float:
        if not 0.0 <= v < 0.5:
            raise ValueError(f"Invalid GRAPH_JITTER_SPREAD: {v}. Must be in [0, 0.5)")
        return v

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Settings for this process, read from the environment on first use."""
    return Settings()
