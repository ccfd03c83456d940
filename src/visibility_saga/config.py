"""Settings for the visibility bridge.

Configuration is loaded from:
- environment variables (prefix ``VISIBILITY_``)
- and a local `.env` file (if present)
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeSettings(BaseSettings):
    """Settings for the runtime, the CLI and the REST server.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `BridgeSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="'json' for structured lines, 'text' for human-readable output",
    )

    initial_visible: bool = Field(
        default=True,
        description="Visibility assumed before the first report arrives",
    )
    watch_on_start: bool = Field(
        default=True,
        description="Dispatch START_WATCHING_VISIBILITY as soon as the runtime starts",
    )
    state_history_limit: int = Field(
        default=100,
        ge=1,
        description="How many past states the store keeps for inspection",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for `serve`")
    port: int = Field(default=8000, gt=0, lt=65536, description="Port for `serve`")
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="VISIBILITY_",
        env_file=".env",
        extra="ignore",
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
