from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="OM_", extra="ignore")

    app_name: str = "Order Management API"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    database_url: str = "sqlite+pysqlite:///./orders.db"

    log_level: str = "INFO"

    estimated_delivery_days: int = Field(default=5, ge=0, description="days added to created_at")

    bootstrap_demo_on_startup: bool = False
    seed_enabled: bool | None = None

    def model_post_init(self, __context) -> None:
        # The seed route wipes the catalog, so it is only on by default in dev.
        if self.seed_enabled is None:
            self.seed_enabled = self.env.lower() == "dev"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
