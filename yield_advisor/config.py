from __future__ import annotations

from functools import lru_cache
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Runtime
    ENV: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Observability
    ENABLE_LOKI: bool = Field(default=False)
    LOKI_URL: str = Field(default="http://localhost:3100")

    # Shyft APIs (DeFi data + wallet portfolio)
    SHYFT_API_KEY: str | None = None
    SHYFT_DEFI_BASE_URL: str = Field(default="https://defi.shyft.to/v0")
    SHYFT_WALLET_BASE_URL: str = Field(default="https://api.shyft.to/sol/v1/wallet")
    SOLANA_NETWORK: str = Field(default="mainnet-beta")

    # Transport
    HTTP_TIMEOUT_SECONDS: float = Field(default=15.0)
    HTTP_RETRY_ATTEMPTS: int = Field(default=3, ge=1)

    # Engine
    FANOUT_CONCURRENCY: int = Field(default=10, ge=1)
    DEFAULT_POOL_PAGE: int = Field(default=1, ge=1)
    DEFAULT_POOL_LIMIT: int = Field(default=10, ge=1)
    DEFAULT_RECOMMENDATION_LIMIT: int = Field(default=5, ge=1)

    def shyft_headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json"}
        if self.SHYFT_API_KEY:
            headers["x-api-key"] = self.SHYFT_API_KEY
        return headers


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
