from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Blockon Real Estate Contracts"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"
    upload_dir: str = "uploads"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── BACKEND CLIENT (registration pipeline) ───────────
    backend_base_url: str = "http://localhost:8000/api/v1"
    backend_token: Optional[str] = None
    http_timeout_seconds: float = 10.0
    identity_lookup_retries: int = 2
    persistence_retries: int = 3
    retry_backoff_seconds: float = 0.5

    # ─────────── LEDGER ───────────
    ledger_rpc_url: str = "http://localhost:8545"
    factory_contract_address: Optional[str] = None
    confirmation_poll_seconds: float = 2.0
    # None waits forever; set it in production
    confirmation_timeout_seconds: Optional[float] = 600.0
    # sweep for contracts confirmed on chain but not yet stored; None disables it
    reconcile_interval_seconds: Optional[float] = 30.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
