from typing import Any, List, Optional, Union

from pydantic import (
    AnyHttpUrl,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file="../.env",
        extra="allow",
    )

    ENVIRONMENT_NAME: str = "Development"

    PROJECT_NAME: str = "DeFi Yield Dashboard"
    API_PREFIX: str = "/api"
    # BACKEND_CORS_ORIGINS is a JSON-formatted list of origins
    # e.g: '["http://localhost", "http://localhost:3000"]'
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Wallet used by the refresh worker and /summary when no ?wallet= is given
    DEFAULT_WALLET: Optional[str] = None

    # Vaults.fyi
    VAULTSFYI_API_KEY: Optional[str] = None
    VAULTSFYI_API_URL: str = "https://api.vaults.fyi/v2"

    # Base RPC
    BASE_RPC_URL: str = "https://mainnet.base.org"
    ALCHEMY_API_KEY: Optional[str] = None

    # Alert thresholds, in percent
    THRESHOLD_APY_DELTA: float = 0.5
    THRESHOLD_TVL_DROP: float = 5.0

    @field_validator("THRESHOLD_APY_DELTA", "THRESHOLD_TVL_DROP", mode="before")
    def fallback_threshold(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or v == "":
            return cls.model_fields[info.field_name].default
        try:
            value = float(v)
        except (TypeError, ValueError):
            return cls.model_fields[info.field_name].default
        if value != value or value in (float("inf"), float("-inf")):
            return cls.model_fields[info.field_name].default
        return value

    # Cache lifetimes, in seconds
    SUMMARY_CACHE_TTL: float = 60
    HISTORY_CACHE_TTL: float = 5 * 60

    REFRESH_CRON: str = "0 * * * *"

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "defi_yield_dashboard"
    SQLALCHEMY_DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)

    # Seq log
    SEQ_SERVER_URL: Optional[str] = None
    SEQ_SERVER_API_KEY: Optional[str] = None
    LOG_DIR: str = "logs"

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: str | None, info: ValidationInfo) -> Any:
        if isinstance(v, str) and v:
            return v
        return (
            f"postgresql+psycopg://{info.data.get('POSTGRES_USER')}:"
            f"{info.data.get('POSTGRES_PASSWORD')}@{info.data.get('POSTGRES_SERVER')}/"
            f"{info.data.get('POSTGRES_DB') or ''}"
        )

    @property
    def base_rpc_urls(self) -> List[str]:
        urls = []
        if self.ALCHEMY_API_KEY:
            urls.append(f"https://base-mainnet.g.alchemy.com/v2/{self.ALCHEMY_API_KEY}")
        urls.append(self.BASE_RPC_URL)
        return urls


settings = Settings()
