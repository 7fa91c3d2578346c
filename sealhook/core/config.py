from pydantic_settings import BaseSettings  # type: ignore
from pydantic import field_validator
from typing import Optional

VERSION = "0.1.0"


class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    BASE_URL: str = "http://localhost:8080"  # public URL webhook links are built from
    DEV_MODE: bool = False
    DEBUG: bool = False
    VERSION: str = VERSION

    # Security
    SECRET: str = ""  # sealing secret, rotating it revokes every issued webhook
    PASSWORD: str = ""  # basic auth for management routes, empty disables it
    ADMIN_USER: str = "sealhook"

    # Outbound delivery
    TIMEOUT_SECONDS: float = 90.0

    # Inbound limits
    MAX_BODY_BYTES: int = 1024 * 1024
    MAX_CONCURRENT_REQUESTS: int = 1000
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_RPS: float = 10.0
    RATE_LIMIT_BURST: int = 10

    # Lifecycle
    SHUTDOWN_TIMEOUT_SECONDS: int = 10

    # Observability
    TRACING_ENABLED: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None

    @field_validator("BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    """Load settings from the environment (and .env, if present)."""
    return Settings()
