"""
CarbonV2 — Service Configuration
Centralises all environment-driven settings with sensible defaults.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config sourced from environment / .env file."""

    # ── Service ──────────────────────────────────────────────────────────
    API_ENV: str = "development"
    API_PORT: int = 8080

    # ── Auth (token verification only) ───────────────────────────────────
    JWT_SECRET: str = "changeme-super-secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60

    # ── PostgreSQL ───────────────────────────────────────────────────────
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "carbonv2"
    DB_USER: str = "carbonv2"
    DB_PASSWORD: str = "changeme"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DATABASE_URL: Optional[str] = None  # overrides the DB_* fields when set

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ── Timeouts (seconds) ───────────────────────────────────────────────
    STORE_TIMEOUT_SECONDS: float = 5.0
    IMPORT_TIMEOUT_SECONDS: float = 30.0
    NARRATIVE_TIMEOUT_SECONDS: float = 25.0

    # ── Narrative generation (Mistral agents) ────────────────────────────
    MISTRAL_API_KEY: Optional[str] = None
    MISTRAL_AGENT_ID: Optional[str] = None
    MISTRAL_API_BASE: str = "https://api.mistral.ai"

    # ── Engine ───────────────────────────────────────────────────────────
    METHODOLOGY_VERSION: str = "mvp-simple-v1"
    ANALYTICS_WINDOW: int = 200     # max entries fed to the facts builder
    CHAT_WINDOW: int = 50           # entries in the chat context snapshot
    LATEST_RECORDS: int = 10        # record snapshots kept in the facts

    # ── Observability ────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @property
    def narrative_configured(self) -> bool:
        return bool(self.MISTRAL_API_KEY and self.MISTRAL_AGENT_ID)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
