from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class ConfigurationError(RuntimeError):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = Field(default="dev")  # dev|prod|test

    # Security
    JWT_SECRET: str = Field(default="change-me")
    JWT_ALG: str = Field(default="HS256")
    JWT_EXPIRES_MIN: int = Field(default=60 * 12)

    # DB (ledger + catalog)
    DATABASE_URL: str = Field(default="postgresql+psycopg://app:app@db:5432/ventory")

    # CORS
    CORS_ORIGINS: str = Field(default="http://localhost:5173,http://localhost:3000")

    # Celery / Redis
    REDIS_URL: str = Field(default="redis://redis:6379/0")

    # Files
    UPLOAD_DIR: str = Field(default="/app/data/uploads")
    IMPORT_MAX_FILE_MB: int = Field(default=20)

    # Import runner
    IMPORT_FLUSH_EVERY: int = Field(default=10)
    IMPORT_USERS_FLUSH_EVERY: int = Field(default=5)
    IMPORT_CANCEL_CHECK_EVERY: int = Field(default=1)
    IMPORT_STALE_AFTER_MIN: int = Field(default=15)
    IMPORT_USERS_ROLLBACK_IDENTITY: bool = Field(default=False)
    ENTITY_CALL_TIMEOUT_SEC: float = Field(default=20.0)

    # Auth identities created by the users import: local|http
    IDENTITY_PROVIDER: str = Field(default="local")
    AUTH_ADMIN_URL: str = Field(default="")
    AUTH_SERVICE_KEY: str = Field(default="")

    # Seed (dev)
    SEED_DEMO: bool = Field(default=True)
    DEMO_ADMIN_EMAIL: str = Field(default="admin@ventory.local")
    DEMO_ADMIN_PASSWORD: str = Field(default="admin123")


settings = Settings()


def validate_settings(s: Settings = settings) -> None:
    """Fail fast on missing external configuration.

    Called once by the API factory and by the worker on boot, never per request.
    """
    missing = [
        name
        for name in ("DATABASE_URL", "UPLOAD_DIR", "JWT_SECRET")
        if not str(getattr(s, name) or "").strip()
    ]
    provider = (s.IDENTITY_PROVIDER or "").strip().lower()
    if provider not in ("local", "http"):
        raise ConfigurationError(f"Unknown IDENTITY_PROVIDER: {s.IDENTITY_PROVIDER!r}")
    if provider == "http":
        missing += [name for name in ("AUTH_ADMIN_URL", "AUTH_SERVICE_KEY") if not getattr(s, name).strip()]
    if s.ENV == "prod" and s.JWT_SECRET == "change-me":
        missing.append("JWT_SECRET")
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(sorted(set(missing)))}")
