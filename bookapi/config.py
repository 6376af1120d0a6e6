import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .vault import fetch_vault_secret

load_dotenv(".env")


def _default_db_url() -> str:
    env_url = os.getenv("APP_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_url:
        return env_url

    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db_name = os.getenv("POSTGRES_DB", "book_management")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{db_name}"


def _default_jwt_secret() -> str:
    return os.getenv("APP_JWT_SECRET") or os.getenv("JWT_SECRET") or "change-me-jwt-secret"


class Settings(BaseSettings):
    app_name: str = "Book Management API"
    service_name: str = "book-management-api"
    version: str = "1.0.0"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8080
    database_url: str = Field(default_factory=_default_db_url)
    jwt_secret: str = Field(default_factory=_default_jwt_secret)
    token_ttl_hours: int = Field(default=24, ge=1)
    auth_mode: Literal["jwt", "basic"] = "jwt"
    basic_auth_username: str = "admin"
    basic_auth_password: str = "password"
    admin_username: str = "admin"
    admin_default_password: str = "admin123"
    admin_bootstrap_enabled: bool = True
    auto_create_schema: bool = True
    cors_origins: str = ""
    log_level: str = "INFO"
    otel_enabled: bool = True
    strict_security: bool = False
    vault_addr: str | None = None
    vault_token: str | None = None
    vault_kv_mount: str = "kv"
    vault_secret_path: str = "book-management-api/config"

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Vault keys and the settings fields they override.
VAULT_OVERRIDES = {
    "database_url": "database_url",
    "jwt_secret": "jwt_secret",
    "admin_password": "admin_default_password",
}

INSECURE_MARKERS = ("postgres:postgres@", "changeme", "change-me", "change-this", "replace-me", "root@")
DEFAULT_PASSWORDS = ("admin", "admin123", "password")


def _check_strict(settings: Settings) -> None:
    if settings.database_url and any(marker in settings.database_url for marker in INSECURE_MARKERS):
        raise RuntimeError("Insecure database credentials detected")
    if any(marker in settings.jwt_secret.lower() for marker in INSECURE_MARKERS) or len(settings.jwt_secret) < 32:
        raise RuntimeError("Insecure JWT secret detected")
    if settings.admin_default_password in DEFAULT_PASSWORDS:
        raise RuntimeError("Insecure admin default password detected")
    if settings.auth_mode == "basic" and settings.basic_auth_password in DEFAULT_PASSWORDS:
        raise RuntimeError("Insecure basic auth password detected")
    if settings.vault_token and settings.vault_token.lower() == "root":
        raise RuntimeError("Insecure Vault token detected")
    if settings.admin_bootstrap_enabled:
        raise RuntimeError("Unauthenticated admin bootstrap endpoints must be disabled in strict mode")


def get_settings() -> Settings:
    settings = Settings()
    if settings.vault_addr and settings.vault_token:
        secret = fetch_vault_secret(
            addr=settings.vault_addr,
            token=settings.vault_token,
            mount=settings.vault_kv_mount,
            path=settings.vault_secret_path,
        )
        for key, field in VAULT_OVERRIDES.items():
            if secret.get(key):
                setattr(settings, field, secret[key])
    if settings.strict_security:
        _check_strict(settings)
    return settings
