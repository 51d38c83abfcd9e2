from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field("shipsync", alias="APP_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8000, alias="PORT")
    cron_secret: str = Field("", alias="CRON_SECRET")
    dry_run: bool = Field(False, alias="DRY_RUN")
    default_window_days: int = Field(7, alias="DEFAULT_WINDOW_DAYS")
    dry_run_window_days: int = Field(1, alias="DRY_RUN_WINDOW_DAYS")
    max_workers: int = Field(1, alias="MAX_WORKERS")
    http_timeout_seconds: float = Field(30.0, alias="HTTP_TIMEOUT_SECONDS")
    order_name_prefix: str = Field("36", alias="ORDER_NAME_PREFIX")

    shopify_store_url: str = Field("", alias="SHOPIFY_STORE_URL")
    shopify_admin_token: str = Field("", alias="SHOPIFY_ADMIN_TOKEN")
    shopify_api_version: str = Field("2024-01", alias="SHOPIFY_API_VERSION")
    notify_customer: bool = Field(True, alias="NOTIFY_CUSTOMER")

    suppliers_path: Optional[str] = Field(None, alias="SUPPLIERS_PATH")
    company_phone: str = Field("", alias="COMPANY_PHONE")

    resend_api_key: str = Field("", alias="RESEND_API_KEY")
    notify_from: str = Field("", alias="NOTIFY_FROM")
    notify_to: str = Field("", alias="NOTIFY_TO")

    request_id_header: str = Field("X-Request-Id", alias="REQUEST_ID_HEADER")
    otel_enabled: bool = Field(False, alias="OTEL_ENABLED")
    otel_service_name: str = Field("shipsync", alias="OTEL_SERVICE_NAME")
    otel_exporter_otlp_endpoint: Optional[str] = Field(None, alias="OTEL_EXPORTER_OTLP_ENDPOINT")

    model_config = SettingsConfigDict(extra="ignore")

    @property
    def window_days(self) -> int:
        return self.dry_run_window_days if self.dry_run else self.default_window_days

    @property
    def shopify_configured(self) -> bool:
        return bool(self.shopify_store_url and self.shopify_admin_token)

    @property
    def notifications_configured(self) -> bool:
        return bool(self.resend_api_key and self.notify_from and self.notify_to)


def resolve_env_file() -> Optional[Path]:
    explicit = os.getenv("SHIPSYNC_ENV_FILE")
    if explicit:
        return Path(explicit)
    default = Path.cwd() / "config" / "api.env"
    if default.exists():
        return default
    return None


def load_settings() -> Settings:
    env_file = resolve_env_file()
    if env_file:
        return Settings(_env_file=str(env_file))
    return Settings()
