# glovehub/config.py
import os
from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === General ===
    app_env: str = "local"  # local | development | production
    app_name: str = "glovehub"
    default_language: str = "id"
    # calendar used for document dates and yearly sequences
    business_timezone: str = "Asia/Jakarta"

    # === Database ===
    database_url: str = "sqlite:///./glovehub.db"
    database_echo: bool = False

    # === Logging ===
    log_level: str = "INFO"
    log_json: bool = True

    # === Tax (PPN) ===
    ppn_rate: Decimal = Field(Decimal("0.11"), description="Indonesian VAT rate")
    tax_invoice_prefix: str = "010.000"

    # === Quotations ===
    validity_days_very_urgent: int = 1
    validity_days_urgent: int = 3
    validity_days_normal: int = 7

    # === Invoices ===
    invoice_due_days: int = 14

    # === Document numbering ===
    number_retry_attempts: int = 5
    number_retry_base_seconds: float = 0.01
    number_retry_cap_seconds: float = 0.2

    # === Metrics ===
    metrics_enabled: bool = True

    # === Pydantic Settings config ===
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GLOVEHUB_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance with simple environment overrides."""
    s = Settings()

    env = os.getenv("ENVIRONMENT", s.app_env).lower()
    if env == "production":
        s.log_level = "WARNING"
    elif env == "development":
        s.log_level = "DEBUG"
        s.log_json = False

    return s


# Module-level export so `from glovehub.config import settings` keeps working
settings = get_settings()
