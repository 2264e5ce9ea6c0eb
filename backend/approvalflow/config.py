from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "ApprovalFlow"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://approvalflow:approvalflow@db:5432/approvalflow"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    log_level: str = "INFO"

    # Auto-approval fallbacks used when the policy lookup has no answer.
    pto_auto_approve_days_standard: Decimal = Decimal(3)
    pto_auto_approve_days_elevated: Decimal = Decimal(10)
    expense_auto_approve_standard: Decimal = Decimal(100)
    expense_auto_approve_elevated: Decimal = Decimal(500)

    # Annual budget per expense category, in the request currency.
    expense_category_budgets: dict[str, Decimal] = {
        "travel": Decimal(5000),
        "meals": Decimal(1500),
        "home_office": Decimal(500),
        "training": Decimal(2000),
        "software": Decimal(1000),
        "supplies": Decimal(500),
    }

    pto_monthly_accrual_standard: Decimal = Decimal("1.5")
    pto_monthly_accrual_elevated: Decimal = Decimal("2.0")
    pto_rollover_cap: Decimal = Decimal(5)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
