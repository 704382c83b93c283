"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

from portfolio_ledger.evolution import DEFAULT_PERIOD
from portfolio_ledger.fx import DEFAULT_REPORTING_CURRENCY

DEFAULT_TIMEZONE = "America/Sao_Paulo"


class AppSettings(BaseSettings):
    """Configuration options for the portfolio ledger service."""

    app_name: str = Field(default="Portfolio Ledger")
    timezone: str = Field(default=DEFAULT_TIMEZONE)
    reporting_currency: str = Field(default=DEFAULT_REPORTING_CURRENCY, min_length=3, max_length=3)

    evolution_max_days: int = Field(
        default=3650,
        gt=0,
        description="Longest evolution range, in days, accepted by the API.",
    )
    evolution_max_points: int | None = Field(
        default=200,
        description="Down-sample daily evolution grids above this many points; unset keeps every day.",
    )
    evolution_default_period: str = Field(default=DEFAULT_PERIOD)
    money_decimal_places: int = Field(default=2, ge=0, le=8)

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="portfolio-ledger")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "LEDGER_"

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a dict suitable for startup logging."""

        return self.model_dump()


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_TIMEZONE",
    "get_settings",
]
