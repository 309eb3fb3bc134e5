"""Configuration management using Pydantic Settings"""

from datetime import date
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # External Services
    records_api_base: str = "http://localhost:8001"
    payroll_webhook_url: str = "http://localhost:8002/payroll/snapshots"

    # Service
    service_name: str = "commission-gateway"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = 5
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds

    # Compensation plan
    deal_bonus_rule_set: str = "tiered-aff-override"
    rest_days: List[int] = [4, 5]  # date.weekday(): Friday, Saturday
    time_boxed_bonus_cutoff: date = date(2025, 9, 30)
    quarterly_program_start: date = date(2025, 7, 1)


settings = Settings()
