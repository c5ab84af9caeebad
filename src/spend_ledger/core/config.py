from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    database_url: str = "sqlite:///./spend_ledger.db"

    text_header_scan_rows: int = 30
    sheet_header_scan_rows: int = 60
    header_min_score: int = 6
    sniff_bytes: int = 8192

    year_forward_days: int = 45
    year_backward_days: int = 320

    recent_history_limit: int = 3000

    subscription_min_occurrences: int = 3
    subscription_min_gap_days: int = 25
    subscription_max_gap_days: int = 40

    notification_dedupe_capacity: int = 250
    notification_dedupe_ttl_seconds: float = 120.0
    notification_dedupe_window_seconds: float = 12.0


settings = Settings()
