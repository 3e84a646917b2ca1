from datetime import date
from decimal import Decimal

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    database_url: str = "sqlite+pysqlite:///./student_loans.db"
    db_auto_create: bool = True
    cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"
    timezone: str = "Europe/London"

    rate_sync_enabled: bool = True
    rate_api_url: str = "https://data-api.ecb.europa.eu/service/data/EXR"
    rate_currency: str = "GBP"
    rate_reference_currency: str = "EUR"
    rate_history_start: date = date(2012, 1, 1)
    rate_fetch_timeout_seconds: float = 30.0
    rate_fallback_days: int = 10
    rate_default: Decimal = Decimal("1")

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"

settings = Settings()
