from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    DATA_DIR, FOREX_PROVIDER, FOREX_API_BASE_URL, RATE_LIMIT_REQUESTS_PER_MINUTE).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "mnFOREX API"
    site_name: str = "mnFOREX"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "currencies.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Forex provider
    # Allowed: 'frankfurter' (live HTTP), 'static' (built-in fixed cross table)
    forex_provider: str = "frankfurter"
    forex_api_base_url: AnyHttpUrl = "https://api.frankfurter.app"
    http_timeout_seconds: float = 15.0
    http_connect_timeout_seconds: float = 5.0
    http_retries: int = 0
    http_user_agent: str = "mnFOREX/1.0"

    # CORS
    cors_allowed_origins: List[str] = ["*"]
    cors_allowed_methods: List[str] = ["GET", "OPTIONS"]
    cors_allowed_headers: List[str] = ["Content-Type", "Authorization"]
    cors_max_age: int = 86400

    # Rate limiting (per client IP, one minute window)
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 60

    # Dashboard
    dashboard_api_base_url: Optional[AnyHttpUrl] = None  # in-process when unset
    dashboard_base_currency: str = "VYR"
    dashboard_target_currency: str = "USD"
    dashboard_rates_base: str = "IRE"
    dashboard_chart_range: str = "1Y"

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        allowed = {"frankfurter", "static"}
        if self.forex_provider not in allowed:
            raise ValueError(
                f"Unsupported forex_provider '{self.forex_provider}'. Allowed: {allowed}"
            )
        if self.rate_limit_requests_per_minute <= 0:
            raise ValueError("rate_limit_requests_per_minute must be positive")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
