"""
Application configuration using pydantic-settings with nested structure
"""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from pathlib import Path


# ============================================================================
# NESTED CONFIGURATION MODELS
# ============================================================================

# Get absolute path to .env file (backend directory)
_BASE_DIR = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BASE_DIR / ".env"


class APIConfig(BaseSettings):
    """HTTP API server configuration."""
    host: str = "127.0.0.1"
    port: int = 4000
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    model_config = SettingsConfigDict(env_prefix="API_", extra="ignore")


class BrowserConfig(BaseSettings):
    """Automation engine (Chromium) configuration."""
    headless: bool = False
    launch_on_startup: bool = True
    navigation_timeout_ms: int = Field(default=30000, ge=0)
    model_config = SettingsConfigDict(env_prefix="BROWSER_", extra="ignore")


class ValidationConfig(BaseSettings):
    """Time budget for the fast ticker probe.

    Field names match the bare environment variables used by existing
    deployments (VALIDATION_TOTAL_BUDGET_MS, INVALID_MARKER_WAIT_MS, ...).
    """
    validation_total_budget_ms: int = Field(default=1400, ge=0)
    validation_goto_timeout_ms: int = Field(default=2000, ge=0)
    invalid_marker_wait_ms: int = Field(default=250, ge=0)
    selector_sprint_wait_ms: int = Field(default=700, ge=0)
    model_config = SettingsConfigDict(env_prefix="", extra="ignore")


class RecoveryConfig(BaseSettings):
    """Backoff schedule used when a validated session is lost."""
    backoff_delays_ms: List[int] = [500, 1000, 2000, 4000]
    model_config = SettingsConfigDict(env_prefix="RECOVERY_", extra="ignore")

    @field_validator("backoff_delays_ms")
    @classmethod
    def _check_delays(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("backoff_delays_ms must contain at least one delay")
        if any(delay < 0 for delay in value):
            raise ValueError("backoff_delays_ms must not contain negative delays")
        return value

    @property
    def backoff_delays_seconds(self) -> List[float]:
        return [delay / 1000.0 for delay in self.backoff_delays_ms]


class SourceConfig(BaseSettings):
    """Where ticker pages live."""
    url_template: str = "https://www.tradingview.com/symbols/{symbol}/?exchange={exchange}"
    exchange: str = "BINANCE"
    model_config = SettingsConfigDict(env_prefix="SOURCE_", extra="ignore")


class LoggerConfig(BaseSettings):
    """Logger configuration settings."""
    default_level: str = "INFO"
    file_path: str = "./data/logs/tickerstream.log"
    rotation: str = "10 MB"
    retention: str = "30 days"
    filter_enabled: bool = True
    filter_max_history: int = 5
    filter_time_threshold_seconds: float = 1.0
    model_config = SettingsConfigDict(env_prefix="LOGGER_", extra="ignore")


# ============================================================================
# MAIN SETTINGS CLASS
# ============================================================================

class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Configuration is organized into nested sections. Each section reads
    its own prefixed variables.

    Example:
        LOGGER_DEFAULT_LEVEL=DEBUG
        BROWSER_HEADLESS=true
        VALIDATION_TOTAL_BUDGET_MS=2000
        RECOVERY_BACKOFF_DELAYS_MS=[250, 500, 1000]
    """

    # Application metadata
    APP_NAME: str = "TickerStream Price Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Nested configuration sections (constructed after environment is loaded)
    API: Optional[APIConfig] = None
    BROWSER: Optional[BrowserConfig] = None
    VALIDATION: Optional[ValidationConfig] = None
    RECOVERY: Optional[RecoveryConfig] = None
    SOURCE: Optional[SourceConfig] = None
    LOGGER: Optional[LoggerConfig] = None

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.API = APIConfig()
        self.BROWSER = BrowserConfig()
        self.VALIDATION = ValidationConfig()
        self.RECOVERY = RecoveryConfig()
        self.SOURCE = SourceConfig()
        self.LOGGER = LoggerConfig()

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix=""
    )


# Global settings instance
from dotenv import load_dotenv

# Load .env file into environment variables
if _ENV_FILE.exists():
    load_dotenv(str(_ENV_FILE), override=False)

settings = Settings()
