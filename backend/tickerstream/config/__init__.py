"""
Configuration module
"""
from tickerstream.config.settings import (
    settings,
    Settings,
    APIConfig,
    BrowserConfig,
    ValidationConfig,
    RecoveryConfig,
    SourceConfig,
    LoggerConfig,
)

__all__ = [
    "settings",
    "Settings",
    "APIConfig",
    "BrowserConfig",
    "ValidationConfig",
    "RecoveryConfig",
    "SourceConfig",
    "LoggerConfig",
]
