"""
PURPOSE: Configuration settings for EA Builder.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files. All settings are validated and typed.
"""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    PURPOSE: Central configuration class for EA Builder.

    Holds the runtime environment, logging level, API limits, and the safe
    defaults that callers fall back to when a form or command line supplies
    an unusable risk value.
    """

    # System Settings
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # HTTP API
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    # Upper bound on pasted indicator source accepted by the API
    MAX_SOURCE_CHARS: int = 500_000

    # Generation defaults (applied by callers before building a payload)
    DEFAULT_INDICATOR_NAME: str = "MyIndicator"
    DEFAULT_TIMEFRAME: str = "_Period"
    DEFAULT_LOTS: float = 0.10
    DEFAULT_SLIPPAGE: int = 3
    DEFAULT_STOP_LOSS: int = 300
    DEFAULT_TAKE_PROFIT: int = 600
    DEFAULT_MAGIC_NUMBER: int = 123456

    def is_production(self) -> bool:
        """
        PURPOSE: Determine whether the app is running in production mode.

        Returns:
            bool: True when APP_ENV indicates production.
        """
        return self.APP_ENV.strip().lower() in {"prod", "production"}

    class Config:
        """Pydantic model configuration."""

        env_file: str = ".env"
        env_file_encoding: str = "utf-8"
        case_sensitive: bool = True


settings: Settings = Settings()
