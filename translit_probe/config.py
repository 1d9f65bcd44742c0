"""
Application configuration management using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Target page
    target_url: str = Field(default="https://www.swifttranslator.com/")
    navigation_retries: int = 3

    # Playwright
    playwright_browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    playwright_headless: bool = True
    playwright_timeout: int = 30000  # milliseconds
    playwright_slow_mo: int = 0
    viewport_width: int = 1280
    viewport_height: int = 720

    # Scenario timings (milliseconds)
    strategy_timeout_ms: int = 3000
    output_timeout_ms: int = 10000
    settle_delay_ms: int = 500
    pre_fill_delay_ms: int = 500
    probe_delay_ms: int = 1000
    negative_settle_ms: int = 2000
    clear_window_ms: int = 1500
    poll_interval_ms: int = 100
    read_timeout_ms: int = 1000

    # Assertions
    prefix_length: int = 5
    residual_tolerance: int = 20

    # Suite
    suite_concurrency: int = Field(default=1, ge=1)
    scenario_timeout_ms: int = 60000
    screenshot_on_failure: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
