import pytest
from pydantic import ValidationError

from translit_probe.config import Settings
from translit_probe.core.browser import BrowserOptions, BrowserType
from translit_probe.core.driver import DriverTimings


def test_defaults(monkeypatch):
    for name in ("TARGET_URL", "APP_ENV", "OUTPUT_TIMEOUT_MS", "SUITE_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)
    config = Settings(_env_file=None)

    assert config.target_url == "https://www.swifttranslator.com/"
    assert config.output_timeout_ms == 10000
    assert config.suite_concurrency == 1
    assert config.is_development


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TARGET_URL", "http://localhost:5173/")
    monkeypatch.setenv("OUTPUT_TIMEOUT_MS", "2500")
    monkeypatch.setenv("PLAYWRIGHT_BROWSER", "firefox")
    monkeypatch.setenv("APP_ENV", "production")

    config = Settings(_env_file=None)

    assert config.target_url == "http://localhost:5173/"
    assert config.output_timeout_ms == 2500
    assert config.is_production
    assert BrowserOptions.from_settings(config).browser_type == BrowserType.FIREFOX


def test_concurrency_must_be_positive(monkeypatch):
    monkeypatch.setenv("SUITE_CONCURRENCY", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_timings_follow_settings():
    config = Settings(_env_file=None, settle_delay_ms=0, residual_tolerance=5)

    timings = DriverTimings.from_settings(config)

    assert timings.settle_delay_ms == 0
    assert timings.residual_tolerance == 5
    assert timings.output_timeout_ms == config.output_timeout_ms


def test_read_timeout_reaches_driver_timings():
    config = Settings(_env_file=None, read_timeout_ms=250)

    assert DriverTimings.from_settings(config).read_timeout_ms == 250
    assert "app_debug" not in Settings.model_fields
