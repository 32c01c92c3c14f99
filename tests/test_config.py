"""Tests for the configuration module."""

import json
import tempfile
from pathlib import Path

import pytest

from webqa.config import (
    AnalyticsConfig,
    BrowserConfig,
    EnvironmentConfig,
    LoggingConfig,
    WebQAConfig,
    create_example_config,
    get_default_config,
    get_environment,
)


class TestEnvironmentConfig:
    """Tests for EnvironmentConfig."""

    def test_default_values(self):
        """Test default values are set correctly."""
        config = EnvironmentConfig()
        assert config.name == "development"
        assert config.base_url == "http://localhost:3000"
        assert config.timeout_ms == 30000
        assert config.headless is False

    def test_timeout_validation(self):
        """Test that timeout must be positive."""
        with pytest.raises(ValueError):
            EnvironmentConfig(timeout_ms=0)

    def test_negative_retries(self):
        """Test that retries cannot be negative."""
        with pytest.raises(ValueError):
            EnvironmentConfig(retries=-1)


class TestGetEnvironment:
    """Tests for get_environment."""

    def test_default_preset(self):
        """Test the development preset is used by default."""
        env = get_environment(environ={})
        assert env.name == "development"
        assert env.retries == 0

    def test_named_preset(self):
        """Test presets are looked up case-insensitively."""
        env = get_environment("STAGING", environ={})
        assert env.name == "staging"
        assert env.base_url == "https://staging.example.com"
        assert env.headless is True

    def test_preset_from_variable(self):
        """Test WEBQA_ENV selects the preset."""
        assert get_environment(environ={"WEBQA_ENV": "production"}).name == "production"

    def test_overrides(self):
        """Test environment variables override preset values."""
        env = get_environment(
            "staging",
            environ={
                "BASE_URL": "https://preview.example.com",
                "API_KEY": "secret",
                "TEST_USERNAME": "qa",
                "HEADLESS": "false",
            },
        )
        assert env.base_url == "https://preview.example.com"
        assert env.api_url == "https://api-staging.example.com"
        assert env.api_key == "secret"
        assert env.username == "qa"
        assert env.headless is False

    def test_presets_not_mutated(self):
        """Test overrides do not leak into later lookups."""
        get_environment("development", environ={"BASE_URL": "https://other.example.com"})
        assert get_environment("development", environ={}).base_url == "http://localhost:3000"

    def test_unknown_preset(self):
        """Test an unknown preset name is rejected."""
        with pytest.raises(ValueError, match="Unknown environment"):
            get_environment("qa-lab", environ={})


class TestBrowserConfig:
    """Tests for BrowserConfig."""

    def test_browsers_normalized(self):
        """Test browser names are lower-cased."""
        assert BrowserConfig(browsers=["Chromium", "WEBKIT"]).browsers == ["chromium", "webkit"]

    def test_unknown_browser(self):
        """Test that only Playwright engines are accepted."""
        with pytest.raises(ValueError):
            BrowserConfig(browsers=["safari"])

    def test_empty_browsers(self):
        """Test that at least one browser is required."""
        with pytest.raises(ValueError):
            BrowserConfig(browsers=[])


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_level_aliases(self):
        """Test WARN and FATAL map onto standard level names."""
        assert LoggingConfig(level="warn").level == "WARNING"
        assert LoggingConfig(level="fatal").level == "CRITICAL"
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        """Test an unknown level is rejected."""
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")


class TestAnalyticsConfig:
    """Tests for AnalyticsConfig."""

    def test_window_validation(self):
        """Test the trend window must be at least one day."""
        with pytest.raises(ValueError):
            AnalyticsConfig(trend_window_days=0)


class TestWebQAConfig:
    """Tests for WebQAConfig."""

    def test_default_config(self):
        """Test creating a default configuration."""
        config = get_default_config()
        assert config.analytics.results_dir == "analytics/results"
        assert config.analytics.dashboard_dir == "analytics/dashboard"
        assert config.browser.browsers == ["chromium"]
        assert config.logging.log_dir == "logs"

    def test_from_file(self):
        """Test loading configuration from a file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "webqa.json"
            config_path.write_text(
                json.dumps({"environment": {"name": "staging", "timeout_ms": 5000}, "analytics": {"trend_window_days": 7}})
            )

            config = WebQAConfig.from_file(config_path)
            assert config.environment.name == "staging"
            assert config.environment.timeout_ms == 5000
            assert config.analytics.trend_window_days == 7

    def test_from_file_missing(self):
        """Test loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            WebQAConfig.from_file("/nonexistent/webqa.json")

    def test_to_file_round_trip(self):
        """Test saving and reloading a configuration."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "webqa.json"
            config = WebQAConfig()
            config.analytics.title = "Nightly"
            config.to_file(path)

            assert WebQAConfig.from_file(path).analytics.title == "Nightly"

    def test_find_and_load(self):
        """Test the configuration is found in a parent directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / ".webqa.json").write_text(json.dumps({"test_data_dir": "fixtures"}))
            nested = root / "a" / "b"
            nested.mkdir(parents=True)

            assert WebQAConfig.find_and_load(nested).test_data_dir == "fixtures"

    def test_load_falls_back_to_defaults(self, monkeypatch):
        """Test load returns defaults when no file exists."""
        with tempfile.TemporaryDirectory() as tmpdir:
            monkeypatch.chdir(tmpdir)
            monkeypatch.delenv("WEBQA_ENV", raising=False)
            config = WebQAConfig.load()
            assert config.environment.name == "development"

    def test_get_absolute_paths(self):
        """Test getting absolute paths."""
        config = WebQAConfig()
        with tempfile.TemporaryDirectory() as tmpdir:
            base = Path(tmpdir).resolve()
            paths = config.get_absolute_paths(base)
            assert paths["results_dir"] == base / "analytics" / "results"
            assert paths["dashboard_dir"] == base / "analytics" / "dashboard"
            assert paths["raw_results_path"] == base / "test-results" / "results.json"
            assert paths["log_dir"] == base / "logs"

    def test_create_example_config(self):
        """Test creating an example configuration file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = create_example_config(Path(tmpdir) / "webqa.json")
            assert path.exists()

            config = WebQAConfig.from_file(path)
            assert config.browser.browsers == ["chromium", "firefox"]
