"""Configuration management for WebQA."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class EnvironmentConfig(BaseModel):
    """Target environment for a test session."""

    name: str = Field(default="development", description="Environment label recorded on runs")
    base_url: str = Field(default="http://localhost:3000", description="Web application base URL")
    api_url: str = Field(default="http://localhost:8000", description="API base URL")
    timeout_ms: int = Field(default=30000, description="Default action and request timeout")
    retries: int = Field(default=0, description="Retries for failed tests")
    headless: bool = Field(default=False, description="Run browsers without a window")
    slow_mo_ms: int = Field(default=100, description="Delay inserted between browser actions")
    api_key: Optional[str] = Field(default=None, description="API key for authenticated calls")
    username: Optional[str] = Field(default=None, description="Login used by page flows")
    password: Optional[str] = Field(default=None, description="Password used by page flows")

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Timeout must be at least 1 millisecond")
        return v

    @field_validator("retries", "slow_mo_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value cannot be negative")
        return v


ENVIRONMENTS: dict[str, EnvironmentConfig] = {
    "development": EnvironmentConfig(),
    "staging": EnvironmentConfig(
        name="staging",
        base_url="https://staging.example.com",
        api_url="https://api-staging.example.com",
        timeout_ms=45000,
        retries=1,
        headless=True,
        slow_mo_ms=0,
    ),
    "production": EnvironmentConfig(
        name="production",
        base_url="https://example.com",
        api_url="https://api.example.com",
        timeout_ms=60000,
        retries=2,
        headless=True,
        slow_mo_ms=0,
    ),
}


class BrowserConfig(BaseModel):
    """Browser launch configuration."""

    browsers: list[str] = Field(default_factory=lambda: ["chromium"], description="Browsers to run against")
    workers: int = Field(default=1, description="Parallel workers hint for the runner")
    viewport_width: int = Field(default=1280, description="Default viewport width")
    viewport_height: int = Field(default=720, description="Default viewport height")
    video_dir: str = Field(default="test-results/videos", description="Directory for recorded videos")
    screenshot_dir: str = Field(default="screenshots", description="Directory for screenshots")
    record_video: bool = Field(default=False, description="Record a video per browser context")

    @field_validator("browsers")
    @classmethod
    def validate_browsers(cls, v: list[str]) -> list[str]:
        allowed = {"chromium", "firefox", "webkit"}
        normalized = [b.lower() for b in v]
        unknown = set(normalized) - allowed
        if unknown:
            raise ValueError(f"Browsers must be among: {allowed}")
        if not normalized:
            raise ValueError("At least one browser is required")
        return normalized


class AccessibilityConfig(BaseModel):
    """axe-core scanning configuration."""

    axe_script_url: str = Field(
        default="https://unpkg.com/axe-core@4.7.2/axe.min.js",
        description="URL of the axe-core script injected into pages",
    )
    tags: list[str] = Field(
        default_factory=lambda: ["wcag2a", "wcag2aa", "wcag21aa"],
        description="WCAG rule tags to run",
    )


class PerformanceThresholds(BaseModel):
    """Budgets applied to measured page metrics."""

    load_time: float = Field(default=3000, description="Page load budget (ms)")
    first_contentful_paint: float = Field(default=2000, description="FCP budget (ms)")
    largest_contentful_paint: float = Field(default=4000, description="LCP budget (ms)")
    cumulative_layout_shift: float = Field(default=0.1, description="CLS budget (unitless)")
    time_to_interactive: float = Field(default=5000, description="TTI budget (ms)")


class AnalyticsConfig(BaseModel):
    """Locations and settings for the result archive and dashboard."""

    results_dir: str = Field(default="analytics/results", description="Archive of one JSON file per run")
    dashboard_dir: str = Field(default="analytics/dashboard", description="Dashboard output directory")
    reports_dir: str = Field(default="analytics", description="Directory for supplementary report pages")
    raw_results_path: str = Field(
        default="test-results/results.json",
        description="Results document written by the test runner",
    )
    trend_window_days: int = Field(default=30, description="Trailing window for trend data")
    chart_js_url: str = Field(
        default="https://cdn.jsdelivr.net/npm/chart.js",
        description="Charting library loaded by the dashboard",
    )
    title: str = Field(default="Test Analytics Dashboard", description="Dashboard title")

    @field_validator("trend_window_days")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Trend window must be at least 1 day")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Minimum log level")
    log_dir: str = Field(default="logs", description="Directory for date-stamped log files")
    console: bool = Field(default=True, description="Also log to the console")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level == "WARN":
            level = "WARNING"
        if level == "FATAL":
            level = "CRITICAL"
        if level not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return level


class WebQAConfig(BaseModel):
    """Main configuration for WebQA."""

    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    accessibility: AccessibilityConfig = Field(default_factory=AccessibilityConfig)
    performance: PerformanceThresholds = Field(default_factory=PerformanceThresholds)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    test_data_dir: str = Field(default="test-data", description="Directory for saved test data")

    @classmethod
    def from_file(cls, path: Path | str) -> "WebQAConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "WebQAConfig":
        """Find and load configuration file, searching up the directory tree."""
        if start_dir is None:
            start_dir = Path.cwd()
        else:
            start_dir = Path(start_dir)

        config_names = ["webqa.json", ".webqa.json"]

        current = start_dir.resolve()
        while True:
            for name in config_names:
                config_path = current / name
                if config_path.exists():
                    return cls.from_file(config_path)
            if current == current.parent:
                break
            current = current.parent

        raise FileNotFoundError(
            "No configuration file found. Create webqa.json or run 'webqa init'"
        )

    @classmethod
    def load(cls, path: Path | str | None = None) -> "WebQAConfig":
        """Load an explicit file, a discovered file, or fall back to defaults."""
        if path:
            return cls.from_file(path)
        try:
            return cls.find_and_load()
        except FileNotFoundError:
            return get_default_config()

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def get_absolute_paths(self, base_dir: Path | str | None = None) -> dict[str, Path]:
        """Get absolute paths for various config paths."""
        if base_dir is None:
            base_dir = Path.cwd()
        else:
            base_dir = Path(base_dir)

        return {
            "results_dir": (base_dir / self.analytics.results_dir).resolve(),
            "dashboard_dir": (base_dir / self.analytics.dashboard_dir).resolve(),
            "reports_dir": (base_dir / self.analytics.reports_dir).resolve(),
            "raw_results_path": (base_dir / self.analytics.raw_results_path).resolve(),
            "log_dir": (base_dir / self.logging.log_dir).resolve(),
            "screenshot_dir": (base_dir / self.browser.screenshot_dir).resolve(),
            "video_dir": (base_dir / self.browser.video_dir).resolve(),
            "test_data_dir": (base_dir / self.test_data_dir).resolve(),
        }


def get_environment(name: Optional[str] = None, environ: Optional[dict[str, str]] = None) -> EnvironmentConfig:
    """Resolve a named environment preset and apply environment-variable overrides.

    Args:
        name: Preset name. Defaults to ``WEBQA_ENV`` or ``development``.
        environ: Mapping to read overrides from (defaults to ``os.environ``).

    Returns:
        The resolved environment configuration.

    Raises:
        ValueError: If the preset name is unknown.
    """
    environ = os.environ if environ is None else environ
    name = (name or environ.get("WEBQA_ENV") or "development").lower()
    if name not in ENVIRONMENTS:
        raise ValueError(f"Unknown environment '{name}'. Expected one of: {sorted(ENVIRONMENTS)}")

    overrides: dict = {}
    if environ.get("BASE_URL"):
        overrides["base_url"] = environ["BASE_URL"]
    if environ.get("API_URL"):
        overrides["api_url"] = environ["API_URL"]
    if environ.get("API_KEY"):
        overrides["api_key"] = environ["API_KEY"]
    if environ.get("TEST_USERNAME"):
        overrides["username"] = environ["TEST_USERNAME"]
    if environ.get("TEST_PASSWORD"):
        overrides["password"] = environ["TEST_PASSWORD"]
    if environ.get("HEADLESS"):
        overrides["headless"] = environ["HEADLESS"].lower() in ("1", "true", "yes")

    return ENVIRONMENTS[name].model_copy(update=overrides)


def get_default_config() -> WebQAConfig:
    """Return a default configuration."""
    return WebQAConfig(environment=get_environment())


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = WebQAConfig(environment=ENVIRONMENTS["development"].model_copy())
    config.browser.browsers = ["chromium", "firefox"]
    config.to_file(output_path)
    return output_path
