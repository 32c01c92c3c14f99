"""Render pytest modules for common test shapes from Jinja2 templates."""

import logging
import re
from pathlib import Path
from typing import Literal, Optional

from jinja2 import Environment, FileSystemLoader
from pydantic import BaseModel, Field, field_validator, model_validator

from webqa.mobile.devices import DEVICES

logger = logging.getLogger(__name__)

TEST_KINDS = ["ui", "api", "mobile", "accessibility", "performance"]


def slugify(value: str) -> str:
    """Lower-case ``value`` and collapse runs of other characters into ``_``."""
    slug = re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_")
    return slug or "generated"


class Interaction(BaseModel):
    """One UI step: click, fill, select or check an element."""

    action: Literal["click", "fill", "select", "check"]
    selector: str = Field(min_length=1)
    value: Optional[str] = None
    expected: Optional[str] = Field(default=None, description="Selector that must be visible afterwards")

    @model_validator(mode="after")
    def require_value(self) -> "Interaction":
        if self.action in ("fill", "select") and self.value is None:
            raise ValueError(f"'{self.action}' interactions need a value")
        return self

    @property
    def step_title(self) -> str:
        return f"{self.action.capitalize()} {self.selector}"


class UITestConfig(BaseModel):
    test_name: str = Field(min_length=1)
    url: str
    title: str = ""
    interactions: list[Interaction] = Field(default_factory=list)


class ApiTestConfig(BaseModel):
    test_name: str = Field(min_length=1)
    endpoint: str
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"] = "GET"
    payload: Optional[dict] = None
    expected_status: int = Field(default=200, ge=100, le=599)

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class MobileTestConfig(BaseModel):
    test_name: str = Field(min_length=1)
    url: str
    devices: list[str] = Field(default_factory=lambda: ["iPhone 13"], min_length=1)
    touch_selector: str = '[data-test="button"]'

    @field_validator("devices")
    @classmethod
    def validate_devices(cls, v: list[str]) -> list[str]:
        unknown = [d for d in v if d not in DEVICES]
        if unknown:
            raise ValueError(f"Unknown devices: {unknown}. Available: {list(DEVICES)}")
        return v


class AccessibilityTestConfig(BaseModel):
    test_name: str = Field(min_length=1)
    url: str
    impact: Optional[Literal["minor", "moderate", "serious", "critical"]] = None


class PerformanceTestConfig(BaseModel):
    test_name: str = Field(min_length=1)
    url: str
    max_load_time_ms: float = Field(default=3000, gt=0)


def create_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(Path(__file__).parent / "templates"),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["py"] = repr
    return env


_env = create_environment()


def render_ui_test(config: UITestConfig) -> str:
    return _env.get_template("ui_test.py.j2").render(
        config=config,
        slug=slugify(config.test_name),
        title_pattern=re.escape(config.title or config.test_name),
    )


def render_api_test(config: ApiTestConfig) -> str:
    return _env.get_template("api_test.py.j2").render(
        config=config,
        slug=slugify(config.test_name),
        method=config.method.lower(),
    )


def render_mobile_test(config: MobileTestConfig) -> str:
    devices = [{"name": name, "slug": slugify(name)} for name in config.devices]
    return _env.get_template("mobile_test.py.j2").render(
        config=config,
        slug=slugify(config.test_name),
        devices=devices,
    )


def render_accessibility_test(config: AccessibilityTestConfig) -> str:
    return _env.get_template("accessibility_test.py.j2").render(config=config, slug=slugify(config.test_name))


def render_performance_test(config: PerformanceTestConfig) -> str:
    return _env.get_template("performance_test.py.j2").render(config=config, slug=slugify(config.test_name))


def test_file_name(name: str, kind: str) -> str:
    """Return ``test_<slug>_<kind>.py``."""
    return f"test_{slugify(name)}_{kind}.py"


test_file_name.__test__ = False  # not a pytest test


def parse_interaction(text: str) -> Interaction:
    """Parse ``action:selector[=value]`` as used on the command line.

    Raises:
        ValueError: If the text has no action prefix
    """
    action, sep, rest = text.partition(":")
    if not sep or not rest:
        raise ValueError(f"Interaction must look like 'action:selector[=value]', got '{text}'")
    action = action.strip()
    if action in ("fill", "select"):
        selector, _, value = rest.rpartition("=")
        return Interaction(action=action, selector=selector.strip(), value=value)
    return Interaction(action=action, selector=rest.strip())


def write_test_file(content: str, directory: Path | str, file_name: str, overwrite: bool = False) -> Path:
    """Write a generated module, creating the directory.

    Raises:
        FileExistsError: If the file exists and ``overwrite`` is False
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / file_name
    if path.exists() and not overwrite:
        raise FileExistsError(f"Test file already exists: {path}")
    path.write_text(content, encoding="utf-8")
    logger.info(f"Generated test file: {path}")
    return path
