"""Allure labels, links, steps and attachments for the running pytest test."""

import json
import logging
import platform
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

import allure

from webqa.accessibility.helper import AxeResults
from webqa.api.client import ApiResponse
from webqa.config import EnvironmentConfig
from webqa.performance.helper import PageMetrics

logger = logging.getLogger(__name__)

EPIC = "Test Automation Framework"
DEFAULT_FEATURE = "Automated Testing"

SEVERITIES = {
    "blocker": allure.severity_level.BLOCKER,
    "critical": allure.severity_level.CRITICAL,
    "normal": allure.severity_level.NORMAL,
    "minor": allure.severity_level.MINOR,
    "trivial": allure.severity_level.TRIVIAL,
}


def environment_properties(environment: EnvironmentConfig, browser: str = "chromium") -> dict[str, str]:
    """Describe the run environment as Allure parameters."""
    return {
        "Test Environment": environment.name,
        "Base URL": environment.base_url,
        "API Base URL": environment.api_url,
        "Browser": browser,
        "OS": platform.system(),
        "Python Version": platform.python_version(),
        "Timestamp": datetime.now(timezone.utc).isoformat(),
    }


def write_environment_file(results_dir: Path | str, properties: dict[str, str]) -> Path:
    """Write ``environment.properties`` so the Allure report shows an Environment widget."""
    path = Path(results_dir) / "environment.properties"
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"{key.replace(' ', '.')}={value}" for key, value in properties.items()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class AllureReporter:
    """Annotates the current test through ``allure.dynamic`` and attaches artifacts."""

    def __init__(self, environment: Optional[EnvironmentConfig] = None):
        self.environment = environment
        self.current_test: Optional[str] = None

    # Labels

    def start_test(self, test_name: str, feature: str = DEFAULT_FEATURE) -> None:
        self.current_test = test_name
        allure.dynamic.epic(EPIC)
        allure.dynamic.feature(feature)
        allure.dynamic.story(test_name)
        logger.info(f"Started Allure test: {test_name}")

    def add_description(self, description: str) -> None:
        allure.dynamic.description(description)

    def add_tags(self, tags: list[str]) -> None:
        allure.dynamic.tag(*tags)

    def add_severity(self, severity: str) -> None:
        """Set the severity (blocker, critical, normal, minor or trivial).

        Raises:
            ValueError: If the severity name is unknown
        """
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity '{severity}'. Expected one of: {list(SEVERITIES)}")
        allure.dynamic.severity(SEVERITIES[severity])

    def add_owner(self, owner: str) -> None:
        allure.dynamic.label("owner", owner)

    def add_label(self, name: str, value: str) -> None:
        allure.dynamic.label(name, value)

    def set_suite(self, suite: str, parent_suite: Optional[str] = None) -> None:
        allure.dynamic.suite(suite)
        if parent_suite:
            allure.dynamic.parent_suite(parent_suite)

    # Links

    def add_issue(self, key: str, url: Optional[str] = None) -> None:
        allure.dynamic.issue(url or key, name=key)

    def add_test_case(self, key: str, url: Optional[str] = None) -> None:
        allure.dynamic.testcase(url or key, name=key)

    def add_link(self, url: str, name: Optional[str] = None) -> None:
        allure.dynamic.link(url, name=name)

    # Structure

    @contextmanager
    def step(self, title: str) -> Iterator[None]:
        with allure.step(title):
            yield

    def add_parameter(self, name: str, value: Any) -> None:
        allure.dynamic.parameter(name, value)

    def add_environment_info(self, browser: str = "chromium") -> dict[str, str]:
        """Record the environment as test parameters; no-op without an environment."""
        if self.environment is None:
            return {}
        properties = environment_properties(self.environment, browser)
        for name, value in properties.items():
            allure.dynamic.parameter(name, value)
        return properties

    # Attachments

    def attach_text(self, content: str, name: str = "Text") -> None:
        allure.attach(content, name=name, attachment_type=allure.attachment_type.TEXT)

    def attach_json(self, data: Any, name: str = "Data") -> None:
        allure.attach(json.dumps(data, indent=2, default=str), name=name, attachment_type=allure.attachment_type.JSON)

    def attach_html(self, html: str, name: str = "HTML Content") -> None:
        allure.attach(html, name=name, attachment_type=allure.attachment_type.HTML)

    def _attach_file(self, path: Path | str, name: str, attachment_type: Any) -> bool:
        path = Path(path)
        if not path.exists():
            logger.warning(f"{name} file not found: {path}")
            return False
        allure.attach.file(str(path), name=name, attachment_type=attachment_type)
        return True

    def attach_screenshot(self, path: Path | str, name: str = "Screenshot") -> bool:
        return self._attach_file(path, name, allure.attachment_type.PNG)

    def attach_video(self, path: Path | str, name: str = "Video Recording") -> bool:
        return self._attach_file(path, name, allure.attachment_type.WEBM)

    def attach_log(self, path: Path | str, name: str = "Test Log") -> bool:
        return self._attach_file(path, name, allure.attachment_type.TEXT)

    def attach_api_response(self, response: ApiResponse, name: str = "API Response") -> None:
        self.attach_json(response.to_dict(), name)

    def attach_accessibility_report(self, results: AxeResults, name: str = "Accessibility Report") -> None:
        self.attach_json(results.to_report(), name)

    def attach_performance_report(self, metrics: PageMetrics, name: str = "Performance Report") -> None:
        data = metrics.to_dict()
        data.pop("requests", None)
        data.pop("resources", None)
        self.attach_json(data, name)
