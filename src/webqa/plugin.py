"""pytest plugin: framework fixtures and a Playwright-shaped results recorder.

Registered through the ``pytest11`` entry point, so installing the package
makes the fixtures available to any test suite. Pass ``--webqa-results PATH``
to write a results document that ``webqa report --results PATH`` can ingest.

``--webqa-prepare`` creates the configured output directories, writes the
Allure environment file and prunes old screenshots and videos before the
session. ``--webqa-logs archive|clear`` tidies the log directory after it.
"""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Iterator, Optional

import pytest
import pytest_asyncio
from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from webqa.accessibility.helper import AccessibilityHelper
from webqa.analytics.models import AccessibilityMetrics, PerformanceMetrics
from webqa.api.client import ApiClient
from webqa.config import WebQAConfig, get_environment
from webqa.data.generator import TestDataGenerator
from webqa.logger import TestLogger, archive_logs, clear_logs, setup_logging
from webqa.mobile.helper import MobileHelper
from webqa.pages.example_page import ExamplePage
from webqa.pages.screenshots import ScreenshotHelper
from webqa.performance.helper import PerformanceHelper
from webqa.reporting.allure import AllureReporter, environment_properties, write_environment_file

logger = logging.getLogger(__name__)

ATTACHMENT_PROPERTY = "webqa_attachment"
PERFORMANCE_PROPERTY = "webqa_performance"
ACCESSIBILITY_PROPERTY = "webqa_accessibility"

DEFAULT_RETENTION_DAYS = 7


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("webqa")
    group.addoption(
        "--webqa-results",
        action="store",
        default=None,
        help="Write a Playwright-shaped JSON results document to this path",
    )
    group.addoption("--webqa-config", action="store", default=None, help="Path to webqa.json")
    group.addoption("--webqa-env", action="store", default=None, help="Environment preset to test against")
    group.addoption(
        "--webqa-browser",
        action="store",
        default=None,
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine (defaults to the first configured browser)",
    )
    group.addoption(
        "--webqa-prepare",
        action="store_true",
        default=False,
        help="Create output directories, write Allure environment info and prune old artifacts",
    )
    group.addoption(
        "--webqa-retention-days",
        action="store",
        type=int,
        default=DEFAULT_RETENTION_DAYS,
        help="With --webqa-prepare, delete screenshots and videos older than this many days",
    )
    group.addoption(
        "--webqa-logs",
        action="store",
        default="keep",
        choices=["keep", "archive", "clear"],
        help="What to do with log files when the session finishes",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "tag(*names): label a test for filtering and reports")
    results_path = config.getoption("--webqa-results")
    if results_path:
        config.pluginmanager.register(ResultRecorder(Path(results_path)), "webqa-recorder")


def _load_settings(pytestconfig: pytest.Config) -> WebQAConfig:
    config = WebQAConfig.load(pytestconfig.getoption("--webqa-config"))
    env_name = pytestconfig.getoption("--webqa-env")
    if env_name:
        config = config.model_copy(update={"environment": get_environment(env_name)})
    return config


def remove_old_artifacts(directories: list[Path], older_than_days: int) -> int:
    """Delete files under ``directories`` last modified more than ``older_than_days`` ago.

    Returns:
        Number of files removed
    """
    cutoff = time.time() - older_than_days * 86400
    removed = 0
    for directory in directories:
        if not directory.exists():
            continue
        for path in directory.rglob("*"):
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
    return removed


def pytest_sessionstart(session: pytest.Session) -> None:
    pytestconfig = session.config
    if not pytestconfig.getoption("--webqa-prepare"):
        return

    settings = _load_settings(pytestconfig)
    paths = settings.get_absolute_paths()
    for key in ("results_dir", "log_dir", "screenshot_dir", "video_dir", "test_data_dir"):
        paths[key].mkdir(parents=True, exist_ok=True)
    paths["raw_results_path"].parent.mkdir(parents=True, exist_ok=True)

    days = pytestconfig.getoption("--webqa-retention-days")
    removed = remove_old_artifacts([paths["screenshot_dir"], paths["video_dir"]], days)
    logger.info(f"Removed {removed} artifacts older than {days} days")

    alluredir = pytestconfig.getoption("--alluredir", default=None)
    if alluredir:
        browser = pytestconfig.getoption("--webqa-browser") or settings.browser.browsers[0]
        path = write_environment_file(alluredir, environment_properties(settings.environment, browser))
        logger.info(f"Allure environment written to {path}")


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    action = session.config.getoption("--webqa-logs")
    if action == "keep":
        return

    log_dir = _load_settings(session.config).get_absolute_paths()["log_dir"]
    if action == "archive":
        archive_dir = archive_logs(log_dir)
        if archive_dir is not None:
            logger.info(f"Logs archived to {archive_dir}")
    else:
        logger.info(f"Removed {clear_logs(log_dir)} log files")


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


def _test_failed(node: pytest.Item) -> bool:
    report = getattr(node, "rep_call", None)
    return report is not None and report.failed


def add_attachment(node: pytest.Item, name: str, content_type: str, path: Path | str) -> None:
    """Attach a file to the recorded result of ``node``."""
    node.user_properties.append(
        (ATTACHMENT_PROPERTY, {"name": name, "contentType": content_type, "path": str(path)})
    )


def add_performance_metrics(node: pytest.Item, metrics: PerformanceMetrics) -> None:
    """Store browser timings with the recorded result of ``node``."""
    node.user_properties.append((PERFORMANCE_PROPERTY, metrics.to_dict()))


def add_accessibility_metrics(node: pytest.Item, metrics: AccessibilityMetrics) -> None:
    """Store accessibility scan totals with the recorded result of ``node``."""
    node.user_properties.append((ACCESSIBILITY_PROPERTY, metrics.to_dict()))


def _error_message(report: pytest.TestReport) -> str:
    return report.longreprtext.splitlines()[-1] if report.longreprtext else ""


class ResultRecorder:
    """Collects test reports and writes them in the upstream results shape.

    One suite per test file, one spec per test, one result per spec.
    """

    def __init__(self, path: Path):
        self.path = path
        self.started = time.time()
        self.files: dict[str, dict[str, dict]] = {}

    def _record(self, report: pytest.TestReport) -> dict:
        file_name = report.location[0]
        specs = self.files.setdefault(file_name, {})
        if report.nodeid not in specs:
            specs[report.nodeid] = {
                "title": report.location[2],
                "tags": [],
                "tests": [
                    {
                        "projectName": "pytest",
                        "results": [{"status": "skipped", "duration": 0, "attachments": []}],
                    }
                ],
            }
        return specs[report.nodeid]

    @pytest.hookimpl(hookwrapper=True)
    def pytest_runtest_makereport(self, item: pytest.Item, call: pytest.CallInfo):
        outcome = yield
        report = outcome.get_result()
        if report.when == "setup":
            spec = self._record(report)
            spec["tags"] = [name for marker in item.iter_markers("tag") for name in marker.args]
            browser = item.config.getoption("--webqa-browser")
            if browser:
                spec["tests"][0]["projectName"] = browser

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        spec = self._record(report)
        result = spec["tests"][0]["results"][0]

        if report.when == "setup":
            result["startTime"] = datetime.fromtimestamp(
                getattr(report, "start", time.time()), tz=timezone.utc
            ).isoformat()

        if report.when == "call" or (report.when == "setup" and not report.passed):
            result["status"] = report.outcome
            result["duration"] = round(report.duration * 1000)
            if report.failed:
                result["error"] = {"message": _error_message(report)}

        # An error in teardown fails a test that otherwise passed
        if report.when == "teardown" and report.failed and result["status"] != "failed":
            result["status"] = "failed"
            result["error"] = {"message": _error_message(report)}

        for key, value in report.user_properties:
            if key == ATTACHMENT_PROPERTY and value not in result["attachments"]:
                result["attachments"].append(value)
            elif key == PERFORMANCE_PROPERTY:
                result["performance"] = value
            elif key == ACCESSIBILITY_PROPERTY:
                result["accessibility"] = value

    def to_document(self) -> dict:
        return {
            "config": {"rootDir": str(Path.cwd())},
            "suites": [
                {"title": file_name, "file": file_name, "specs": list(specs.values()), "suites": []}
                for file_name, specs in self.files.items()
            ],
            "stats": {
                "startTime": datetime.fromtimestamp(self.started, tz=timezone.utc).isoformat(),
                "duration": round((time.time() - self.started) * 1000),
            },
        }

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.to_document(), f, indent=2)


# Configuration and infrastructure


@pytest.fixture(scope="session")
def webqa_config(pytestconfig: pytest.Config) -> WebQAConfig:
    config = _load_settings(pytestconfig)
    setup_logging(config.logging)
    return config


@pytest.fixture
def test_logger(request: pytest.FixtureRequest) -> Iterator[TestLogger]:
    test_logger = TestLogger()
    test_logger.start_test(request.node.name)
    yield test_logger
    report = getattr(request.node, "rep_call", None)
    test_logger.end_test(report.outcome.upper() if report else "SKIPPED")


@pytest.fixture
def api_client(webqa_config: WebQAConfig, test_logger: TestLogger) -> Iterator[ApiClient]:
    env = webqa_config.environment
    client = ApiClient(env.api_url, timeout=env.timeout_ms / 1000, test_logger=test_logger)
    if env.api_key:
        client.set_api_key(env.api_key)
    yield client
    client.clear_auth()


# Data and screenshots


@pytest.fixture
def test_data(webqa_config: WebQAConfig) -> TestDataGenerator:
    return TestDataGenerator(data_dir=webqa_config.test_data_dir)


@pytest.fixture
def screenshot_helper(
    page: Page, webqa_config: WebQAConfig, test_logger: TestLogger, request: pytest.FixtureRequest
) -> ScreenshotHelper:
    return ScreenshotHelper(
        page,
        screenshot_dir=webqa_config.browser.screenshot_dir,
        test_name=request.node.name,
        test_logger=test_logger,
    )


# Browser


@pytest_asyncio.fixture
async def browser(webqa_config: WebQAConfig, pytestconfig: pytest.Config) -> AsyncIterator[Browser]:
    name = pytestconfig.getoption("--webqa-browser") or webqa_config.browser.browsers[0]
    env = webqa_config.environment
    async with async_playwright() as playwright:
        browser = await getattr(playwright, name).launch(headless=env.headless, slow_mo=env.slow_mo_ms)
        yield browser
        await browser.close()


@pytest_asyncio.fixture
async def context(browser: Browser, webqa_config: WebQAConfig) -> AsyncIterator[BrowserContext]:
    options: dict[str, Any] = {
        "base_url": webqa_config.environment.base_url,
        "viewport": {
            "width": webqa_config.browser.viewport_width,
            "height": webqa_config.browser.viewport_height,
        },
    }
    if webqa_config.browser.record_video:
        options["record_video_dir"] = webqa_config.browser.video_dir
    context = await browser.new_context(**options)
    yield context
    await context.close()


@pytest_asyncio.fixture
async def page(
    context: BrowserContext,
    webqa_config: WebQAConfig,
    test_logger: TestLogger,
    request: pytest.FixtureRequest,
) -> AsyncIterator[Page]:
    """A fresh page; failures get a screenshot and, when recording, the video."""
    page = await context.new_page()
    page.set_default_timeout(webqa_config.environment.timeout_ms)
    yield page

    if _test_failed(request.node):
        screenshots = ScreenshotHelper(
            page,
            screenshot_dir=webqa_config.browser.screenshot_dir,
            test_name=request.node.name,
            test_logger=test_logger,
        )
        path = await screenshots.take_failure_screenshot()
        if path is not None:
            add_attachment(request.node, "screenshot", "image/png", path)

    video = page.video
    await page.close()
    if video is not None:
        video_path: Optional[str] = await video.path()
        test_logger.video(video_path)
        add_attachment(request.node, "video", "video/webm", video_path)


@pytest.fixture
def example_page(
    page: Page, webqa_config: WebQAConfig, screenshot_helper: ScreenshotHelper, test_logger: TestLogger
) -> ExamplePage:
    return ExamplePage(
        page,
        webqa_config.environment.base_url,
        timeout_ms=webqa_config.environment.timeout_ms,
        screenshots=screenshot_helper,
        test_logger=test_logger,
    )


# Helpers


@pytest.fixture
def mobile_helper(page: Page, context: BrowserContext, webqa_config: WebQAConfig) -> MobileHelper:
    return MobileHelper(page, context, screenshot_dir=webqa_config.browser.screenshot_dir)


@pytest.fixture
def accessibility_helper(
    page: Page, webqa_config: WebQAConfig, test_logger: TestLogger, request: pytest.FixtureRequest
) -> Iterator[AccessibilityHelper]:
    """An axe helper; the last scan's totals are stored with the test result."""
    helper = AccessibilityHelper(page, config=webqa_config.accessibility, test_logger=test_logger)
    yield helper
    if helper.last_results is not None:
        add_accessibility_metrics(request.node, helper.last_results.to_metrics())


@pytest.fixture
def performance_helper(
    page: Page, webqa_config: WebQAConfig, test_logger: TestLogger, request: pytest.FixtureRequest
) -> Iterator[PerformanceHelper]:
    """A performance helper; collected page metrics are stored with the test result."""
    helper = PerformanceHelper(page, thresholds=webqa_config.performance, test_logger=test_logger)
    yield helper
    if helper.collected:
        add_performance_metrics(request.node, helper.to_metrics())


@pytest.fixture
def allure_reporter(webqa_config: WebQAConfig, request: pytest.FixtureRequest) -> AllureReporter:
    reporter = AllureReporter(webqa_config.environment)
    reporter.start_test(request.node.name)
    return reporter
