"""Shared fixtures for the test suite."""

import logging
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Keyboard, Locator, Mouse, Page

from webqa.analytics.models import PerformanceMetrics, TestResult, TestRun, TestStatus, TestSuite, TestSummary
from webqa.analytics.parser import generate_test_id
from webqa.git.metadata import RunMetadata

pytest_plugins = ["pytester"]


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def metadata():
    """Fixed run metadata so parsing never consults git."""
    return RunMetadata(environment="test", branch="main", commit="abc123def456")


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def make_run(now):
    """Factory for runs whose tests are given as ``{name: status}``."""

    def factory(
        run_id: str,
        outcomes: dict[str, str],
        days_ago: float = 0,
        suite: str = "Suite",
        performance: Optional[dict[str, PerformanceMetrics]] = None,
        duration: float = 100,
    ) -> TestRun:
        performance = performance or {}
        tests = [
            TestResult(
                id=generate_test_id(name, suite),
                name=name,
                status=TestStatus(status),
                duration=duration,
                suite=suite,
                performance=performance.get(name),
            )
            for name, status in outcomes.items()
        ]
        suites = [TestSuite(name=suite, tests=tests)]
        timestamp = (now - timedelta(days=days_ago)).isoformat().replace("+00:00", "Z")
        return TestRun(id=run_id, timestamp=timestamp, suites=suites, summary=TestSummary.from_suites(suites))

    return factory


@pytest.fixture
def raw_results():
    """A results document in the Playwright JSON reporter shape."""
    return {
        "config": {"rootDir": "/app"},
        "suites": [
            {
                "title": "Login Suite",
                "file": "login.spec.ts",
                "specs": [
                    {
                        "title": "should log in",
                        "tags": ["@smoke"],
                        "tests": [
                            {
                                "projectName": "chromium",
                                "results": [
                                    {
                                        "status": "passed",
                                        "duration": 1200,
                                        "startTime": "2024-06-15T10:00:00.000Z",
                                        "attachments": [],
                                    }
                                ],
                            }
                        ],
                    },
                    {
                        "title": "should reject bad password",
                        "tests": [
                            {
                                "projectName": "chromium",
                                "results": [
                                    {
                                        "status": "failed",
                                        "duration": 800,
                                        "startTime": "2024-06-15T10:00:02.000Z",
                                        "error": {"message": "Expected error banner"},
                                        "attachments": [
                                            {
                                                "name": "screenshot",
                                                "contentType": "image/png",
                                                "path": "/app/test-results/failure.png",
                                            },
                                            {
                                                "name": "video",
                                                "contentType": "video/webm",
                                                "path": "/app/test-results/video.webm",
                                            },
                                        ],
                                    }
                                ],
                            }
                        ],
                    },
                ],
                "suites": [
                    {
                        "title": "remember me",
                        "specs": [
                            {
                                "title": "should keep session",
                                "tests": [{"projectName": "chromium", "results": [{"status": "skipped", "duration": 0}]}],
                            }
                        ],
                    }
                ],
            }
        ],
    }


@pytest.fixture
def mock_page():
    """A Playwright page double whose async methods can be awaited."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com/"
    page.viewport_size = {"width": 1280, "height": 720}
    page.mouse = AsyncMock(spec=Mouse)
    page.keyboard = AsyncMock(spec=Keyboard)
    page.locator = MagicMock(return_value=AsyncMock(spec=Locator))
    return page


@pytest.fixture
def reset_logging():
    """Remove the handlers ``setup_logging`` installs on the ``webqa`` logger."""
    yield
    root = logging.getLogger("webqa")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True
