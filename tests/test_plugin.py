"""Tests for the pytest plugin's results recorder."""

import json
import os
import time
from types import SimpleNamespace

import pytest

from webqa.analytics.models import AccessibilityMetrics, PerformanceMetrics, TestStatus
from webqa.analytics.parser import ResultParser
from webqa.plugin import (
    ACCESSIBILITY_PROPERTY,
    ATTACHMENT_PROPERTY,
    PERFORMANCE_PROPERTY,
    add_accessibility_metrics,
    add_attachment,
    add_performance_metrics,
    remove_old_artifacts,
)

SAMPLE_TESTS = """
import pytest

from webqa.plugin import add_attachment


@pytest.mark.tag("smoke", "login")
def test_passes():
    assert True


def test_fails(request):
    add_attachment(request.node, "screenshot", "image/png", "shots/fail.png")
    assert 1 == 2


@pytest.mark.skip(reason="not ready")
def test_skipped():
    pass
"""


@pytest.fixture
def results_document(pytester):
    pytester.makepyfile(test_sample=SAMPLE_TESTS)
    path = pytester.path / "results" / "results.json"

    result = pytester.runpytest("--webqa-results", str(path), "--webqa-browser", "firefox")

    result.assert_outcomes(passed=1, failed=1, skipped=1)
    return path


def test_document_shape(results_document):
    """Test one suite per file and one spec per test."""
    document = json.loads(results_document.read_text())

    assert [suite["title"] for suite in document["suites"]] == ["test_sample.py"]
    specs = {spec["title"]: spec for spec in document["suites"][0]["specs"]}
    assert set(specs) == {"test_passes", "test_fails", "test_skipped"}
    assert specs["test_passes"]["tags"] == ["smoke", "login"]
    assert specs["test_passes"]["tests"][0]["projectName"] == "firefox"

    failed = specs["test_fails"]["tests"][0]["results"][0]
    assert failed["status"] == "failed"
    assert failed["error"]["message"]
    assert failed["attachments"] == [{"name": "screenshot", "contentType": "image/png", "path": "shots/fail.png"}]
    assert "startTime" in failed
    assert "duration" in document["stats"]


def test_document_is_ingestible(results_document, metadata):
    """Test the recorded document parses into a run."""
    run = ResultParser(metadata=metadata).parse_file(results_document)

    assert run.summary.total_tests == 3
    assert run.summary.passed == 1
    assert run.summary.failed == 1
    assert run.summary.skipped == 1

    tests = {test.name: test for test in run.suites[0].tests}
    assert tests["test_fails"].status == TestStatus.FAILED
    assert tests["test_fails"].screenshot == "shots/fail.png"
    assert tests["test_passes"].tags == ["smoke", "login"]
    assert tests["test_passes"].project == "firefox"


def test_no_document_without_option(pytester):
    pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
    pytester.runpytest().assert_outcomes(passed=1)
    assert not list(pytester.path.rglob("results.json"))


def test_add_attachment():
    """Test attachments are stored as user properties on the item."""
    item = SimpleNamespace(user_properties=[])
    add_attachment(item, "video", "video/webm", "videos/run.webm")
    assert item.user_properties == [
        (ATTACHMENT_PROPERTY, {"name": "video", "contentType": "video/webm", "path": "videos/run.webm"})
    ]


def test_add_metrics():
    """Test measurements are stored as user properties on the item."""
    item = SimpleNamespace(user_properties=[])
    add_performance_metrics(item, PerformanceMetrics(load_time=1500))
    add_accessibility_metrics(item, AccessibilityMetrics(violations=2, passes=8, score=80.0))
    assert item.user_properties[0] == (PERFORMANCE_PROPERTY, PerformanceMetrics(load_time=1500).to_dict())
    assert item.user_properties[1] == (
        ACCESSIBILITY_PROPERTY,
        {"violations": 2, "warnings": 0, "passes": 8, "score": 80.0},
    )


TEARDOWN_TESTS = """
import pytest


@pytest.fixture
def session_handle():
    yield "handle"
    raise RuntimeError("handle was not released")


def test_uses_handle(session_handle):
    assert session_handle == "handle"
"""


def test_teardown_error_fails_result(pytester, metadata):
    """Test an error raised after the fixture yields marks the result failed."""
    pytester.makepyfile(test_teardown=TEARDOWN_TESTS)
    path = pytester.path / "results.json"

    result = pytester.runpytest("--webqa-results", str(path))

    result.assert_outcomes(passed=1, errors=1)
    document = json.loads(path.read_text())
    recorded = document["suites"][0]["specs"][0]["tests"][0]["results"][0]
    assert recorded["status"] == "failed"
    assert "RuntimeError" in recorded["error"]["message"]

    run = ResultParser(metadata=metadata).parse_file(path)
    assert run.summary.failed == 1
    assert run.summary.passed == 0


PAGE_CONFTEST = """
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Page


@pytest.fixture
def page():
    page = AsyncMock(spec=Page)
    page.url = "https://example.com/"
    return page
"""

METRICS_TESTS = """
import pytest

NAVIGATION = {"navigationStart": 0, "loadEvent": 1500}
VITALS = {"fcp": 700, "lcp": 1900, "cls": 0.04}
AXE_OUTPUT = {
    "violations": [{"id": "image-alt", "impact": "critical", "nodes": []}],
    "passes": [{"id": "document-title"}, {"id": "html-has-lang"}, {"id": "label"}],
    "incomplete": [{"id": "color-contrast"}],
}


@pytest.mark.asyncio
async def test_measured(page, performance_helper):
    page.evaluate.side_effect = [NAVIGATION, VITALS, {}, []]
    await performance_helper.collect_metrics()


@pytest.mark.asyncio
async def test_scanned(page, accessibility_helper):
    page.evaluate.side_effect = [True, AXE_OUTPUT]
    await accessibility_helper.scan_page()


def test_unmeasured(performance_helper, accessibility_helper):
    pass
"""


@pytest.mark.usefixtures("reset_logging")
def test_helper_metrics_reach_the_run(pytester, metadata):
    """Test metrics gathered through the helper fixtures are parsed into the run."""
    pytester.makeconftest(PAGE_CONFTEST)
    pytester.makepyfile(test_metrics=METRICS_TESTS)
    path = pytester.path / "results.json"

    result = pytester.runpytest("--webqa-results", str(path))

    result.assert_outcomes(passed=3)
    run = ResultParser(metadata=metadata).parse_file(path)
    tests = {test.name: test for test in run.suites[0].tests}

    measured = tests["test_measured"].performance
    assert measured.load_time == 1500
    assert measured.first_contentful_paint == 700
    assert measured.largest_contentful_paint == 1900
    assert measured.cumulative_layout_shift == 0.04
    assert measured.time_to_interactive is None
    assert tests["test_measured"].accessibility is None

    scanned = tests["test_scanned"].accessibility
    assert scanned == AccessibilityMetrics(violations=1, warnings=1, passes=3, score=75.0)

    assert tests["test_unmeasured"].performance is None
    assert tests["test_unmeasured"].accessibility is None


class TestSessionHooks:
    """Tests for the session preparation and log handling options."""

    def test_prepare(self, pytester):
        """Test directories are created, old artifacts pruned and the Allure environment written."""
        pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
        screenshots = pytester.path / "screenshots"
        screenshots.mkdir()
        old = screenshots / "old.png"
        old.write_bytes(b"png")
        stale = time.time() - 10 * 86400
        os.utime(old, (stale, stale))
        recent = screenshots / "recent.png"
        recent.write_bytes(b"png")

        result = pytester.runpytest(
            "--webqa-prepare", "--alluredir", "allure-results", "--webqa-browser", "webkit", "--webqa-env", "staging"
        )

        result.assert_outcomes(passed=1)
        for name in ("analytics/results", "logs", "test-results/videos", "test-data"):
            assert (pytester.path / name).is_dir()
        assert not old.exists()
        assert recent.exists()
        properties = (pytester.path / "allure-results" / "environment.properties").read_text().splitlines()
        assert "Browser=webkit" in properties
        assert "Test.Environment=staging" in properties

    def test_retention_days(self, pytester):
        pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
        video = pytester.path / "test-results" / "videos" / "run.webm"
        video.parent.mkdir(parents=True)
        video.write_bytes(b"webm")
        stale = time.time() - 10 * 86400
        os.utime(video, (stale, stale))

        pytester.runpytest("--webqa-prepare", "--webqa-retention-days", "30").assert_outcomes(passed=1)
        assert video.exists()

        pytester.runpytest("--webqa-prepare").assert_outcomes(passed=1)
        assert not video.exists()

    def test_nothing_prepared_by_default(self, pytester):
        pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
        pytester.runpytest().assert_outcomes(passed=1)
        assert not (pytester.path / "analytics").exists()

    def test_archive_logs(self, pytester):
        pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
        logs = pytester.path / "logs"
        logs.mkdir()
        (logs / "test-2024-06-15.log").write_text("line\n")

        pytester.runpytest("--webqa-logs", "archive").assert_outcomes(passed=1)

        assert not list(logs.glob("*.log"))
        assert len(list((logs / "archive").glob("*/test-2024-06-15.log"))) == 1

    def test_clear_logs(self, pytester):
        pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
        logs = pytester.path / "logs"
        logs.mkdir()
        (logs / "test-2024-06-15.log").write_text("line\n")

        pytester.runpytest("--webqa-logs", "clear").assert_outcomes(passed=1)

        assert not list(logs.glob("*.log"))
        assert not (logs / "archive").exists()

    def test_logs_kept_by_default(self, pytester):
        pytester.makepyfile(test_sample="def test_ok():\n    pass\n")
        log = pytester.path / "logs" / "test-2024-06-15.log"
        log.parent.mkdir()
        log.write_text("line\n")

        pytester.runpytest().assert_outcomes(passed=1)
        assert log.exists()


def test_remove_old_artifacts(temp_dir):
    """Test only files older than the cutoff are removed, in nested directories too."""
    nested = temp_dir / "videos" / "abc"
    nested.mkdir(parents=True)
    old = nested / "old.webm"
    old.write_bytes(b"webm")
    stale = time.time() - 8 * 86400
    os.utime(old, (stale, stale))
    fresh = temp_dir / "videos" / "fresh.webm"
    fresh.write_bytes(b"webm")

    assert remove_old_artifacts([temp_dir / "videos", temp_dir / "missing"], 7) == 1
    assert not old.exists()
    assert fresh.exists()
    assert nested.is_dir()
