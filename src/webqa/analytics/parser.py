"""Parsing of raw Playwright JSON results into archived runs."""

import json
import logging
import random
import re
import string
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from webqa.analytics.models import (
    AccessibilityMetrics,
    PerformanceMetrics,
    TestResult,
    TestRun,
    TestStatus,
    TestSuite,
    TestSummary,
)
from webqa.analytics.schema import RawReport, RawSuite, RawTest
from webqa.git.metadata import RunMetadata, resolve_run_metadata

logger = logging.getLogger(__name__)

# Map Playwright outcomes to our status
STATUS_MAP = {
    "passed": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
    "timedOut": TestStatus.FAILED,
    "interrupted": TestStatus.FAILED,
    "skipped": TestStatus.SKIPPED,
}

_BASE36 = string.digits + string.ascii_lowercase


class ResultsParseError(Exception):
    """Raised when a requested results document cannot be read or decoded."""


def generate_run_id() -> str:
    """Return a fresh run id such as ``run_1700000000000_k3j9x0a1b``."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"run_{int(time.time() * 1000)}_{suffix}"


def generate_test_id(test_name: str, suite_name: str) -> str:
    """Derive a stable identity from the suite and test names."""
    return re.sub(r"[^a-zA-Z0-9]", "_", f"{suite_name}_{test_name}")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime (naive means UTC).

    Raises:
        ValueError: If the value is not ISO-8601
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _end_time(start_time: str, duration_ms: float) -> str:
    try:
        start = parse_timestamp(start_time)
    except ValueError:
        return start_time
    end = start + timedelta(milliseconds=duration_ms)
    return end.isoformat().replace("+00:00", "Z")


class ResultParser:
    """Turns a Playwright JSON report into a :class:`TestRun`."""

    def __init__(self, metadata: Optional[RunMetadata] = None, base_dir: Path | str | None = None):
        """Initialize the parser.

        Args:
            metadata: Fixed run metadata; resolved from CI variables and git when omitted
            base_dir: Directory used to locate the git checkout
        """
        self.metadata = metadata
        self.base_dir = base_dir

    def parse_file(self, path: Path | str) -> TestRun:
        """Read and parse a results document.

        Raises:
            ResultsParseError: If the file cannot be read or is not JSON
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
            data = json.loads(content)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Failed to parse Playwright results {path}: {e}")
            raise ResultsParseError(f"Cannot parse results file {path}: {e}") from e

        return self.parse(data)

    def parse(self, data: object) -> TestRun:
        """Parse an already decoded results document.

        A document whose suites are missing or do not match the reporter's
        schema yields an empty run.
        """
        metadata = self.metadata or resolve_run_metadata(self.base_dir)
        run = TestRun(
            id=generate_run_id(),
            timestamp=utc_now_iso(),
            environment=metadata.environment,
            branch=metadata.branch,
            commit=metadata.commit,
        )

        if not isinstance(data, dict) or "suites" not in data:
            logger.warning("Results document has no suites; recording an empty run")
            return run

        try:
            report = RawReport.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Results document does not match the reporter schema: {e.error_count()} errors")
            return run

        run.suites = [self._process_suite(suite) for suite in report.suites]
        run.summary = TestSummary.from_suites(run.suites)
        logger.info(
            f"Parsed run {run.id}: {run.summary.total_tests} tests, "
            f"{run.summary.passed} passed, {run.summary.failed} failed"
        )
        return run

    def _process_suite(self, suite: RawSuite) -> TestSuite:
        name = suite.title or "Unknown Suite"
        test_suite = TestSuite(name=name)
        self._collect_tests(suite, name, test_suite)
        return test_suite

    def _collect_tests(self, suite: RawSuite, suite_name: str, target: TestSuite) -> None:
        # Nested describe blocks are folded into the top-level suite
        for spec in suite.specs:
            for test in spec.tests:
                target.tests.append(self._process_test(test, suite_name, spec.title, spec.tags))
        for child in suite.suites:
            self._collect_tests(child, suite_name, target)

    def _process_test(
        self,
        test: RawTest,
        suite_name: str,
        spec_title: Optional[str],
        tags: list[str],
    ) -> TestResult:
        name = test.title or spec_title or "Unknown Test"
        now = utc_now_iso()
        result = TestResult(
            id=generate_test_id(name, suite_name),
            name=name,
            status=TestStatus.SKIPPED,
            start_time=now,
            end_time=now,
            project=test.project_name or "unknown",
            suite=suite_name,
            tags=list(tags),
        )

        if not test.results:
            return result

        # Only the first attempt counts; retries are ignored
        raw = test.results[0]
        result.status = STATUS_MAP.get(raw.status or "skipped", TestStatus.SKIPPED)
        result.duration = raw.duration
        result.start_time = raw.start_time or now
        result.end_time = _end_time(result.start_time, result.duration)

        if raw.error is not None:
            result.error = raw.error.message or "Unknown error"

        for attachment in raw.attachments:
            if attachment.content_type == "image/png":
                result.screenshot = attachment.path
            elif attachment.content_type == "video/webm":
                result.video = attachment.path

        if raw.performance is not None:
            result.performance = PerformanceMetrics.from_dict(raw.performance.model_dump(by_alias=True))
        if raw.accessibility is not None:
            result.accessibility = AccessibilityMetrics.from_dict(raw.accessibility.model_dump(by_alias=True))

        return result


def parse_results(path: Path | str, metadata: Optional[RunMetadata] = None) -> TestRun:
    """Parse a Playwright JSON report file into a run."""
    return ResultParser(metadata=metadata).parse_file(path)
