"""Data models for archived test runs and the analytics views derived from them."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class TestStatus(str, Enum):
    """Status of a test execution."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


def _number(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


@dataclass
class PerformanceMetrics:
    """Browser timing metrics captured for a test.

    A metric the browser did not report is None.
    """

    load_time: Optional[float] = None
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    time_to_interactive: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "loadTime": self.load_time,
            "firstContentfulPaint": self.first_contentful_paint,
            "largestContentfulPaint": self.largest_contentful_paint,
            "cumulativeLayoutShift": self.cumulative_layout_shift,
            "timeToInteractive": self.time_to_interactive,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PerformanceMetrics":
        """Create from a persisted dictionary."""
        return cls(
            load_time=_number(data.get("loadTime"), None),
            first_contentful_paint=_number(data.get("firstContentfulPaint"), None),
            largest_contentful_paint=_number(data.get("largestContentfulPaint"), None),
            cumulative_layout_shift=_number(data.get("cumulativeLayoutShift"), None),
            time_to_interactive=_number(data.get("timeToInteractive"), None),
        )


@dataclass
class AccessibilityMetrics:
    """Accessibility scan totals captured for a test."""

    violations: int = 0
    warnings: int = 0
    passes: int = 0
    score: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "violations": self.violations,
            "warnings": self.warnings,
            "passes": self.passes,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AccessibilityMetrics":
        """Create from a persisted dictionary."""
        return cls(
            violations=int(_number(data.get("violations"))),
            warnings=int(_number(data.get("warnings"))),
            passes=int(_number(data.get("passes"))),
            score=_number(data.get("score")),
        )


@dataclass
class TestResult:
    """Represents the result of a single test in a run."""

    __test__ = False

    id: str
    name: str
    status: TestStatus = TestStatus.SKIPPED
    duration: float = 0
    start_time: str = ""
    end_time: str = ""
    browser: str = "unknown"
    project: str = "unknown"
    suite: str = ""
    tags: list[str] = field(default_factory=list)
    error: Optional[str] = None
    screenshot: Optional[str] = None
    video: Optional[str] = None
    performance: Optional[PerformanceMetrics] = None
    accessibility: Optional[AccessibilityMetrics] = None

    def __post_init__(self) -> None:
        if self.duration < 0:
            self.duration = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "status": self.status.value if isinstance(self.status, TestStatus) else self.status,
            "duration": self.duration,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "browser": self.browser,
            "project": self.project,
            "suite": self.suite,
            "tags": list(self.tags),
        }
        if self.error is not None:
            data["error"] = self.error
        if self.screenshot is not None:
            data["screenshot"] = self.screenshot
        if self.video is not None:
            data["video"] = self.video
        if self.performance is not None:
            data["performance"] = self.performance.to_dict()
        if self.accessibility is not None:
            data["accessibility"] = self.accessibility.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TestResult":
        """Create from a persisted dictionary.

        Raises:
            KeyError: If the id or name is missing
            ValueError: If the status is not a known value
        """
        performance = data.get("performance")
        accessibility = data.get("accessibility")
        return cls(
            id=data["id"],
            name=data["name"],
            status=TestStatus(data.get("status", TestStatus.SKIPPED.value)),
            duration=_number(data.get("duration")),
            start_time=data.get("startTime", ""),
            end_time=data.get("endTime", ""),
            browser=data.get("browser", "unknown"),
            project=data.get("project", "unknown"),
            suite=data.get("suite", ""),
            tags=list(data.get("tags") or []),
            error=data.get("error"),
            screenshot=data.get("screenshot"),
            video=data.get("video"),
            performance=PerformanceMetrics.from_dict(performance) if isinstance(performance, dict) else None,
            accessibility=AccessibilityMetrics.from_dict(accessibility) if isinstance(accessibility, dict) else None,
        )


@dataclass
class TestSuite:
    """A named group of test results from one run."""

    __test__ = False

    name: str
    tests: list[TestResult] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return len(self.tests)

    @property
    def passed(self) -> int:
        return sum(1 for t in self.tests if t.status == TestStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for t in self.tests if t.status == TestStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for t in self.tests if t.status == TestStatus.SKIPPED)

    @property
    def duration(self) -> float:
        return sum(t.duration for t in self.tests)

    @property
    def pass_rate(self) -> float:
        """Calculate the pass rate as a percentage."""
        if self.total_tests == 0:
            return 0.0
        return (self.passed / self.total_tests) * 100

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "tests": [t.to_dict() for t in self.tests],
            "totalTests": self.total_tests,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": self.duration,
            "passRate": self.pass_rate,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TestSuite":
        """Create from a persisted dictionary."""
        return cls(
            name=data.get("name", ""),
            tests=[TestResult.from_dict(t) for t in data.get("tests", [])],
        )


@dataclass
class TestSummary:
    """Aggregate statistics for a run."""

    __test__ = False

    total_tests: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0
    pass_rate: float = 0.0
    average_test_duration: float = 0.0
    flakiness: float = 0.0
    performance_score: float = 0.0
    accessibility_score: float = 0.0

    @classmethod
    def from_suites(cls, suites: list[TestSuite]) -> "TestSummary":
        """Calculate a summary over a list of suites."""
        summary = cls()
        for suite in suites:
            summary.total_tests += suite.total_tests
            summary.passed += suite.passed
            summary.failed += suite.failed
            summary.skipped += suite.skipped
            summary.duration += suite.duration

        if summary.total_tests > 0:
            summary.pass_rate = (summary.passed / summary.total_tests) * 100
            summary.average_test_duration = summary.duration / summary.total_tests
        return summary

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "totalTests": self.total_tests,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": self.duration,
            "passRate": self.pass_rate,
            "averageTestDuration": self.average_test_duration,
            "flakiness": self.flakiness,
            "performanceScore": self.performance_score,
            "accessibilityScore": self.accessibility_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TestSummary":
        """Create from a persisted dictionary."""
        return cls(
            total_tests=int(_number(data.get("totalTests"))),
            passed=int(_number(data.get("passed"))),
            failed=int(_number(data.get("failed"))),
            skipped=int(_number(data.get("skipped"))),
            duration=_number(data.get("duration")),
            pass_rate=_number(data.get("passRate")),
            average_test_duration=_number(data.get("averageTestDuration")),
            flakiness=_number(data.get("flakiness")),
            performance_score=_number(data.get("performanceScore")),
            accessibility_score=_number(data.get("accessibilityScore")),
        )


@dataclass
class TestRun:
    """A single archived run of the test suite.

    The summary is a snapshot taken when the run was ingested. Runs loaded
    from the archive keep the stored snapshot rather than recomputing it.
    """

    __test__ = False

    id: str
    timestamp: str
    environment: str = "development"
    branch: str = "main"
    commit: str = "unknown"
    suites: list[TestSuite] = field(default_factory=list)
    summary: TestSummary = field(default_factory=TestSummary)

    def iter_tests(self):
        for suite in self.suites:
            yield from suite.tests

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "environment": self.environment,
            "branch": self.branch,
            "commit": self.commit,
            "suites": [s.to_dict() for s in self.suites],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TestRun":
        """Create from a persisted dictionary.

        Raises:
            KeyError: If id, timestamp or summary are missing
            TypeError: If a nested value has the wrong shape
            ValueError: If a test status is unknown
        """
        if not isinstance(data, dict):
            raise TypeError("Run document must be a JSON object")
        summary = data["summary"]
        if not isinstance(summary, dict):
            raise TypeError("Run summary must be a JSON object")
        if not isinstance(data["timestamp"], str):
            raise TypeError("Run timestamp must be an ISO-8601 string")
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            environment=data.get("environment", "development"),
            branch=data.get("branch", "main"),
            commit=data.get("commit", "unknown"),
            suites=[TestSuite.from_dict(s) for s in data.get("suites", [])],
            summary=TestSummary.from_dict(summary),
        )


@dataclass
class TrendData:
    """One run positioned on the timeline for charting."""

    date: str
    pass_rate: float = 0.0
    total_tests: int = 0
    average_duration: float = 0.0
    performance_score: float = 0.0
    accessibility_score: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "date": self.date,
            "passRate": self.pass_rate,
            "totalTests": self.total_tests,
            "averageDuration": self.average_duration,
            "performanceScore": self.performance_score,
            "accessibilityScore": self.accessibility_score,
        }

    @classmethod
    def from_run(cls, run: TestRun) -> "TrendData":
        return cls(
            date=run.timestamp,
            pass_rate=run.summary.pass_rate,
            total_tests=run.summary.total_tests,
            average_duration=run.summary.average_test_duration,
            performance_score=run.summary.performance_score,
            accessibility_score=run.summary.accessibility_score,
        )


@dataclass
class FlakinessRecord:
    """History of a test whose outcomes alternated across runs."""

    id: str
    name: str
    suite: str
    total_runs: int = 0
    passed: int = 0
    failed: int = 0

    @property
    def flakiness_rate(self) -> float:
        """Percentage of recorded runs that failed."""
        if self.total_runs == 0:
            return 0.0
        return (self.failed / self.total_runs) * 100

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "suite": self.suite,
            "totalRuns": self.total_runs,
            "passed": self.passed,
            "failed": self.failed,
            "flakinessRate": self.flakiness_rate,
        }


@dataclass
class SlowTest:
    """A test's performance sample, ranked by load time."""

    id: str
    name: str
    suite: str
    metrics: PerformanceMetrics

    @property
    def load_time(self) -> Optional[float]:
        return self.metrics.load_time

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name, "suite": self.suite, **self.metrics.to_dict()}


@dataclass
class PerformanceAnalysis:
    """Averages over every performance sample in the archive."""

    average_load_time: float = 0.0
    average_fcp: float = 0.0
    average_lcp: float = 0.0
    average_cls: float = 0.0
    average_tti: float = 0.0
    slowest_tests: list[SlowTest] = field(default_factory=list)
    # Samples behind each average, keyed by field name; not serialized
    sample_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "averageLoadTime": self.average_load_time,
            "averageFCP": self.average_fcp,
            "averageLCP": self.average_lcp,
            "averageCLS": self.average_cls,
            "averageTTI": self.average_tti,
            "slowestTests": [t.to_dict() for t in self.slowest_tests],
        }


@dataclass
class AnalyticsSummary:
    """Headline numbers shown on the dashboard."""

    total_runs: int = 0
    average_pass_rate: float = 0.0
    trend_direction: str = "stable"
    most_flaky_tests: list[FlakinessRecord] = field(default_factory=list)
    performance_issues: list[SlowTest] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "totalRuns": self.total_runs,
            "averagePassRate": self.average_pass_rate,
            "trendDirection": self.trend_direction,
            "mostFlakyTests": [t.to_dict() for t in self.most_flaky_tests],
            "performanceIssues": [t.to_dict() for t in self.performance_issues],
        }


@dataclass
class AnalyticsReport:
    """Composite report rendered by the dashboard."""

    generated: str
    trends: list[TrendData] = field(default_factory=list)
    flakiness: list[FlakinessRecord] = field(default_factory=list)
    performance: PerformanceAnalysis = field(default_factory=PerformanceAnalysis)
    summary: AnalyticsSummary = field(default_factory=AnalyticsSummary)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "generated": self.generated,
            "trends": [t.to_dict() for t in self.trends],
            "flakiness": [f.to_dict() for f in self.flakiness],
            "performance": self.performance.to_dict(),
            "summary": self.summary.to_dict(),
        }
