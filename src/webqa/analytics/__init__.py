"""Run archive and analytics over historical test results."""

from webqa.analytics.engine import AnalyticsEngine, calculate_trend_direction
from webqa.analytics.models import AnalyticsReport, TestResult, TestRun, TestStatus, TestSuite
from webqa.analytics.parser import ResultParser, ResultsParseError, parse_results
from webqa.analytics.store import ResultStore

__all__ = [
    "AnalyticsEngine",
    "AnalyticsReport",
    "ResultParser",
    "ResultStore",
    "ResultsParseError",
    "TestResult",
    "TestRun",
    "TestStatus",
    "TestSuite",
    "calculate_trend_direction",
    "parse_results",
]
