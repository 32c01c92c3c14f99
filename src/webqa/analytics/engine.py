"""Trend, flakiness and performance analytics over the run archive."""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from webqa.analytics.models import (
    AnalyticsReport,
    AnalyticsSummary,
    FlakinessRecord,
    PerformanceAnalysis,
    SlowTest,
    TestResult,
    TestStatus,
    TrendData,
)
from webqa.analytics.parser import parse_timestamp, utc_now_iso
from webqa.analytics.store import ResultStore

logger = logging.getLogger(__name__)

TREND_SLICE = 5
TREND_THRESHOLD = 5.0
SLOWEST_LIMIT = 10
SUMMARY_LIMIT = 5

_PERFORMANCE_FIELDS = {
    "average_load_time": "load_time",
    "average_fcp": "first_contentful_paint",
    "average_lcp": "largest_contentful_paint",
    "average_cls": "cumulative_layout_shift",
    "average_tti": "time_to_interactive",
}


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def calculate_trend_direction(trends: list[TrendData]) -> str:
    """Classify the pass-rate trend as improving, declining or stable.

    Compares the mean pass rate of the last five points with the five before.
    """
    if len(trends) < 2:
        return "stable"

    recent = trends[-TREND_SLICE:]
    earlier = trends[-2 * TREND_SLICE:-TREND_SLICE]
    if not recent or not earlier:
        return "stable"

    difference = _mean([t.pass_rate for t in recent]) - _mean([t.pass_rate for t in earlier])
    if difference > TREND_THRESHOLD:
        return "improving"
    if difference < -TREND_THRESHOLD:
        return "declining"
    return "stable"


class AnalyticsEngine:
    """Computes read-only views over the archived runs.

    Every call re-reads the archive; nothing is cached between calls.
    """

    def __init__(self, store: ResultStore, window_days: int = 30):
        """Initialize the engine.

        Args:
            store: Archive of runs to analyze
            window_days: Default trailing window for trend data
        """
        self.store = store
        self.window_days = window_days

    def get_trend_data(self, window_days: Optional[int] = None, now: Optional[datetime] = None) -> list[TrendData]:
        """Return one trend point per run inside the trailing window.

        Args:
            window_days: Window size in days (defaults to the engine's window)
            now: Reference instant, mainly for tests

        Returns:
            Trend points sorted ascending by timestamp
        """
        days = self.window_days if window_days is None else window_days
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)

        points: list[tuple[datetime, TrendData]] = []
        for run in self.store.iter_runs():
            try:
                when = parse_timestamp(run.timestamp)
            except ValueError:
                logger.warning(f"Skipping run {run.id} with invalid timestamp: {run.timestamp}")
                continue
            if when >= cutoff:
                points.append((when, TrendData.from_run(run)))

        points.sort(key=lambda item: item[0])
        return [point for _, point in points]

    def generate_flakiness_report(self) -> list[FlakinessRecord]:
        """Rank tests that both passed and failed across the archive.

        Returns:
            Records sorted by flakiness rate, highest first
        """
        history: dict[str, list[TestResult]] = defaultdict(list)
        for run in self.store.iter_runs():
            for test in run.iter_tests():
                history[test.id].append(test)

        records = []
        for test_id, results in history.items():
            if len(results) < 2:
                continue
            passed = sum(1 for r in results if r.status == TestStatus.PASSED)
            failed = sum(1 for r in results if r.status == TestStatus.FAILED)
            if passed == 0 or failed == 0:
                continue
            records.append(
                FlakinessRecord(
                    id=test_id,
                    name=results[0].name,
                    suite=results[0].suite,
                    total_runs=len(results),
                    passed=passed,
                    failed=failed,
                )
            )

        # Stable sort keeps ties in id order so repeated reports match
        records.sort(key=lambda r: r.id)
        records.sort(key=lambda r: r.flakiness_rate, reverse=True)
        return records

    def generate_performance_analysis(self) -> PerformanceAnalysis:
        """Average the performance samples recorded on any archived test.

        A sample missing a metric, or carrying a non-numeric value, is left out
        of that metric's average only. Ranking by load time considers samples
        with a numeric load time.
        """
        samples: list[SlowTest] = []
        for run in self.store.iter_runs():
            for test in run.iter_tests():
                if test.performance is not None:
                    samples.append(SlowTest(id=test.id, name=test.name, suite=test.suite, metrics=test.performance))

        analysis = PerformanceAnalysis()
        if not samples:
            return analysis

        for target, source in _PERFORMANCE_FIELDS.items():
            values = [v for v in (getattr(s.metrics, source) for s in samples) if _is_number(v)]
            setattr(analysis, target, _mean(values))
            analysis.sample_counts[target] = len(values)

        ranked = [s for s in samples if _is_number(s.load_time)]
        ranked.sort(key=lambda s: s.load_time, reverse=True)
        analysis.slowest_tests = ranked[:SLOWEST_LIMIT]
        return analysis

    def generate_analytics_report(self, window_days: Optional[int] = None) -> AnalyticsReport:
        """Build the composite report rendered by the dashboard."""
        trends = self.get_trend_data(window_days)
        flakiness = self.generate_flakiness_report()
        performance = self.generate_performance_analysis()

        summary = AnalyticsSummary(
            total_runs=len(trends),
            average_pass_rate=_mean([t.pass_rate for t in trends]),
            trend_direction=calculate_trend_direction(trends),
            most_flaky_tests=flakiness[:SUMMARY_LIMIT],
            performance_issues=performance.slowest_tests[:SUMMARY_LIMIT],
        )

        logger.info(
            f"Analytics report: {summary.total_runs} runs, {len(flakiness)} flaky tests, "
            f"trend {summary.trend_direction}"
        )
        return AnalyticsReport(
            generated=utc_now_iso(),
            trends=trends,
            flakiness=flakiness,
            performance=performance,
            summary=summary,
        )
