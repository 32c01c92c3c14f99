"""Tests for the analytics engine."""

import json

import pytest

from webqa.analytics.engine import AnalyticsEngine, calculate_trend_direction
from webqa.analytics.models import PerformanceMetrics, TrendData
from webqa.analytics.parser import ResultParser
from webqa.analytics.store import ResultStore


@pytest.fixture
def store(temp_dir):
    return ResultStore(temp_dir / "results")


@pytest.fixture
def engine(store):
    return AnalyticsEngine(store, window_days=30)


def _points(*rates):
    return [TrendData(date=f"2024-01-{i + 1:02d}T00:00:00Z", pass_rate=rate) for i, rate in enumerate(rates)]


class TestTrendDirection:
    """Tests for calculate_trend_direction."""

    def test_too_few_points(self):
        """Test fewer than two points is stable."""
        assert calculate_trend_direction([]) == "stable"
        assert calculate_trend_direction(_points(10)) == "stable"

    def test_no_earlier_window(self):
        """Test five or fewer points have nothing to compare against."""
        assert calculate_trend_direction(_points(0, 100, 100, 100, 100)) == "stable"

    def test_improving(self):
        """Test a rise of more than five points is improving."""
        assert calculate_trend_direction(_points(80, 80, 80, 80, 80, 90, 90, 90, 90, 90)) == "improving"

    def test_declining(self):
        """Test a drop of more than five points is declining."""
        assert calculate_trend_direction(_points(90, 90, 90, 90, 90, 80, 80, 80, 80, 80)) == "declining"

    def test_exact_threshold_is_stable(self):
        """Test a difference of exactly five points is stable."""
        assert calculate_trend_direction(_points(80, 80, 80, 80, 80, 85, 85, 85, 85, 85)) == "stable"
        assert calculate_trend_direction(_points(85, 85, 85, 85, 85, 80, 80, 80, 80, 80)) == "stable"

    def test_partial_earlier_window(self):
        """Test a short earlier window is averaged over what exists."""
        assert calculate_trend_direction(_points(50, 100, 100, 100, 100, 100)) == "improving"

    def test_only_last_ten_points_count(self):
        """Test points older than the last ten are ignored."""
        rates = [0] * 5 + [90] * 10
        assert calculate_trend_direction(_points(*rates)) == "stable"


class TestTrendData:
    """Tests for AnalyticsEngine.get_trend_data."""

    def test_empty_directory(self, engine):
        """Test an empty archive has no trend points."""
        assert engine.get_trend_data() == []

    def test_sorted_and_windowed(self, engine, store, make_run, now):
        """Test points are ascending and runs outside the window are dropped."""
        store.store_results(make_run("run_new", {"a": "passed"}, days_ago=1))
        store.store_results(make_run("run_old", {"a": "failed"}, days_ago=10))
        store.store_results(make_run("run_ancient", {"a": "passed"}, days_ago=45))

        points = engine.get_trend_data(now=now)
        assert len(points) == 2
        assert [p.pass_rate for p in points] == [0.0, 100.0]

        assert len(engine.get_trend_data(window_days=5, now=now)) == 1
        assert len(engine.get_trend_data(window_days=60, now=now)) == 3

    def test_malformed_file_skipped(self, engine, store, make_run, now):
        """Test a malformed file next to two valid runs leaves two points."""
        store.store_results(make_run("run_1", {"a": "passed"}, days_ago=2))
        store.store_results(make_run("run_2", {"a": "failed"}, days_ago=1))
        (store.results_dir / "run_broken.json").write_text("{ this is not json")

        assert len(engine.get_trend_data(now=now)) == 2

    def test_overflowing_count_skipped(self, engine, store, make_run, now):
        """Test a summary count too large for an integer does not stop the trend."""
        store.store_results(make_run("run_1", {"a": "passed"}, days_ago=2))
        store.store_results(make_run("run_2", {"a": "failed"}, days_ago=1))
        text = json.dumps(make_run("run_bad", {"a": "passed"}).to_dict(), indent=2)
        (store.results_dir / "run_bad.json").write_text(text.replace('"totalTests": 1', '"totalTests": 1e400'))

        assert len(engine.get_trend_data(now=now)) == 2

    def test_invalid_timestamp_skipped(self, engine, store, make_run, now):
        """Test a run with an unparseable timestamp is not plotted."""
        run = make_run("run_1", {"a": "passed"})
        run.timestamp = "not-a-date"
        store.store_results(run)
        store.store_results(make_run("run_2", {"a": "passed"}))

        assert len(engine.get_trend_data(now=now)) == 1


class TestFlakiness:
    """Tests for AnalyticsEngine.generate_flakiness_report."""

    def test_pass_then_fail(self, engine, store, make_run):
        """Test one pass and one fail gives a single record at 50%."""
        store.store_results(make_run("run_1", {"login": "passed"}, days_ago=2))
        store.store_results(make_run("run_2", {"login": "failed"}, days_ago=1))

        records = engine.generate_flakiness_report()
        assert len(records) == 1
        assert records[0].id == "Suite_login"
        assert records[0].flakiness_rate == 50
        assert records[0].total_runs == 2

    def test_wrongly_typed_id_skipped(self, engine, store, make_run):
        """Test a run whose test id is not a string is left out."""
        store.store_results(make_run("run_1", {"login": "passed"}, days_ago=2))
        store.store_results(make_run("run_2", {"login": "failed"}, days_ago=1))
        data = make_run("run_bad", {"login": "failed"}).to_dict()
        data["suites"][0]["tests"][0]["id"] = ["Suite", "login"]
        (store.results_dir / "run_bad.json").write_text(json.dumps(data))

        records = engine.generate_flakiness_report()
        assert len(records) == 1
        assert records[0].total_runs == 2

    def test_consistent_tests_excluded(self, engine, store, make_run):
        """Test always-passing, always-failing and single-run tests are not flaky."""
        store.store_results(make_run("run_1", {"stable": "passed", "broken": "failed", "flaky": "passed"}))
        store.store_results(make_run("run_2", {"stable": "passed", "broken": "failed", "flaky": "failed", "new": "failed"}))

        records = engine.generate_flakiness_report()
        assert [r.name for r in records] == ["flaky"]

    def test_skipped_counts_as_a_run(self, engine, store, make_run):
        """Test skipped executions count toward total runs only."""
        store.store_results(make_run("run_1", {"t": "passed"}))
        store.store_results(make_run("run_2", {"t": "failed"}))
        store.store_results(make_run("run_3", {"t": "skipped"}))

        record = engine.generate_flakiness_report()[0]
        assert record.total_runs == 3
        assert record.passed == 1
        assert record.failed == 1
        assert record.flakiness_rate == pytest.approx(100 / 3)

    def test_ordering(self, engine, store, make_run):
        """Test records are ordered by rate, highest first, ties by id."""
        store.store_results(make_run("run_1", {"b": "passed", "a": "passed", "c": "failed"}))
        store.store_results(make_run("run_2", {"b": "failed", "a": "failed", "c": "failed"}))
        store.store_results(make_run("run_3", {"b": "passed", "a": "passed", "c": "passed"}))

        records = engine.generate_flakiness_report()
        assert [r.name for r in records] == ["c", "a", "b"]
        rates = [r.flakiness_rate for r in records]
        assert rates == sorted(rates, reverse=True)


class TestPerformanceAnalysis:
    """Tests for AnalyticsEngine.generate_performance_analysis."""

    def test_no_samples(self, engine, store, make_run):
        """Test zero samples give zeroed averages."""
        store.store_results(make_run("run_1", {"a": "passed"}))
        analysis = engine.generate_performance_analysis()
        assert analysis.average_load_time == 0
        assert analysis.average_cls == 0
        assert analysis.slowest_tests == []

    def test_averages_skip_missing_values(self, engine, store, make_run):
        """Test a missing metric is left out of that metric's average only."""
        performance = {
            "a": PerformanceMetrics(load_time=1000, first_contentful_paint=400, cumulative_layout_shift=0.1),
            "b": PerformanceMetrics(load_time=3000, first_contentful_paint=None, cumulative_layout_shift=0.3),
        }
        store.store_results(make_run("run_1", {"a": "passed", "b": "passed", "c": "passed"}, performance=performance))

        analysis = engine.generate_performance_analysis()
        assert analysis.average_load_time == 2000
        assert analysis.average_fcp == 400
        assert analysis.average_cls == pytest.approx(0.2)
        assert analysis.average_lcp == 0
        assert analysis.average_tti == 0

    def test_slowest_tests(self, engine, store, make_run):
        """Test ranking by load time, capped at ten."""
        names = [f"t{i}" for i in range(12)]
        performance = {name: PerformanceMetrics(load_time=100 * (i + 1)) for i, name in enumerate(names)}
        performance["no_load"] = PerformanceMetrics(first_contentful_paint=50)
        store.store_results(make_run("run_1", {n: "passed" for n in [*names, "no_load"]}, performance=performance))

        slowest = engine.generate_performance_analysis().slowest_tests
        assert len(slowest) == 10
        assert slowest[0].name == "t11"
        assert slowest[0].load_time == 1200
        assert [s.load_time for s in slowest] == sorted((s.load_time for s in slowest), reverse=True)


class TestAnalyticsReport:
    """Tests for AnalyticsEngine.generate_analytics_report."""

    def test_empty_directory(self, engine):
        """Test the report over an empty archive."""
        report = engine.generate_analytics_report().to_dict()
        assert report["trends"] == []
        assert report["flakiness"] == []
        assert report["performance"]["averageLoadTime"] == 0
        assert report["performance"]["slowestTests"] == []
        assert report["summary"]["totalRuns"] == 0
        assert report["summary"]["averagePassRate"] == 0
        assert report["summary"]["trendDirection"] == "stable"

    def test_single_run_from_results(self, engine, store, metadata, temp_dir):
        """Test one parsed run with one passing test."""
        path = temp_dir / "results.json"
        path.write_text(
            json.dumps(
                {
                    "suites": [
                        {"title": "UI", "specs": [{"tests": [{"title": "t1", "results": [{"status": "passed", "duration": 100}]}]}]}
                    ]
                }
            )
        )
        run = ResultParser(metadata=metadata).parse_file(path)
        store.store_results(run)

        summary = store.get_run(run.id).summary
        assert summary.total_tests == 1
        assert summary.passed == 1
        assert summary.failed == 0
        assert summary.skipped == 0
        assert summary.pass_rate == 100

        report = engine.generate_analytics_report()
        assert report.summary.total_runs == 1
        assert report.summary.average_pass_rate == 100

    def test_summary_limits(self, engine, store, make_run):
        """Test the summary keeps the top five flaky and slow tests."""
        names = [f"t{i}" for i in range(7)]
        performance = {name: PerformanceMetrics(load_time=1000 + i) for i, name in enumerate(names)}
        store.store_results(make_run("run_1", {n: "passed" for n in names}, performance=performance, days_ago=1))
        store.store_results(make_run("run_2", {n: "failed" for n in names}))

        report = engine.generate_analytics_report()
        assert len(report.flakiness) == 7
        assert len(report.summary.most_flaky_tests) == 5
        assert len(report.summary.performance_issues) == 5
        assert report.summary.total_runs == 2
        assert report.summary.average_pass_rate == 50

    def test_repeated_report_is_identical(self, engine, store, make_run):
        """Test two reports over an unchanged archive differ only in the generation time."""
        performance = {"a": PerformanceMetrics(load_time=1200, largest_contentful_paint=2100)}
        store.store_results(make_run("run_1", {"a": "passed", "b": "passed"}, performance=performance, days_ago=2))
        store.store_results(make_run("run_2", {"a": "failed", "b": "passed"}, days_ago=1))

        first = engine.generate_analytics_report().to_dict()
        second = engine.generate_analytics_report().to_dict()

        for key in ("trends", "flakiness", "performance", "summary"):
            assert json.dumps(first[key], sort_keys=True) == json.dumps(second[key], sort_keys=True)
