"""Tests for dashboard and report generation."""

import json

import pytest

from webqa.analytics.engine import AnalyticsEngine
from webqa.analytics.models import AccessibilityMetrics, AnalyticsReport, PerformanceAnalysis, PerformanceMetrics
from webqa.analytics.store import ResultStore
from webqa.config import WebQAConfig
from webqa.report.generator import (
    DashboardGenerator,
    ReportGenerator,
    format_duration,
    format_metric,
    pass_rate_class,
    rate_vital,
)
from webqa.report.sample import build_sample_results


@pytest.fixture
def config():
    return WebQAConfig()


class TestFormatting:
    """Tests for template filters and ratings."""

    def test_format_duration(self):
        """Test durations in milliseconds, seconds and minutes."""
        assert format_duration(None) == "-"
        assert format_duration(450) == "450ms"
        assert format_duration(1500) == "1.50s"
        assert format_duration(90000) == "1m 30.0s"

    def test_format_metric(self):
        """Test missing metrics render as a dash."""
        assert format_metric(None) == "-"
        assert format_metric(0.12345, 3) == "0.123"

    def test_pass_rate_class(self):
        """Test pass-rate bands."""
        assert pass_rate_class(95) == "improving"
        assert pass_rate_class(90) == "improving"
        assert pass_rate_class(75) == "stable"
        assert pass_rate_class(10) == "declining"

    def test_rate_vital(self):
        """Test Core Web Vitals ratings."""
        assert rate_vital(None, 2500, 4000) == "not-measured"
        assert rate_vital(2000, 2500, 4000) == "good"
        assert rate_vital(3000, 2500, 4000) == "needs-improvement"
        assert rate_vital(5000, 2500, 4000) == "poor"


class TestDashboardGenerator:
    """Tests for DashboardGenerator."""

    def test_render_empty_report(self, config, temp_dir):
        """Test an empty report still renders both files."""
        files = DashboardGenerator(config, temp_dir).render(AnalyticsReport(generated="2024-01-01T00:00:00Z"))
        assert set(files) == {"index.html", "styles.css"}
        assert files["index.html"].startswith("<!DOCTYPE html>")
        assert 'id="total-runs">0<' in files["index.html"]
        assert not (temp_dir / "analytics").exists()

    def test_dashboard_with_three_runs(self, config, temp_dir, make_run):
        """Test the dashboard reports three runs."""
        store = ResultStore(temp_dir / "results")
        store.store_results(make_run("run_1", {"a": "passed", "b": "failed"}, days_ago=3))
        store.store_results(make_run("run_2", {"a": "passed", "b": "passed"}, days_ago=2))
        store.store_results(make_run("run_3", {"a": "failed", "b": "passed"}, days_ago=1))
        report = AnalyticsEngine(store).generate_analytics_report()
        assert len(report.trends) == 3

        path = DashboardGenerator(config, temp_dir).generate(report)

        assert path == temp_dir / "analytics" / "dashboard" / "index.html"
        html = path.read_text()
        assert html.startswith("<!DOCTYPE html>")
        assert 'id="total-runs">3<' in html
        assert (path.parent / "styles.css").exists()

    def test_report_data_embedded(self, config, temp_dir, make_run):
        """Test the report is embedded as JSON for the charts."""
        store = ResultStore(temp_dir / "results")
        store.store_results(make_run("run_1", {"checkout": "passed"}))
        report = AnalyticsEngine(store).generate_analytics_report()

        html = DashboardGenerator(config, temp_dir).render(report)["index.html"]
        assert '"totalRuns": 1' in html
        assert config.analytics.chart_js_url in html

    def test_render_is_repeatable(self, config, temp_dir, make_run):
        """Test reports over the same archive render identically apart from the generation time."""
        store = ResultStore(temp_dir / "results")
        store.store_results(make_run("run_1", {"a": "passed", "b": "failed"}, days_ago=2))
        performance = {"a": PerformanceMetrics(load_time=2100)}
        store.store_results(make_run("run_2", {"a": "failed", "b": "passed"}, days_ago=1, performance=performance))
        engine = AnalyticsEngine(store)
        first = engine.generate_analytics_report()
        second = engine.generate_analytics_report()
        second.generated = first.generated

        generator = DashboardGenerator(config, temp_dir)
        assert generator.render(first) == generator.render(second)
        assert generator.render(first) == generator.render(first)

    def test_generate_unwritable_output(self, config, temp_dir):
        """Test a dashboard path that cannot be created raises OSError."""
        blocker = temp_dir / "analytics" / "dashboard"
        blocker.parent.mkdir(parents=True)
        blocker.write_text("not a directory")

        with pytest.raises(OSError):
            DashboardGenerator(config, temp_dir).generate(AnalyticsReport(generated="2024-01-01T00:00:00Z"))


class TestReportGenerator:
    """Tests for ReportGenerator."""

    def test_generate_with_sample_data(self, config, temp_dir):
        """Test a missing default results file is replaced by sample data."""
        generator = ReportGenerator(config, temp_dir)
        dashboard = generator.generate_complete_report()

        assert dashboard.exists()
        assert (temp_dir / "test-results" / "results.json").exists()
        runs = generator.store.load_runs()
        assert len(runs) == 1
        assert runs[0].summary.total_tests == 4
        assert runs[0].summary.failed == 1

        for name in ("mobile-report.html", "accessibility-report.html", "performance-report.html"):
            assert (temp_dir / "analytics" / name).exists()

    def test_generate_from_explicit_results(self, config, temp_dir):
        """Test ingesting a given results file archives one more run each call."""
        results = temp_dir / "custom.json"
        results.write_text(json.dumps(build_sample_results()))
        generator = ReportGenerator(config, temp_dir)

        generator.generate_complete_report(results)
        generator.generate_complete_report(results)

        assert len(generator.store.load_runs()) == 2

    def test_unchanged_default_results_archived_once(self, config, temp_dir):
        """Test rerunning over the same configured results file adds no second run."""
        generator = ReportGenerator(config, temp_dir)
        generator.generate_complete_report()
        generator.generate_complete_report()

        assert len(generator.store.load_runs()) == 1
        report = generator.engine.generate_analytics_report()
        assert len(report.trends) == 1

    def test_changed_default_results_archived_again(self, config, temp_dir):
        """Test new content at the configured results path is archived."""
        generator = ReportGenerator(config, temp_dir)
        generator.generate_complete_report()

        results = temp_dir / "test-results" / "results.json"
        document = json.loads(results.read_text())
        document["suites"] = document["suites"][:1]
        results.write_text(json.dumps(document))
        generator.generate_complete_report()

        assert len(generator.store.load_runs()) == 2

    def test_explicit_missing_results(self, config, temp_dir):
        """Test an explicit path that does not exist is an error."""
        with pytest.raises(FileNotFoundError):
            ReportGenerator(config, temp_dir).generate_complete_report(temp_dir / "missing.json")

    def test_mobile_report_lists_devices(self, config, temp_dir, make_run):
        """Test the mobile page shows the device catalog and mobile suites."""
        run = make_run("run_1", {"should tap": "passed"}, suite="Mobile Tests")
        html = ReportGenerator(config, temp_dir).render_mobile_report(run)
        assert "iPhone 13" in html
        assert "should tap" in html

    def test_accessibility_report_totals(self, config, temp_dir, make_run):
        """Test accessibility totals over scanned tests."""
        run = make_run("run_1", {"home": "passed", "about": "passed"})
        tests = run.suites[0].tests
        tests[0].accessibility = AccessibilityMetrics(violations=3, passes=27, score=90)
        html = ReportGenerator(config, temp_dir).render_accessibility_report(run)
        assert "home" in html
        assert "about" not in html

    def test_reports_without_runs(self, config, temp_dir):
        """Test the supplementary pages render without any run."""
        generator = ReportGenerator(config, temp_dir)
        report = generator.engine.generate_analytics_report()
        paths = generator.generate_supplementary_reports(report)
        assert [p.name for p in paths] == ["mobile-report.html", "accessibility-report.html", "performance-report.html"]

    def test_vitals_without_load_time(self, config, temp_dir, make_run):
        """Test LCP and CLS are rated from their own samples when no load time was measured."""
        generator = ReportGenerator(config, temp_dir)
        metrics = PerformanceMetrics(largest_contentful_paint=1800, cumulative_layout_shift=0.0)
        generator.store.store_results(make_run("run_1", {"home": "passed"}, performance={"home": metrics}))

        analysis = generator.engine.generate_performance_analysis()
        assert analysis.slowest_tests == []

        html = generator.render_performance_report(analysis)
        assert "1800ms" in html
        assert "0.000" in html
        assert html.count("status-badge good") == 2
        assert "status-badge not-measured" in html

    def test_vitals_without_samples(self, config, temp_dir):
        html = ReportGenerator(config, temp_dir).render_performance_report(PerformanceAnalysis())
        assert html.count("status-badge not-measured") == 3


class TestSampleResults:
    """Tests for the demonstration results document."""

    def test_shape(self):
        """Test the sample has two suites in the reporter shape."""
        sample = build_sample_results()
        assert [s["title"] for s in sample["suites"]] == ["UI Tests", "Mobile Tests"]
        first = sample["suites"][0]["specs"][0]["tests"][0]
        assert first["results"][0]["status"] == "passed"
