"""Dashboard and report generation using Jinja2 templates."""

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from webqa.analytics.engine import AnalyticsEngine
from webqa.analytics.models import AnalyticsReport, PerformanceAnalysis, TestRun
from webqa.analytics.parser import ResultParser, parse_timestamp
from webqa.analytics.store import ResultStore
from webqa.config import WebQAConfig
from webqa.mobile.devices import BREAKPOINTS, DEVICES
from webqa.report.sample import build_sample_results

logger = logging.getLogger(__name__)

# Thresholds shown in the dashboard's performance table (ms)
DASHBOARD_THRESHOLDS = {
    "load_time": 3000,
    "fcp": 1800,
    "lcp": 2500,
}

# Core Web Vitals: (good upper bound, poor lower bound)
CORE_WEB_VITALS = {
    "lcp": (2500, 4000),
    "fid": (100, 300),
    "cls": (0.1, 0.25),
}

MOBILE_REPORT = "mobile-report.html"
ACCESSIBILITY_REPORT = "accessibility-report.html"
PERFORMANCE_REPORT = "performance-report.html"

# Digests of ingested results files, kept beside the run archive
INGESTED_FILE = ".ingested"


def create_environment() -> Environment:
    """Create the Jinja2 environment with the package templates and filters."""
    template_dir = Path(__file__).parent / "templates"
    env = Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(["html", "xml"]),
        keep_trailing_newline=True,
    )

    env.filters["duration_format"] = format_duration
    env.filters["datetime_format"] = format_datetime
    env.filters["percentage"] = format_percentage
    env.filters["metric"] = format_metric
    return env


def format_duration(ms: Any) -> str:
    """Format duration in milliseconds to human-readable string."""
    if ms is None:
        return "-"
    if ms < 1000:
        return f"{ms:.0f}ms"
    elif ms < 60000:
        return f"{ms / 1000:.2f}s"
    else:
        minutes = int(ms // 60000)
        seconds = (ms % 60000) / 1000
        return f"{minutes}m {seconds:.1f}s"


def format_datetime(dt: Any) -> str:
    """Format datetime object or ISO string."""
    if isinstance(dt, str):
        try:
            dt = parse_timestamp(dt)
        except ValueError:
            return dt

    if isinstance(dt, datetime):
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    return str(dt)


def format_percentage(value: float) -> str:
    """Format a percentage value."""
    return f"{value:.1f}%"


def format_metric(value: Any, digits: int = 0) -> str:
    if value is None:
        return "-"
    return f"{value:.{digits}f}"


def pass_rate_class(pass_rate: float) -> str:
    """CSS trend class for an average pass rate."""
    if pass_rate >= 90:
        return "improving"
    if pass_rate >= 70:
        return "stable"
    return "declining"


def rate_vital(value: Optional[float], good: float, poor: float) -> str:
    """Rate a Core Web Vital as good, needs-improvement or poor."""
    if value is None:
        return "not-measured"
    if value <= good:
        return "good"
    if value <= poor:
        return "needs-improvement"
    return "poor"


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class DashboardGenerator:
    """Renders the analytics dashboard (``index.html`` and ``styles.css``)."""

    def __init__(self, config: WebQAConfig, base_dir: Path | str | None = None):
        """Initialize the dashboard generator.

        Args:
            config: WebQA configuration
            base_dir: Base directory of the project
        """
        self.config = config
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.env = create_environment()

    @property
    def output_dir(self) -> Path:
        return self.base_dir / self.config.analytics.dashboard_dir

    def render(self, report: AnalyticsReport) -> dict[str, str]:
        """Render the dashboard files without touching the filesystem.

        Returns:
            Mapping of file name to content
        """
        data = report.to_dict()
        summary = data["summary"]
        context = {
            "title": self.config.analytics.title,
            "chart_js_url": self.config.analytics.chart_js_url,
            "report": data,
            "summary": summary,
            "performance": data["performance"],
            "thresholds": DASHBOARD_THRESHOLDS,
            "pass_rate_class": pass_rate_class(summary["averagePassRate"]),
        }
        return {
            "index.html": self.env.get_template("dashboard.html").render(**context),
            "styles.css": self.env.get_template("styles.css").render(),
        }

    def generate(self, report: AnalyticsReport) -> Path:
        """Write the dashboard and return the path of ``index.html``.

        Raises:
            OSError: If the output directory or files cannot be written
        """
        files = self.render(report)
        for name, content in files.items():
            _write(self.output_dir / name, content)

        index_path = self.output_dir / "index.html"
        logger.info(f"Dashboard generated: {index_path}")
        return index_path


class ReportGenerator:
    """Runs the full ingestion-to-dashboard pipeline and writes supplementary pages."""

    def __init__(self, config: WebQAConfig, base_dir: Path | str | None = None):
        """Initialize the report generator.

        Args:
            config: WebQA configuration
            base_dir: Base directory of the project
        """
        self.config = config
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.paths = config.get_absolute_paths(self.base_dir)

        self.store = ResultStore(self.paths["results_dir"])
        self.engine = AnalyticsEngine(self.store, window_days=config.analytics.trend_window_days)
        self.parser = ResultParser(base_dir=self.base_dir)
        self.dashboard = DashboardGenerator(config, self.base_dir)
        self.env = self.dashboard.env

    def render_mobile_report(self, run: Optional[TestRun]) -> str:
        """Render device coverage and mobile suite results for a run."""
        mobile_tests = []
        if run is not None:
            for suite in run.suites:
                if "mobile" in suite.name.lower():
                    mobile_tests.extend(t.to_dict() for t in suite.tests)

        template = self.env.get_template("mobile_report.html")
        return template.render(
            title="Mobile Testing Report",
            run=run.to_dict() if run else None,
            devices=[d.to_dict() for d in DEVICES.values()],
            breakpoints=BREAKPOINTS,
            mobile_tests=mobile_tests,
        )

    def render_accessibility_report(self, run: Optional[TestRun]) -> str:
        """Render accessibility metrics recorded on a run's tests."""
        scanned = []
        if run is not None:
            scanned = [t for t in run.iter_tests() if t.accessibility is not None]

        total_violations = sum(t.accessibility.violations for t in scanned)
        total_passes = sum(t.accessibility.passes for t in scanned)
        average_score = sum(t.accessibility.score for t in scanned) / len(scanned) if scanned else 0.0

        template = self.env.get_template("accessibility_report.html")
        return template.render(
            title="Accessibility Testing Report",
            run=run.to_dict() if run else None,
            tests=[t.to_dict() for t in scanned],
            total_violations=total_violations,
            total_passes=total_passes,
            average_score=average_score,
            wcag_tags=self.config.accessibility.tags,
        )

    def render_performance_report(self, analysis: PerformanceAnalysis) -> str:
        """Render performance averages against Core Web Vitals thresholds."""
        vitals = [
            {
                "name": "Largest Contentful Paint",
                "value": analysis.average_lcp if analysis.sample_counts.get("average_lcp") else None,
                "unit": "ms",
                "good": CORE_WEB_VITALS["lcp"][0],
                "poor": CORE_WEB_VITALS["lcp"][1],
            },
            {
                "name": "First Input Delay",
                "value": None,
                "unit": "ms",
                "good": CORE_WEB_VITALS["fid"][0],
                "poor": CORE_WEB_VITALS["fid"][1],
            },
            {
                "name": "Cumulative Layout Shift",
                "value": analysis.average_cls if analysis.sample_counts.get("average_cls") else None,
                "unit": "",
                "good": CORE_WEB_VITALS["cls"][0],
                "poor": CORE_WEB_VITALS["cls"][1],
            },
        ]
        for vital in vitals:
            vital["rating"] = rate_vital(vital["value"], vital["good"], vital["poor"])

        template = self.env.get_template("performance_report.html")
        return template.render(
            title="Performance Testing Report",
            performance=analysis.to_dict(),
            vitals=vitals,
            thresholds=self.config.performance.model_dump(),
        )

    def latest_run(self) -> Optional[TestRun]:
        runs = self.store.get_recent_runs(limit=1)
        return runs[0] if runs else None

    def generate_supplementary_reports(self, report: AnalyticsReport, run: Optional[TestRun] = None) -> list[Path]:
        """Write the mobile, accessibility and performance pages."""
        run = run or self.latest_run()
        reports_dir = self.paths["reports_dir"]
        written = [
            _write(reports_dir / MOBILE_REPORT, self.render_mobile_report(run)),
            _write(reports_dir / ACCESSIBILITY_REPORT, self.render_accessibility_report(run)),
            _write(reports_dir / PERFORMANCE_REPORT, self.render_performance_report(report.performance)),
        ]
        for path in written:
            logger.info(f"Report generated: {path}")
        return written

    def _ingested_digests(self) -> dict[str, str]:
        path = self.paths["results_dir"] / INGESTED_FILE
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning(f"Ignoring unreadable ingestion record: {path}")
            return {}

    def _mark_ingested(self, results: Path, digest: str) -> None:
        digests = self._ingested_digests()
        digests[str(results.resolve())] = digest
        _write(self.paths["results_dir"] / INGESTED_FILE, json.dumps(digests, indent=2, sort_keys=True))

    def write_sample_results(self, path: Path) -> Path:
        """Write a demonstration results document."""
        logger.warning("No test results found. Creating sample data for demonstration.")
        return _write(path, json.dumps(build_sample_results(), indent=2))

    def generate_complete_report(self, results_path: Path | str | None = None) -> Path:
        """Ingest the latest results, archive them and regenerate every report.

        The configured results file is archived once per distinct content, so
        rerunning without new results does not add a duplicate run. An explicit
        results file is always archived.

        Args:
            results_path: Results document to ingest (defaults to the configured path)

        Returns:
            Path to the dashboard ``index.html``

        Raises:
            ResultsParseError: If the results document cannot be parsed
            OSError: If a results file or report cannot be written
        """
        logger.info("Starting comprehensive report generation...")
        path = Path(results_path) if results_path else self.paths["raw_results_path"]
        if not path.exists():
            if results_path:
                raise FileNotFoundError(f"Results file not found: {path}")
            self.write_sample_results(path)

        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        already_ingested = self._ingested_digests().get(str(path.resolve())) == digest
        run: Optional[TestRun] = None
        if already_ingested and not results_path:
            logger.warning(f"Results file {path} was already archived; skipping ingestion")
        else:
            if already_ingested:
                logger.warning(f"Results file {path} was already archived; archiving it again")
            run = self.parser.parse_file(path)
            self.store.store_results(run)
            self._mark_ingested(path, digest)

        report = self.engine.generate_analytics_report()
        dashboard_path = self.dashboard.generate(report)
        self.generate_supplementary_reports(report, run)

        logger.info("Complete report generated successfully")
        logger.info(f"Dashboard available at: {dashboard_path}")
        return dashboard_path
