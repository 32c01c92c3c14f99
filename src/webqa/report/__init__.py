"""Static HTML dashboard and report generation."""

from webqa.report.generator import DashboardGenerator, ReportGenerator

__all__ = ["DashboardGenerator", "ReportGenerator"]
