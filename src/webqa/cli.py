"""Command-line interface for WebQA."""

import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from webqa import __version__
from webqa.config import WebQAConfig, create_example_config
from webqa.logger import setup_logging


console = Console()


def print_banner() -> None:
    """Print the WebQA banner."""
    console.print(
        Panel.fit(
            "[bold blue]WebQA[/bold blue] - Browser test automation and analytics",
            subtitle=f"v{__version__}",
        )
    )


def _load_config(config_path: Optional[str], verbose: bool = False) -> tuple[WebQAConfig, Path]:
    """Load configuration and start logging, exiting on invalid files."""
    try:
        config = WebQAConfig.load(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        console.print("Run [bold]webqa init[/bold] to create a configuration file")
        sys.exit(1)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        sys.exit(1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    base_dir = Path(config_path).parent if config_path else Path.cwd()
    return config, base_dir


def _run_report(config: WebQAConfig, base_dir: Path, results: Optional[str] = None) -> Path:
    from webqa.report.generator import ReportGenerator

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Generating analytics reports...", total=None)
        dashboard_path = ReportGenerator(config, base_dir).generate_complete_report(results)
        progress.update(task, completed=True)
    return dashboard_path


@click.group()
@click.version_option(version=__version__, prog_name="webqa")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: webqa.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """WebQA - browser test automation with run analytics.

    Archives test results, tracks pass-rate trends and flaky tests, and
    renders an HTML dashboard.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="webqa.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
def init(output: str, force: bool) -> None:
    """Initialize a new WebQA configuration file."""
    print_banner()

    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {output_path}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        create_example_config(output_path)
    except OSError as e:
        console.print(f"[red]Error creating configuration:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(f"[green]Created configuration file:[/green] {output_path}")
    console.print("\nNext steps:")
    console.print("  1. Edit the environment URLs in the configuration file")
    console.print("  2. Run your suite with [bold]pytest --webqa-results test-results/results.json[/bold]")
    console.print("  3. Run [bold]webqa report[/bold] to build the dashboard")


@main.command()
@click.option(
    "--results",
    "-r",
    type=click.Path(),
    default=None,
    help="Results document to ingest (default: analytics.raw_results_path)",
)
@click.pass_context
def report(ctx: click.Context, results: Optional[str]) -> None:
    """Ingest the latest results and regenerate the dashboard and reports."""
    print_banner()
    config, base_dir = _load_config(ctx.obj.get("config_path"), ctx.obj.get("verbose", False))

    try:
        dashboard_path = _run_report(config, base_dir, results)
    except Exception as e:
        console.print(f"[red]Error generating report:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(f"[green]Dashboard generated:[/green] {dashboard_path}")


@main.command()
@click.option("--days", "-d", type=int, default=None, help="Trend window in days (default: from config)")
@click.pass_context
def trends(ctx: click.Context, days: Optional[int]) -> None:
    """Show pass-rate trends of archived runs."""
    from webqa.analytics.engine import AnalyticsEngine, calculate_trend_direction
    from webqa.analytics.store import ResultStore

    config, base_dir = _load_config(ctx.obj.get("config_path"), ctx.obj.get("verbose", False))
    paths = config.get_absolute_paths(base_dir)
    engine = AnalyticsEngine(ResultStore(paths["results_dir"]), window_days=config.analytics.trend_window_days)
    data = engine.get_trend_data(days)

    if not data:
        console.print("[yellow]No runs in the trend window[/yellow]")
        return

    table = Table(title=f"Pass Rate Trend ({days or engine.window_days} days)")
    table.add_column("Date", style="dim")
    table.add_column("Tests", justify="right")
    table.add_column("Pass Rate", justify="right")
    table.add_column("Avg Duration", justify="right")

    for point in data:
        table.add_row(
            point.date,
            str(point.total_tests),
            f"{point.pass_rate:.1f}%",
            f"{point.average_duration:.0f}ms",
        )

    console.print(table)
    console.print(f"Trend: [bold]{calculate_trend_direction(data)}[/bold]")


@main.command()
@click.option("--limit", "-n", type=int, default=10, help="Number of tests to show")
@click.pass_context
def flaky(ctx: click.Context, limit: int) -> None:
    """Show tests whose outcome changed across archived runs."""
    from webqa.analytics.engine import AnalyticsEngine
    from webqa.analytics.store import ResultStore

    config, base_dir = _load_config(ctx.obj.get("config_path"), ctx.obj.get("verbose", False))
    paths = config.get_absolute_paths(base_dir)
    records = AnalyticsEngine(ResultStore(paths["results_dir"])).generate_flakiness_report()

    if not records:
        console.print("[green]No flaky tests found[/green]")
        return

    table = Table(title="Flaky Tests")
    table.add_column("Test")
    table.add_column("Suite", style="dim")
    table.add_column("Runs", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Flakiness", justify="right", style="yellow")

    for record in records[:limit]:
        table.add_row(
            record.name,
            record.suite,
            str(record.total_runs),
            str(record.passed),
            str(record.failed),
            f"{record.flakiness_rate:.1f}%",
        )

    console.print(table)


@main.command()
@click.option("--limit", "-n", type=int, default=10, help="Number of runs to show")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show archived test run history."""
    from webqa.analytics.store import ResultStore

    config, base_dir = _load_config(ctx.obj.get("config_path"), ctx.obj.get("verbose", False))
    paths = config.get_absolute_paths(base_dir)
    runs = ResultStore(paths["results_dir"]).get_recent_runs(limit)

    if not runs:
        console.print("[yellow]No test runs found[/yellow]")
        return

    table = Table(title="Test Run History")
    table.add_column("ID", style="cyan")
    table.add_column("Date", style="dim")
    table.add_column("Env")
    table.add_column("Branch")
    table.add_column("Commit", style="dim")
    table.add_column("Total", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")

    for run in runs:
        table.add_row(
            run.id,
            run.timestamp[:16].replace("T", " "),
            run.environment,
            run.branch,
            run.commit[:8],
            str(run.summary.total_tests),
            str(run.summary.passed),
            str(run.summary.failed),
            str(run.summary.skipped),
        )

    console.print(table)


@main.command("generate-test")
@click.argument("kind", type=click.Choice(["ui", "api", "mobile", "accessibility", "performance"]))
@click.argument("name")
@click.option("--url", help="Page URL (ui, mobile, accessibility, performance)")
@click.option("--title", default="", help="Expected page title (ui)")
@click.option(
    "--interaction",
    "-i",
    "interactions",
    multiple=True,
    help="UI step as action:selector[=value], e.g. fill:#email=me@example.com",
)
@click.option("--endpoint", help="API endpoint path (api)")
@click.option("--method", default="GET", help="HTTP method (api)")
@click.option("--status", "expected_status", type=int, default=200, help="Expected status code (api)")
@click.option("--device", "devices", multiple=True, help="Device name (mobile, repeatable)")
@click.option("--output-dir", "-o", type=click.Path(), default="tests/generated", help="Directory for the file")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
def generate_test(
    kind: str,
    name: str,
    url: Optional[str],
    title: str,
    interactions: tuple[str, ...],
    endpoint: Optional[str],
    method: str,
    expected_status: int,
    devices: tuple[str, ...],
    output_dir: str,
    force: bool,
) -> None:
    """Scaffold a pytest module of the given KIND named NAME."""
    from webqa import scaffold

    try:
        if kind == "ui":
            content = scaffold.render_ui_test(
                scaffold.UITestConfig(
                    test_name=name,
                    url=url,
                    title=title,
                    interactions=[scaffold.parse_interaction(i) for i in interactions],
                )
            )
        elif kind == "api":
            content = scaffold.render_api_test(
                scaffold.ApiTestConfig(
                    test_name=name, endpoint=endpoint, method=method, expected_status=expected_status
                )
            )
        elif kind == "mobile":
            mobile = {"devices": list(devices)} if devices else {}
            content = scaffold.render_mobile_test(scaffold.MobileTestConfig(test_name=name, url=url, **mobile))
        elif kind == "accessibility":
            content = scaffold.render_accessibility_test(scaffold.AccessibilityTestConfig(test_name=name, url=url))
        else:
            content = scaffold.render_performance_test(scaffold.PerformanceTestConfig(test_name=name, url=url))

        path = scaffold.write_test_file(content, output_dir, scaffold.test_file_name(name, kind), overwrite=force)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid test options:[/red] {escape(str(e))}")
        sys.exit(1)
    except FileExistsError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        console.print("Use --force to overwrite")
        sys.exit(1)

    console.print(f"[green]Generated test file:[/green] {path}")


@click.command()
@click.version_option(version=__version__, prog_name="webqa-analytics")
def analytics_main() -> None:
    """Generate the analytics dashboard and reports from the latest results."""
    config, base_dir = _load_config(None)
    try:
        dashboard_path = _run_report(config, base_dir)
    except Exception as e:
        console.print(f"[red]Report generation failed:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(f"[green]Dashboard available at:[/green] {dashboard_path}")


if __name__ == "__main__":
    main()
