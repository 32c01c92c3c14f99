"""Logging setup and test-scoped log helpers."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler

from webqa.config import LoggingConfig

FILE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

_HANDLER_MARKER = "_webqa_handler"


def log_file_path(log_dir: Path | str, when: Optional[datetime] = None) -> Path:
    """Return the date-stamped log file for a given day."""
    when = when or datetime.now()
    return Path(log_dir) / f"test-{when:%Y-%m-%d}.log"


def setup_logging(config: LoggingConfig, console: Optional[Console] = None) -> Path:
    """Configure the ``webqa`` logger hierarchy once per process.

    Calling this again replaces the handlers installed by a previous call, so
    tests can point logging at a temporary directory.

    Args:
        config: Logging configuration
        console: Optional rich console for the console handler

    Returns:
        Path of the log file being written
    """
    root = logging.getLogger("webqa")
    root.setLevel(config.level)
    root.propagate = False

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    log_path = log_file_path(config.log_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    setattr(file_handler, _HANDLER_MARKER, True)
    root.addHandler(file_handler)

    if config.console:
        rich_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(rich_handler, _HANDLER_MARKER, True)
        root.addHandler(rich_handler)

    return log_path


class TestLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with the running test's title."""

    __test__ = False

    def __init__(self, name: str = "webqa.test", test_title: Optional[str] = None):
        super().__init__(logging.getLogger(name), {"test_title": test_title})
        self._started_at: Optional[datetime] = None

    @property
    def test_title(self) -> Optional[str]:
        return self.extra.get("test_title")

    def process(self, msg: Any, kwargs: dict) -> tuple[Any, dict]:
        title = self.extra.get("test_title")
        if title:
            msg = f"[{title}] {msg}"
        return msg, kwargs

    def set_test(self, title: Optional[str]) -> None:
        self.extra = {"test_title": title}

    def step(self, message: str) -> None:
        self.info(f"STEP: {message}")

    def passed(self, message: str) -> None:
        self.info(f"PASS: {message}")

    def failed(self, message: str) -> None:
        self.error(f"FAIL: {message}")

    def start_test(self, title: str) -> None:
        self.set_test(title)
        self._started_at = datetime.now()
        self.info(f"Starting test: {title}")

    def end_test(self, status: str) -> float:
        """Log the end of the current test and return its duration in ms."""
        duration_ms = 0.0
        if self._started_at is not None:
            duration_ms = (datetime.now() - self._started_at).total_seconds() * 1000
        self.info(f"Test finished with status {status} in {duration_ms:.0f}ms")
        self._started_at = None
        return duration_ms

    def performance(self, message: str, duration_ms: float) -> None:
        self.info(f"PERF: {message} took {duration_ms:.0f}ms")

    def api(self, method: str, url: str, status: int, duration_ms: float) -> None:
        level = logging.INFO if status < 400 else logging.WARNING
        self.log(level, f"API: {method.upper()} {url} -> {status} ({duration_ms:.0f}ms)")

    def screenshot(self, path: Path | str) -> None:
        self.info(f"Screenshot saved: {path}")

    def video(self, path: Path | str) -> None:
        self.info(f"Video saved: {path}")


def clear_logs(log_dir: Path | str) -> int:
    """Delete all log files in a directory.

    Returns:
        Number of files removed
    """
    log_dir = Path(log_dir)
    if not log_dir.exists():
        return 0

    removed = 0
    for path in log_dir.glob("*.log"):
        path.unlink()
        removed += 1
    return removed


def archive_logs(log_dir: Path | str) -> Optional[Path]:
    """Move current log files into ``archive/<timestamp>/``.

    Returns:
        The archive directory, or None if there was nothing to archive
    """
    log_dir = Path(log_dir)
    logs = sorted(log_dir.glob("*.log")) if log_dir.exists() else []
    if not logs:
        return None

    archive_dir = log_dir / "archive" / datetime.now().strftime("%Y%m%d-%H%M%S")
    archive_dir.mkdir(parents=True, exist_ok=True)
    for path in logs:
        shutil.move(str(path), archive_dir / path.name)
    return archive_dir
