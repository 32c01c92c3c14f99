"""Screenshot capture and housekeeping."""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from webqa.logger import TestLogger

logger = logging.getLogger(__name__)


def _slug(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "_", value)


class ScreenshotHelper:
    """Takes page, element and failure screenshots with sequential file names.

    Files are named ``{test}_{timestamp}_{counter:03d}_{name}.png``.
    """

    def __init__(
        self,
        page: Page,
        screenshot_dir: Path | str = "screenshots",
        test_name: str = "unknown_test",
        test_logger: Optional[TestLogger] = None,
    ):
        self.page = page
        self.screenshot_dir = Path(screenshot_dir)
        self.test_name = _slug(test_name)
        self.test_logger = test_logger or TestLogger()
        self._counter = 0

    def build_filename(self, name: Optional[str] = None) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
        counter = f"{self._counter:03d}"
        self._counter += 1
        suffix = f"_{_slug(name)}" if name else ""
        return f"{self.test_name}_{timestamp}_{counter}{suffix}.png"

    def _next_path(self, name: Optional[str]) -> Path:
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        return self.screenshot_dir / self.build_filename(name)

    async def take_screenshot(self, name: Optional[str] = None, full_page: bool = True) -> Path:
        """Capture the whole page."""
        path = self._next_path(name)
        await self.page.screenshot(path=str(path), full_page=full_page, animations="disabled", caret="hide")
        self.test_logger.screenshot(path)
        return path

    async def take_element_screenshot(self, selector: str, name: Optional[str] = None) -> Path:
        """Capture a single element."""
        path = self._next_path(name or "element")
        await self.page.locator(selector).screenshot(path=str(path), animations="disabled")
        self.test_logger.screenshot(path)
        return path

    async def take_failure_screenshot(self, error: Optional[BaseException] = None) -> Optional[Path]:
        """Capture the page after a failure.

        Errors while capturing are logged, not raised.
        """
        try:
            path = await self.take_screenshot("failure")
        except Exception as e:
            logger.warning(f"Could not capture failure screenshot: {e}")
            return None
        if error is not None:
            self.test_logger.error(f"Failure screenshot for {type(error).__name__}: {path}")
        return path

    def list_screenshots(self) -> list[Path]:
        if not self.screenshot_dir.exists():
            return []
        return sorted(self.screenshot_dir.glob("*.png"))

    def cleanup(self, older_than_days: Optional[int] = None) -> int:
        """Delete screenshots, optionally only those older than a number of days."""
        removed = 0
        cutoff = None
        if older_than_days is not None:
            cutoff = datetime.now().timestamp() - older_than_days * 86400
        for path in self.list_screenshots():
            if cutoff is None or path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        logger.info(f"Removed {removed} screenshots from {self.screenshot_dir}")
        return removed
