"""Base page object with common interaction helpers."""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

from playwright.async_api import Dialog, Error as PlaywrightError, Locator, Page, Request, Response

from webqa.logger import TestLogger
from webqa.pages.screenshots import ScreenshotHelper

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PageVerificationError(AssertionError):
    """Raised when the page title or URL does not match expectations."""


class BasePage:
    """Wraps a Playwright page with logged, screenshot-on-failure interactions."""

    def __init__(
        self,
        page: Page,
        url: str = "",
        title: str = "",
        timeout_ms: int = 30000,
        screenshots: Optional[ScreenshotHelper] = None,
        test_logger: Optional[TestLogger] = None,
    ):
        """Initialize the page object.

        Args:
            page: Playwright page
            url: URL opened by :meth:`navigate`
            title: Expected document title
            timeout_ms: Default wait timeout
            screenshots: Helper used for failure screenshots
            test_logger: Logger for the current test
        """
        self.page = page
        self.url = url
        self.title = title
        self.timeout_ms = timeout_ms
        self.test_logger = test_logger or TestLogger()
        self.screenshots = screenshots or ScreenshotHelper(page, test_logger=self.test_logger)

    async def _interact(self, description: str, action: Callable[[], Awaitable[T]]) -> T:
        """Run an interaction, capturing a screenshot before re-raising any failure."""
        try:
            result = await action()
        except Exception as e:
            self.test_logger.error(f"Failed to {description}: {e}")
            await self.screenshots.take_failure_screenshot(e)
            raise
        self.test_logger.debug(description)
        return result

    # Navigation

    async def navigate(self, url: Optional[str] = None) -> None:
        target = url or self.url
        await self._interact(f"navigate to {target}", lambda: self.page.goto(target))
        await self.wait_for_page_load()
        self.test_logger.info(f"Navigated to: {target}")

    async def wait_for_page_load(self, state: str = "networkidle") -> None:
        await self.page.wait_for_load_state(state)

    async def get_title(self) -> str:
        return await self.page.title()

    async def verify_title(self, expected: Optional[str] = None) -> None:
        """Raise if the document title differs from the expected title."""
        expected = expected or self.title
        actual = await self.get_title()
        if actual != expected:
            raise PageVerificationError(f"Page title mismatch. Expected: {expected}, Got: {actual}")

    def get_current_url(self) -> str:
        return self.page.url

    def verify_url(self, expected: Optional[str] = None) -> None:
        """Raise unless the current URL contains the expected fragment."""
        expected = expected or self.url
        current = self.get_current_url()
        if expected not in current:
            raise PageVerificationError(f"URL mismatch. Expected: {expected}, Got: {current}")

    async def reload(self) -> None:
        await self.page.reload()
        await self.wait_for_page_load()

    async def go_back(self) -> None:
        await self.page.go_back()

    async def go_forward(self) -> None:
        await self.page.go_forward()

    async def close(self) -> None:
        await self.page.close()

    # Waiting

    async def wait_for_element(self, selector: str, timeout_ms: Optional[int] = None) -> Locator:
        locator = self.page.locator(selector)
        await locator.wait_for(state="visible", timeout=timeout_ms or self.timeout_ms)
        return locator

    async def wait_for_element_hidden(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        await self.page.locator(selector).wait_for(state="hidden", timeout=timeout_ms or self.timeout_ms)

    async def wait_for(self, ms: float) -> None:
        await self.page.wait_for_timeout(ms)

    async def wait_for_response(self, url_pattern: str, timeout_ms: Optional[int] = None) -> Response:
        return await self.page.wait_for_event(
            "response",
            predicate=lambda r: url_pattern in r.url,
            timeout=timeout_ms or self.timeout_ms,
        )

    async def wait_for_request(self, url_pattern: str, timeout_ms: Optional[int] = None) -> Request:
        return await self.page.wait_for_event(
            "request",
            predicate=lambda r: url_pattern in r.url,
            timeout=timeout_ms or self.timeout_ms,
        )

    # Interactions

    async def click(self, selector: str) -> None:
        async def action() -> None:
            locator = await self.wait_for_element(selector)
            await locator.click()

        await self._interact(f"click {selector}", action)

    async def double_click(self, selector: str) -> None:
        async def action() -> None:
            locator = await self.wait_for_element(selector)
            await locator.dblclick()

        await self._interact(f"double click {selector}", action)

    async def right_click(self, selector: str) -> None:
        async def action() -> None:
            locator = await self.wait_for_element(selector)
            await locator.click(button="right")

        await self._interact(f"right click {selector}", action)

    async def type(self, selector: str, text: str) -> None:
        async def action() -> None:
            locator = await self.wait_for_element(selector)
            await locator.fill(text)

        await self._interact(f"type into {selector}", action)

    async def clear_and_type(self, selector: str, text: str) -> None:
        async def action() -> None:
            locator = await self.wait_for_element(selector)
            await locator.clear()
            await locator.fill(text)

        await self._interact(f"clear and type into {selector}", action)

    async def select_option(self, selector: str, value: str) -> list[str]:
        async def action() -> list[str]:
            locator = await self.wait_for_element(selector)
            return await locator.select_option(value)

        return await self._interact(f"select {value} in {selector}", action)

    async def upload_file(self, selector: str, file_path: Path | str) -> None:
        await self._interact(
            f"upload {file_path} to {selector}",
            lambda: self.page.locator(selector).set_input_files(str(file_path)),
        )

    async def check(self, selector: str) -> None:
        await self._interact(f"check {selector}", lambda: self.page.locator(selector).check())

    async def hover(self, selector: str) -> None:
        await self._interact(f"hover {selector}", lambda: self.page.locator(selector).hover())

    async def focus(self, selector: str) -> None:
        await self._interact(f"focus {selector}", lambda: self.page.locator(selector).focus())

    async def press_key(self, key: str, selector: Optional[str] = None) -> None:
        """Press a key or combination such as ``Control+A``, optionally on an element."""
        if selector:
            await self.page.locator(selector).press(key)
        else:
            await self.page.keyboard.press(key)

    async def scroll_to_element(self, selector: str) -> None:
        await self.page.locator(selector).scroll_into_view_if_needed()

    async def scroll_to(self, x: int = 0, y: int = 0) -> None:
        await self.page.evaluate("([x, y]) => window.scrollTo(x, y)", [x, y])

    # Queries

    async def get_text(self, selector: str) -> str:
        locator = await self.wait_for_element(selector)
        return (await locator.text_content()) or ""

    async def get_inner_text(self, selector: str) -> str:
        locator = await self.wait_for_element(selector)
        return await locator.inner_text()

    async def get_attribute(self, selector: str, name: str) -> Optional[str]:
        return await self.page.locator(selector).get_attribute(name)

    async def is_visible(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).is_visible()
        except PlaywrightError:
            return False

    async def is_enabled(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).is_enabled()
        except PlaywrightError:
            return False

    async def is_checked(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).is_checked()
        except PlaywrightError:
            return False

    async def get_all_elements(self, selector: str) -> list[Locator]:
        return await self.page.locator(selector).all()

    async def get_element_count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def get_page_source(self) -> str:
        return await self.page.content()

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    def handle_dialog(self, accept: bool = True, prompt_text: Optional[str] = None) -> None:
        """Accept or dismiss the next dialog the page opens."""

        async def on_dialog(dialog: Dialog) -> None:
            self.test_logger.info(f"Dialog ({dialog.type}): {dialog.message}")
            if accept and prompt_text is not None:
                await dialog.accept(prompt_text)
            elif accept:
                await dialog.accept()
            else:
                await dialog.dismiss()

        self.page.once("dialog", on_dialog)

    async def take_screenshot(self, name: Optional[str] = None) -> Path:
        return await self.screenshots.take_screenshot(name)
