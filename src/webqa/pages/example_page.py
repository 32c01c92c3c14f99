"""Page object for the sample storefront used by the bundled tests."""

import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError, Page

from webqa.logger import TestLogger
from webqa.pages.base_page import BasePage
from webqa.pages.screenshots import ScreenshotHelper

logger = logging.getLogger(__name__)


def _testid(name: str) -> str:
    return f'[data-testid="{name}"]'


SELECTORS = {
    "logo": _testid("logo"),
    "navigation_menu": _testid("nav-menu"),
    "user_profile": _testid("user-profile"),
    "search_input": _testid("search-input"),
    "search_button": _testid("search-button"),
    "login_form": _testid("login-form"),
    "username_input": _testid("username-input"),
    "password_input": _testid("password-input"),
    "login_button": _testid("login-button"),
    "logout_button": _testid("logout-button"),
    "main_content": _testid("main-content"),
    "product_list": _testid("product-list"),
    "product_card": _testid("product-card"),
    "product_title": _testid("product-title"),
    "product_price": _testid("product-price"),
    "add_to_cart": _testid("add-to-cart"),
    "cart_icon": _testid("cart-icon"),
    "cart_count": _testid("cart-count"),
    "cart_modal": _testid("cart-modal"),
    "cart_items": _testid("cart-items"),
    "checkout_button": _testid("checkout-button"),
    "footer": _testid("footer"),
    "error_message": _testid("error-message"),
    "success_message": _testid("success-message"),
    "loading_spinner": _testid("loading-spinner"),
    "modal_close": _testid("modal-close"),
    "next_page": _testid("next-page"),
    "prev_page": _testid("prev-page"),
    "page_number": _testid("page-number"),
}

# Elements every storefront page must render
REQUIRED_ELEMENTS = ["logo", "navigation_menu", "main_content", "footer"]


def _parse_int(text: str, default: int) -> int:
    match = re.search(r"-?\d+", text or "")
    return int(match.group()) if match else default


class ExamplePage(BasePage):
    """Storefront page: login, search, cart and pagination flows."""

    def __init__(
        self,
        page: Page,
        base_url: str,
        timeout_ms: int = 30000,
        screenshots: Optional[ScreenshotHelper] = None,
        test_logger: Optional[TestLogger] = None,
    ):
        super().__init__(
            page,
            url=base_url,
            title="Example App",
            timeout_ms=timeout_ms,
            screenshots=screenshots,
            test_logger=test_logger,
        )
        self.selectors = dict(SELECTORS)

    async def login(self, username: str, password: str) -> None:
        self.test_logger.step(f"Logging in as {username}")
        await self.click(self.selectors["login_button"])
        await self.wait_for_element(self.selectors["login_form"])
        await self.type(self.selectors["username_input"], username)
        await self.type(self.selectors["password_input"], password)
        await self.click(self.selectors["login_button"])
        await self.wait_for_element_hidden(self.selectors["login_form"])
        await self.wait_for_element(self.selectors["user_profile"])
        self.test_logger.passed(f"Logged in as {username}")

    async def logout(self) -> None:
        self.test_logger.step("Logging out")
        await self.click(self.selectors["user_profile"])
        await self.click(self.selectors["logout_button"])
        await self.wait_for_element(self.selectors["login_button"])

    async def search_products(self, term: str) -> None:
        self.test_logger.step(f"Searching for {term}")
        await self.clear_and_type(self.selectors["search_input"], term)
        await self.click(self.selectors["search_button"])
        await self.wait_for_element(self.selectors["product_list"])

    async def _product_card(self, index: int):
        await self.wait_for_element(self.selectors["product_list"])
        cards = await self.get_all_elements(self.selectors["product_card"])
        if index < 0 or index >= len(cards):
            raise IndexError(f"Product index {index} out of range; {len(cards)} products found")
        return cards[index]

    async def get_product_info(self, index: int = 0) -> dict[str, str]:
        card = await self._product_card(index)
        title = await card.locator(self.selectors["product_title"]).text_content()
        price = await card.locator(self.selectors["product_price"]).text_content()
        return {"title": (title or "").strip(), "price": (price or "").strip()}

    async def add_product_to_cart(self, index: int = 0) -> None:
        self.test_logger.step(f"Adding product {index} to cart")
        card = await self._product_card(index)
        await self._interact(
            f"add product {index} to cart",
            lambda: card.locator(self.selectors["add_to_cart"]).click(),
        )

    async def get_cart_count(self) -> int:
        try:
            text = await self.get_text(self.selectors["cart_count"])
        except PlaywrightError as e:
            self.test_logger.warning(f"Failed to get cart count: {e}")
            return 0
        return _parse_int(text, 0)

    async def wait_for_cart_count_to_change(
        self,
        previous_count: int,
        attempts: int = 10,
        interval_ms: int = 500,
    ) -> int:
        """Poll the cart badge until it differs from ``previous_count``.

        Raises:
            TimeoutError: If the count is unchanged after all attempts
        """
        for _ in range(attempts):
            await self.wait_for(interval_ms)
            current = await self.get_cart_count()
            if current != previous_count:
                return current
        raise TimeoutError("Cart count did not change within expected time")

    async def open_cart_modal(self) -> None:
        await self.click(self.selectors["cart_icon"])
        await self.wait_for_element(self.selectors["cart_modal"])

    async def close_cart_modal(self) -> None:
        await self.click(self.selectors["modal_close"])
        await self.wait_for_element_hidden(self.selectors["cart_modal"])

    async def proceed_to_checkout(self) -> None:
        if not await self.is_visible(self.selectors["cart_modal"]):
            await self.open_cart_modal()
        await self.click(self.selectors["checkout_button"])

    async def go_to_next_page(self) -> None:
        if not await self.is_enabled(self.selectors["next_page"]):
            raise RuntimeError("Next page button is not enabled")
        await self.click(self.selectors["next_page"])
        await self.wait_for_page_load()

    async def go_to_previous_page(self) -> None:
        if not await self.is_enabled(self.selectors["prev_page"]):
            raise RuntimeError("Previous page button is not enabled")
        await self.click(self.selectors["prev_page"])
        await self.wait_for_page_load()

    async def get_current_page_number(self) -> int:
        try:
            text = await self.get_text(self.selectors["page_number"])
        except PlaywrightError:
            return 1
        return _parse_int(text, 1)

    async def is_error_message_displayed(self) -> bool:
        return await self.is_visible(self.selectors["error_message"])

    async def get_error_message(self) -> str:
        if await self.is_error_message_displayed():
            return await self.get_text(self.selectors["error_message"])
        return ""

    async def is_success_message_displayed(self) -> bool:
        return await self.is_visible(self.selectors["success_message"])

    async def get_success_message(self) -> str:
        if await self.is_success_message_displayed():
            return await self.get_text(self.selectors["success_message"])
        return ""

    async def wait_for_loading_to_complete(self) -> None:
        if await self.is_visible(self.selectors["loading_spinner"]):
            await self.wait_for_element_hidden(self.selectors["loading_spinner"])

    async def get_all_product_titles(self) -> list[str]:
        titles = await self.page.locator(self.selectors["product_title"]).all_text_contents()
        return [t.strip() for t in titles]

    async def get_all_product_prices(self) -> list[str]:
        prices = await self.page.locator(self.selectors["product_price"]).all_text_contents()
        return [p.strip() for p in prices]

    async def verify_page_elements_loaded(self) -> None:
        """Wait for the storefront's structural elements to become visible."""
        for name in REQUIRED_ELEMENTS:
            await self.wait_for_element(self.selectors[name])
        self.test_logger.passed("All page elements loaded")
