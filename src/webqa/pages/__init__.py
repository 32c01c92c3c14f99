"""Page objects over Playwright pages."""

from webqa.pages.base_page import BasePage, PageVerificationError
from webqa.pages.example_page import ExamplePage
from webqa.pages.screenshots import ScreenshotHelper

__all__ = ["BasePage", "ExamplePage", "PageVerificationError", "ScreenshotHelper"]
