"""
WebQA - Browser test-automation toolkit built on Playwright.

This package provides tools to:
- Drive pages through reusable page objects and pytest fixtures
- Emulate mobile devices and probe accessibility and performance
- Call HTTP APIs and generate realistic test data
- Archive run results and render trend, flakiness and performance dashboards
"""

__version__ = "0.1.0"
__author__ = "WebQA Team"
