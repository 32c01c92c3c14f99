"""Accessibility audits with axe-core."""

from webqa.accessibility.helper import (
    AccessibilityHelper,
    AccessibilityViolationError,
    AxeResults,
    AxeViolation,
)

__all__ = ["AccessibilityHelper", "AccessibilityViolationError", "AxeResults", "AxeViolation"]
