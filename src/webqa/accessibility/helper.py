"""Accessibility audits with axe-core.

axe-core is injected into the page by URL and driven through ``page.evaluate``.
Raw axe output is reduced to :class:`AxeResults`, which can be asserted on,
exported as a JSON report, or folded into the :class:`AccessibilityMetrics`
stored with a test result.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from playwright.async_api import Page

from webqa.analytics.models import AccessibilityMetrics
from webqa.config import AccessibilityConfig
from webqa.logger import TestLogger

logger = logging.getLogger(__name__)

IMPACT_LEVELS = ["minor", "moderate", "serious", "critical"]

ARIA_RULES = ["aria-allowed-attr", "aria-required-attr", "aria-valid-attr", "aria-valid-attr-value"]
FORM_LABEL_RULES = ["label", "label-title-only", "form-field-multiple-labels"]
IMAGE_RULES = ["image-alt", "image-redundant-alt", "object-alt"]

RUN_AXE_SCRIPT = """
({ context, options }) => window.axe.run(context || document, options)
"""

FOCUSABLE_SCRIPT = """
() => Array.from(document.querySelectorAll(
    'a[href], button, input, textarea, select, details, [tabindex]:not([tabindex="-1"])'
)).map((el, index) => ({
    tagName: el.tagName.toLowerCase(),
    id: el.id,
    className: String(el.className || ''),
    index,
    tabIndex: el.tabIndex
}))
"""

ACTIVE_ELEMENT_SCRIPT = """
() => {
    const el = document.activeElement;
    return el ? { tagName: el.tagName.toLowerCase(), id: el.id, className: String(el.className || '') } : null;
}
"""

SKIP_LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href^="#"]')).some(link => {
    const text = (link.textContent || '').toLowerCase();
    return text.includes('skip') || text.includes('jump');
})
"""

SCREEN_READER_SCRIPT = """
() => ({
    landmarks: Array.from(document.querySelectorAll(
        'main, nav, header, footer, aside, section[aria-labelledby], section[aria-label], '
        + '[role="banner"], [role="navigation"], [role="main"], [role="contentinfo"], [role="complementary"]'
    )).map(el => ({
        tagName: el.tagName.toLowerCase(),
        role: el.getAttribute('role'),
        label: el.getAttribute('aria-label') || el.getAttribute('aria-labelledby')
    })),
    headings: Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6')).map(el => ({
        level: parseInt(el.tagName.charAt(1)),
        text: (el.textContent || '').trim()
    })),
    links: Array.from(document.querySelectorAll('a[href]')).map(el => ({
        href: el.getAttribute('href'),
        text: (el.textContent || '').trim(),
        hasAriaLabel: !!el.getAttribute('aria-label')
    })),
    forms: Array.from(document.querySelectorAll('form')).map(form => ({
        id: form.id,
        action: form.getAttribute('action'),
        method: form.getAttribute('method'),
        hasLabel: !!form.getAttribute('aria-label') || !!form.getAttribute('aria-labelledby')
    })),
    tables: Array.from(document.querySelectorAll('table')).map(table => ({
        hasCaption: !!table.querySelector('caption'),
        hasHeaders: !!table.querySelector('th'),
        hasScope: !!table.querySelector('th[scope]')
    })),
    images: Array.from(document.querySelectorAll('img')).map(img => ({
        src: img.getAttribute('src'),
        alt: img.getAttribute('alt'),
        hasAlt: img.hasAttribute('alt'),
        isDecorative: img.getAttribute('alt') === ''
    }))
})
"""


class AccessibilityViolationError(AssertionError):
    """Raised when a scan reports violations that a test asserted away."""


@dataclass
class AxeViolation:
    """A failed axe rule and the nodes that failed it."""

    id: str
    impact: Optional[str]
    description: str
    help: str
    help_url: str
    nodes: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_axe(cls, data: dict) -> "AxeViolation":
        return cls(
            id=data.get("id", "unknown"),
            impact=data.get("impact"),
            description=data.get("description", ""),
            help=data.get("help", ""),
            help_url=data.get("helpUrl", ""),
            nodes=[
                {
                    "html": node.get("html", ""),
                    "target": node.get("target", []),
                    "failureSummary": node.get("failureSummary", ""),
                }
                for node in data.get("nodes", [])
            ],
        )


@dataclass
class AxeResults:
    """Outcome of one axe run."""

    url: str
    violations: list[AxeViolation] = field(default_factory=list)
    passes: int = 0
    incomplete: int = 0
    inapplicable: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_axe(cls, data: dict, url: str) -> "AxeResults":
        return cls(
            url=url,
            violations=[AxeViolation.from_axe(v) for v in data.get("violations", [])],
            passes=len(data.get("passes", [])),
            incomplete=len(data.get("incomplete", [])),
            inapplicable=len(data.get("inapplicable", [])),
        )

    def violations_with_impact(self, impact: str) -> list[AxeViolation]:
        return [v for v in self.violations if v.impact == impact]

    def to_metrics(self) -> AccessibilityMetrics:
        """Summarize as stored metrics; score is the percentage of checked rules that passed."""
        checked = self.passes + len(self.violations)
        score = self.passes / checked * 100 if checked else 0.0
        return AccessibilityMetrics(
            violations=len(self.violations),
            warnings=self.incomplete,
            passes=self.passes,
            score=round(score, 2),
        )

    def to_report(self) -> dict:
        return {
            "summary": {
                "url": self.url,
                "timestamp": self.timestamp,
                "violations": len(self.violations),
                "passes": self.passes,
                "incomplete": self.incomplete,
                "inapplicable": self.inapplicable,
            },
            "violations": [
                {
                    "id": v.id,
                    "impact": v.impact,
                    "description": v.description,
                    "help": v.help,
                    "helpUrl": v.help_url,
                    "occurrences": len(v.nodes),
                    "nodes": [
                        {"target": n["target"], "html": n["html"], "summary": n["failureSummary"]}
                        for n in v.nodes
                    ],
                }
                for v in self.violations
            ],
        }


def _summarize(violations: list[AxeViolation]) -> str:
    return "\n".join(f"{v.id}: {v.description}" for v in violations)


class AccessibilityHelper:
    """Runs axe-core scans against a Playwright page."""

    def __init__(
        self,
        page: Page,
        config: Optional[AccessibilityConfig] = None,
        test_logger: Optional[TestLogger] = None,
    ):
        self.page = page
        self.config = config or AccessibilityConfig()
        self.test_logger = test_logger or TestLogger()
        self._injected = False
        self.last_results: Optional[AxeResults] = None

    async def inject_axe(self) -> None:
        """Load axe-core into the page once.

        Raises:
            RuntimeError: If the script loads but ``axe`` is not defined
        """
        if self._injected:
            return

        logger.info(f"Injecting axe-core from {self.config.axe_script_url}")
        await self.page.add_script_tag(url=self.config.axe_script_url)
        if not await self.page.evaluate("() => typeof window.axe !== 'undefined'"):
            raise RuntimeError("axe-core library failed to load")
        self._injected = True

    async def _run(self, context: Optional[dict], options: dict) -> dict:
        await self.inject_axe()
        return await self.page.evaluate(RUN_AXE_SCRIPT, {"context": context, "options": options})

    async def scan_page(
        self,
        include: Optional[list[str]] = None,
        exclude: Optional[list[str]] = None,
        tags: Optional[list[str]] = None,
    ) -> AxeResults:
        """Scan the whole page, or the included selectors, for the configured WCAG tags."""
        self.test_logger.step("Running accessibility scan")
        context = None
        if include or exclude:
            context = {
                "include": [[s] for s in include or []] or None,
                "exclude": [[s] for s in exclude or []],
            }
        options = {"runOnly": {"type": "tag", "values": tags or self.config.tags}}

        raw = await self._run(context, options)
        results = AxeResults.from_axe(raw, self.page.url)
        self.last_results = results
        self.test_logger.info(f"Accessibility scan completed: {len(results.violations)} violations found")
        return results

    async def scan_element(self, selector: str, tags: Optional[list[str]] = None) -> AxeResults:
        return await self.scan_page(include=[selector], tags=tags)

    async def check_rules(self, rule_ids: list[str]) -> list[AxeViolation]:
        """Run only the given axe rules and return their violations."""
        raw = await self._run(None, {"runOnly": {"type": "rule", "values": rule_ids}})
        violations = [AxeViolation.from_axe(v) for v in raw.get("violations", [])]
        logger.info(f"Rule check {', '.join(rule_ids)}: {len(violations)} violations")
        return violations

    async def check_color_contrast(self) -> list[AxeViolation]:
        return await self.check_rules(["color-contrast"])

    async def check_aria_attributes(self) -> list[AxeViolation]:
        return await self.check_rules(ARIA_RULES)

    async def check_heading_structure(self) -> list[AxeViolation]:
        return await self.check_rules(["heading-order"])

    async def check_form_labels(self) -> list[AxeViolation]:
        return await self.check_rules(FORM_LABEL_RULES)

    async def check_image_alt_text(self) -> list[AxeViolation]:
        return await self.check_rules(IMAGE_RULES)

    async def test_keyboard_navigation(self) -> dict[str, Any]:
        """Tab through every focusable element and record the focus order."""
        self.test_logger.step("Testing keyboard navigation")
        focusable = await self.page.evaluate(FOCUSABLE_SCRIPT)

        tab_order = []
        for _ in focusable:
            await self.page.keyboard.press("Tab")
            focused = await self.page.evaluate(ACTIVE_ELEMENT_SCRIPT)
            if focused:
                tab_order.append(focused)

        skip_links = await self.page.evaluate(SKIP_LINKS_SCRIPT)
        self.test_logger.info(f"Keyboard navigation: {len(focusable)} focusable elements found")
        return {"focusableElements": focusable, "tabOrder": tab_order, "skipLinks": bool(skip_links)}

    async def test_screen_reader_compatibility(self) -> dict[str, list[dict]]:
        """Collect landmarks, headings, links, forms, tables and images as a screen reader sees them."""
        self.test_logger.step("Testing screen reader compatibility")
        return await self.page.evaluate(SCREEN_READER_SCRIPT)

    @staticmethod
    def generate_report(results: AxeResults) -> str:
        return json.dumps(results.to_report(), indent=2)

    @staticmethod
    def assert_no_violations(results: AxeResults, impact: Optional[str] = None) -> None:
        """Raise if the scan found violations, optionally only those of one impact level.

        Raises:
            AccessibilityViolationError: If matching violations exist
            ValueError: If ``impact`` is not an axe impact level
        """
        if impact is None:
            violations = results.violations
            label = "Accessibility violations found"
        else:
            if impact not in IMPACT_LEVELS:
                raise ValueError(f"Unknown impact '{impact}'. Expected one of: {IMPACT_LEVELS}")
            violations = results.violations_with_impact(impact)
            label = f"Accessibility violations with {impact} impact found"

        if violations:
            raise AccessibilityViolationError(f"{label}:\n{_summarize(violations)}")
