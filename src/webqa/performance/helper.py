"""Page performance measurement through browser timing APIs."""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Page, Request, Response

from webqa.analytics.models import PerformanceMetrics
from webqa.config import PerformanceThresholds
from webqa.logger import TestLogger

logger = logging.getLogger(__name__)

VITALS_SETTLE_MS = 3000

RESOURCE_GROUPS = {"img": "images", "script": "scripts", "css": "stylesheets", "font": "fonts"}

OBSERVER_SCRIPT = """
if (typeof window !== 'undefined' && window.PerformanceObserver) {
    window.performanceMetrics = { lcp: 0, fid: 0, cls: 0, fcp: 0, tti: 0 };
    const observe = (type, callback) => {
        try {
            new PerformanceObserver((list) => list.getEntries().forEach(callback)).observe({ type, buffered: true });
        } catch (e) {}
    };
    observe('largest-contentful-paint', (entry) => { window.performanceMetrics.lcp = entry.startTime; });
    observe('first-input', (entry) => { window.performanceMetrics.fid = entry.processingStart - entry.startTime; });
    observe('layout-shift', (entry) => {
        if (!entry.hadRecentInput) { window.performanceMetrics.cls += entry.value; }
    });
    observe('paint', (entry) => {
        if (entry.name === 'first-contentful-paint') { window.performanceMetrics.fcp = entry.startTime; }
    });
}
"""

NAVIGATION_TIMING_SCRIPT = """
() => {
    const t = performance.timing;
    return {
        navigationStart: t.navigationStart,
        responseStart: t.responseStart,
        responseEnd: t.responseEnd,
        domInteractive: t.domInteractive,
        domComplete: t.domComplete,
        domContentLoaded: t.domContentLoadedEventEnd - t.navigationStart,
        loadEvent: t.loadEventEnd - t.navigationStart
    };
}
"""

WEB_VITALS_SCRIPT = "() => window.performanceMetrics || {}"

MEMORY_SCRIPT = """
() => {
    const m = performance.memory || {};
    return {
        usedJSHeapSize: m.usedJSHeapSize || 0,
        totalJSHeapSize: m.totalJSHeapSize || 0,
        jsHeapSizeLimit: m.jsHeapSizeLimit || 0
    };
}
"""

RESOURCE_TIMING_SCRIPT = """
() => performance.getEntriesByType('resource').map(r => ({
    name: r.name,
    type: r.initiatorType,
    duration: r.duration,
    size: r.transferSize,
    startTime: r.startTime,
    responseEnd: r.responseEnd
}))
"""

NETWORK_SCRIPT = """
() => {
    const resources = performance.getEntriesByType('resource');
    const nav = performance.getEntriesByType('navigation')[0];
    const durations = resources.map(r => r.duration);
    return {
        totalRequests: resources.length,
        totalSize: resources.reduce((sum, r) => sum + (r.transferSize || 0), 0),
        averageResponseTime: durations.length ? durations.reduce((a, b) => a + b, 0) / durations.length : 0,
        slowestRequest: durations.length ? Math.max(...durations) : 0,
        fastestRequest: durations.length ? Math.min(...durations) : 0,
        dnsLookup: nav ? nav.domainLookupEnd - nav.domainLookupStart : 0,
        tcpConnection: nav ? nav.connectEnd - nav.connectStart : 0,
        tlsHandshake: nav && nav.secureConnectionStart > 0 ? nav.connectEnd - nav.secureConnectionStart : 0,
        ttfb: nav ? nav.responseStart - nav.requestStart : 0
    };
}
"""


class PerformanceThresholdError(AssertionError):
    """Raised when measured metrics exceed their budgets."""


@dataclass
class NetworkRequest:
    url: str
    method: str
    start_time: float
    status: int = 0
    size: int = 0
    response_time: float = 0.0


@dataclass
class PageLoadMetrics:
    """Load and Core Web Vitals timings in milliseconds (CLS is unitless)."""

    dom_content_loaded: float = 0.0
    load_event: float = 0.0
    first_contentful_paint: float = 0.0
    largest_contentful_paint: float = 0.0
    first_input_delay: float = 0.0
    cumulative_layout_shift: float = 0.0
    time_to_interactive: float = 0.0


@dataclass
class PageMetrics:
    """Everything collected for the page under test."""

    page_load: PageLoadMetrics = field(default_factory=PageLoadMetrics)
    requests: list[NetworkRequest] = field(default_factory=list)
    resources: dict[str, list[dict]] = field(
        default_factory=lambda: {"images": [], "scripts": [], "stylesheets": [], "fonts": [], "other": []}
    )
    memory: dict[str, float] = field(default_factory=dict)
    timing: dict[str, float] = field(default_factory=dict)
    custom_metrics: dict[str, float] = field(default_factory=dict)

    @property
    def total_requests(self) -> int:
        return len(self.requests)

    @property
    def total_size(self) -> int:
        return sum(r.size for r in self.requests)

    @property
    def average_response_time(self) -> float:
        if not self.requests:
            return 0.0
        return sum(r.response_time for r in self.requests) / len(self.requests)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["network"] = {
            "totalRequests": self.total_requests,
            "totalSize": self.total_size,
            "averageResponseTime": self.average_response_time,
        }
        return data


@dataclass
class PerformanceVerdict:
    """Score out of 100 with the budget breaches behind it."""

    score: int
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues


def analyze(page_load: PageLoadMetrics, thresholds: PerformanceThresholds) -> PerformanceVerdict:
    """Compare load metrics against budgets; each breach costs 25 points."""
    checks = [
        (
            "Page load time",
            page_load.load_event,
            thresholds.load_time,
            "ms",
            "Optimize images and minimize JavaScript",
        ),
        (
            "First Contentful Paint",
            page_load.first_contentful_paint,
            thresholds.first_contentful_paint,
            "ms",
            "Optimize critical rendering path",
        ),
        (
            "Largest Contentful Paint",
            page_load.largest_contentful_paint,
            thresholds.largest_contentful_paint,
            "ms",
            "Optimize largest content element loading",
        ),
        (
            "Cumulative Layout Shift",
            page_load.cumulative_layout_shift,
            thresholds.cumulative_layout_shift,
            "",
            "Reserve space for dynamic content",
        ),
    ]

    issues = []
    recommendations = []
    for label, value, limit, unit, advice in checks:
        if value > limit:
            issues.append(f"{label} ({value}{unit}) exceeds threshold ({limit}{unit})")
            recommendations.append(advice)

    return PerformanceVerdict(
        score=max(0, 100 - len(issues) * 25),
        issues=issues,
        recommendations=recommendations,
    )


def _or_none(value: float) -> Optional[float]:
    return value or None


class PerformanceHelper:
    """Collects timing, network and memory metrics from a Playwright page."""

    def __init__(
        self,
        page: Page,
        thresholds: Optional[PerformanceThresholds] = None,
        test_logger: Optional[TestLogger] = None,
    ):
        self.page = page
        self.thresholds = thresholds or PerformanceThresholds()
        self.test_logger = test_logger or TestLogger()
        self.metrics = PageMetrics()
        self._in_flight: dict[Request, NetworkRequest] = {}
        self._monitoring = False
        self.collected = False

    def _on_request(self, request: Request) -> None:
        entry = NetworkRequest(url=request.url, method=request.method, start_time=time.perf_counter())
        self.metrics.requests.append(entry)
        self._in_flight[request] = entry

    def _on_response(self, response: Response) -> None:
        entry = self._in_flight.pop(response.request, None)
        if entry is None:
            return
        entry.status = response.status
        entry.response_time = (time.perf_counter() - entry.start_time) * 1000
        try:
            entry.size = int(response.headers.get("content-length", 0))
        except ValueError:
            entry.size = 0

    async def start_monitoring(self) -> None:
        """Reset metrics, listen to network traffic and install Web Vitals observers.

        Observers apply to documents loaded after this call.
        """
        self.test_logger.step("Starting performance monitoring")
        self.reset_metrics()
        self.page.on("request", self._on_request)
        self.page.on("response", self._on_response)
        await self.page.add_init_script(OBSERVER_SCRIPT)
        self._monitoring = True

    async def stop_monitoring(self) -> PageMetrics:
        self.test_logger.step("Stopping performance monitoring")
        if self._monitoring:
            self.page.remove_listener("request", self._on_request)
            self.page.remove_listener("response", self._on_response)
            self._monitoring = False
        return await self.collect_metrics()

    async def collect_metrics(self) -> PageMetrics:
        """Read navigation timing, observed vitals, memory and resource timing from the page."""
        nav = await self.page.evaluate(NAVIGATION_TIMING_SCRIPT)
        vitals = await self.page.evaluate(WEB_VITALS_SCRIPT)
        memory = await self.page.evaluate(MEMORY_SCRIPT)
        resources = await self.page.evaluate(RESOURCE_TIMING_SCRIPT)

        self.metrics.page_load = PageLoadMetrics(
            dom_content_loaded=nav.get("domContentLoaded", 0),
            load_event=nav.get("loadEvent", 0),
            first_contentful_paint=vitals.get("fcp", 0),
            largest_contentful_paint=vitals.get("lcp", 0),
            first_input_delay=vitals.get("fid", 0),
            cumulative_layout_shift=vitals.get("cls", 0),
            time_to_interactive=vitals.get("tti", 0),
        )
        self.collected = True

        start = nav.get("navigationStart", 0)
        self.metrics.timing = {
            "navigationStart": start,
            "responseStart": nav.get("responseStart", 0) - start,
            "responseEnd": nav.get("responseEnd", 0) - start,
            "domInteractive": nav.get("domInteractive", 0) - start,
            "domComplete": nav.get("domComplete", 0) - start,
        }
        self.metrics.memory = memory

        grouped: dict[str, list[dict]] = {"images": [], "scripts": [], "stylesheets": [], "fonts": [], "other": []}
        for resource in resources:
            group = RESOURCE_GROUPS.get(resource.pop("type", None), "other")
            grouped[group].append(resource)
        self.metrics.resources = grouped

        logger.info(f"Performance metrics collected for {self.page.url}")
        return self.metrics

    async def measure_page_load(self, url: str) -> float:
        """Navigate to ``url`` and return milliseconds until the network is idle."""
        self.test_logger.step(f"Measuring page load time for: {url}")
        start = time.perf_counter()
        await self.page.goto(url)
        await self.page.wait_for_load_state("networkidle")
        load_time = (time.perf_counter() - start) * 1000
        self.test_logger.performance(f"Page load time for {url}", load_time)
        return load_time

    async def measure_action(self, action: Callable[[], Awaitable[Any]], action_name: str) -> float:
        self.test_logger.step(f"Measuring performance for action: {action_name}")
        start = time.perf_counter()
        await action()
        duration = (time.perf_counter() - start) * 1000
        self.test_logger.performance(f"Action {action_name}", duration)
        return duration

    async def measure_core_web_vitals(self, settle_ms: int = VITALS_SETTLE_MS) -> dict[str, float]:
        """Wait for observers to settle, then read LCP, FID, CLS, FCP and TTI."""
        self.test_logger.step("Measuring Core Web Vitals")
        await self.page.wait_for_timeout(settle_ms)
        vitals = await self.page.evaluate(WEB_VITALS_SCRIPT)
        result = {
            "largestContentfulPaint": vitals.get("lcp", 0),
            "firstInputDelay": vitals.get("fid", 0),
            "cumulativeLayoutShift": vitals.get("cls", 0),
            "firstContentfulPaint": vitals.get("fcp", 0),
            "timeToInteractive": vitals.get("tti", 0),
        }
        self.test_logger.info(
            f"Core Web Vitals: LCP={result['largestContentfulPaint']}ms, "
            f"FID={result['firstInputDelay']}ms, CLS={result['cumulativeLayoutShift']}"
        )
        return result

    async def measure_network_performance(self) -> dict[str, float]:
        self.test_logger.step("Measuring network performance")
        network = await self.page.evaluate(NETWORK_SCRIPT)
        self.test_logger.info(
            f"Network performance: {network['totalRequests']} requests, {network['totalSize']} bytes"
        )
        return network

    def analyze(self) -> PerformanceVerdict:
        return analyze(self.metrics.page_load, self.thresholds)

    def generate_report(self) -> str:
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "url": self.page.url,
            "metrics": self.metrics.to_dict(),
            "thresholds": self.thresholds.model_dump(),
            "analysis": asdict(self.analyze()),
        }
        return json.dumps(report, indent=2)

    def assert_thresholds(self) -> None:
        """Raise if any collected metric exceeds its budget.

        Raises:
            PerformanceThresholdError: Listing every breached budget
        """
        verdict = self.analyze()
        if verdict.issues:
            raise PerformanceThresholdError("Performance thresholds exceeded:\n" + "\n".join(verdict.issues))

    def add_custom_metric(self, name: str, value: float) -> None:
        self.metrics.custom_metrics[name] = value
        logger.info(f"Custom metric added: {name} = {value}")

    def reset_metrics(self) -> None:
        self.metrics = PageMetrics()
        self.collected = False
        self._in_flight.clear()

    def to_metrics(self) -> PerformanceMetrics:
        """Convert to the metrics stored with a test result.

        Observer-based paints left at 0 were never observed and become None.
        """
        load = self.metrics.page_load
        return PerformanceMetrics(
            load_time=_or_none(load.load_event),
            first_contentful_paint=_or_none(load.first_contentful_paint),
            largest_contentful_paint=_or_none(load.largest_contentful_paint),
            cumulative_layout_shift=load.cumulative_layout_shift,
            time_to_interactive=_or_none(load.time_to_interactive),
        )
