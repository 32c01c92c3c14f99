"""Page performance measurement."""

from webqa.performance.helper import (
    PageLoadMetrics,
    PageMetrics,
    PerformanceHelper,
    PerformanceThresholdError,
    PerformanceVerdict,
    analyze,
)

__all__ = [
    "PageLoadMetrics",
    "PageMetrics",
    "PerformanceHelper",
    "PerformanceThresholdError",
    "PerformanceVerdict",
    "analyze",
]
