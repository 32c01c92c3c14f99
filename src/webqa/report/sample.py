"""Demonstration results used when no test run has produced a results file."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def _started(now: datetime, seconds_ago: int) -> str:
    return (now - timedelta(seconds=seconds_ago)).isoformat().replace("+00:00", "Z")


def _test(title: str, status: str, duration: int, started: str, error: Optional[str] = None) -> dict:
    result: dict = {"status": status, "duration": duration, "startTime": started}
    if error:
        result["error"] = {"message": error}
    return {"title": title, "results": [result]}


def build_sample_results(now: Optional[datetime] = None) -> dict:
    """Return a small results document in the Playwright JSON reporter shape."""
    now = now or datetime.now(timezone.utc)
    return {
        "stats": {"duration": 45000, "expected": 45, "passed": 38, "failed": 7, "flaky": 2, "skipped": 0},
        "suites": [
            {
                "title": "UI Tests",
                "specs": [
                    {
                        "tests": [
                            _test("should display page elements correctly", "passed", 2100, _started(now, 3600)),
                            _test(
                                "should handle user interactions",
                                "failed",
                                1800,
                                _started(now, 3500),
                                error='Element not found: button[data-test="submit"]',
                            ),
                        ]
                    }
                ],
            },
            {
                "title": "Mobile Tests",
                "specs": [
                    {
                        "tests": [
                            _test("should work on iPhone 13", "passed", 3200, _started(now, 3000)),
                            _test("should handle touch interactions", "passed", 2800, _started(now, 2800)),
                        ]
                    }
                ],
            },
        ],
    }
