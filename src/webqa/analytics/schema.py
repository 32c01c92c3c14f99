"""Schema for the JSON document written by Playwright's JSON reporter.

Also validates the run documents archived by ``ResultStore``. Only the fields
the analytics pipeline reads are modelled; everything else is ignored.
"""

import math
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Measurements share one shape between recorded results and archived runs.


class _Stored(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        allow_inf_nan=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class StoredPerformance(_Stored):
    load_time: Optional[float] = None
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    time_to_interactive: Optional[float] = None

    @field_validator("*", mode="before")
    @classmethod
    def drop_non_numeric(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            return None
        return v


class StoredAccessibility(_Stored):
    violations: int = Field(default=0, ge=0)
    warnings: int = Field(default=0, ge=0)
    passes: int = Field(default=0, ge=0)
    score: float = 0.0


class RawError(_Lenient):
    message: Optional[str] = None


class RawAttachment(_Lenient):
    name: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="contentType")
    path: Optional[str] = None


class RawResult(_Lenient):
    status: Optional[str] = None
    duration: float = 0
    start_time: Optional[str] = Field(default=None, alias="startTime")
    error: Optional[RawError] = None
    attachments: list[RawAttachment] = Field(default_factory=list)
    performance: Optional[StoredPerformance] = None
    accessibility: Optional[StoredAccessibility] = None

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        if v is None or isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0
        return max(v, 0)

    @field_validator("performance", "accessibility", mode="wrap")
    @classmethod
    def drop_invalid_measurements(cls, v, handler):
        try:
            return handler(v)
        except ValidationError:
            return None


class RawTest(_Lenient):
    title: Optional[str] = None
    project_name: Optional[str] = Field(default=None, alias="projectName")
    results: list[RawResult] = Field(default_factory=list)


class RawSpec(_Lenient):
    title: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    tests: list[RawTest] = Field(default_factory=list)


class RawSuite(_Lenient):
    title: Optional[str] = None
    specs: list[RawSpec] = Field(default_factory=list)
    suites: list["RawSuite"] = Field(default_factory=list)


class RawReport(_Lenient):
    suites: list[RawSuite] = Field(default_factory=list)


# Archived runs written by ResultStore. Values of the wrong type reject the
# whole document; measurements that are missing or not finite become None.


class StoredResult(_Stored):
    id: str
    name: str
    status: Literal["passed", "failed", "skipped"] = "skipped"
    duration: float = 0
    start_time: str = ""
    end_time: str = ""
    browser: str = "unknown"
    project: str = "unknown"
    suite: str = ""
    tags: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    screenshot: Optional[str] = None
    video: Optional[str] = None
    performance: Optional[StoredPerformance] = None
    accessibility: Optional[StoredAccessibility] = None


class StoredSuite(_Stored):
    name: str = ""
    tests: list[StoredResult] = Field(default_factory=list)


class StoredSummary(_Stored):
    total_tests: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    duration: float = 0.0
    pass_rate: float = 0.0
    average_test_duration: float = 0.0
    flakiness: float = 0.0
    performance_score: float = 0.0
    accessibility_score: float = 0.0


class StoredRun(_Stored):
    id: str
    timestamp: str
    environment: str = "development"
    branch: str = "main"
    commit: str = "unknown"
    suites: list[StoredSuite] = Field(default_factory=list)
    summary: StoredSummary
