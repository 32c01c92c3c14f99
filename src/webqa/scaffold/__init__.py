"""Test module scaffolding."""

from webqa.scaffold.generator import (
    TEST_KINDS,
    AccessibilityTestConfig,
    ApiTestConfig,
    Interaction,
    MobileTestConfig,
    PerformanceTestConfig,
    UITestConfig,
    parse_interaction,
    render_accessibility_test,
    render_api_test,
    render_mobile_test,
    render_performance_test,
    render_ui_test,
    test_file_name,
    write_test_file,
)

__all__ = [
    "TEST_KINDS",
    "AccessibilityTestConfig",
    "ApiTestConfig",
    "Interaction",
    "MobileTestConfig",
    "PerformanceTestConfig",
    "UITestConfig",
    "parse_interaction",
    "render_accessibility_test",
    "render_api_test",
    "render_mobile_test",
    "render_performance_test",
    "render_ui_test",
    "test_file_name",
    "write_test_file",
]
