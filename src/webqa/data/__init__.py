"""Test data generation."""

from webqa.data.generator import DataValidationError, TestDataGenerator

__all__ = ["DataValidationError", "TestDataGenerator"]
