"""HTTP API client."""

from webqa.api.client import ApiClient, ApiError, ApiResponse

__all__ = ["ApiClient", "ApiError", "ApiResponse"]
