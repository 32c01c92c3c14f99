"""HTTP client for API tests."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx

from webqa import __version__
from webqa.logger import TestLogger

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "User-Agent": f"webqa/{__version__}",
}

# JSON type names accepted by validate_schema
_SCHEMA_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
    "null": (type(None),),
}


class ApiError(Exception):
    """Raised when a request cannot be completed or a response fails validation."""

    def __init__(self, message: str, original_error: Optional[Exception] = None, duration_ms: float = 0.0):
        super().__init__(message)
        self.original_error = original_error
        self.duration_ms = duration_ms


@dataclass
class ApiResponse:
    """Response returned by :class:`ApiClient`."""

    status: int
    status_text: str
    headers: dict[str, str] = field(default_factory=dict)
    data: Any = None
    url: str = ""
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "statusText": self.status_text,
            "headers": self.headers,
            "data": self.data,
            "url": self.url,
            "duration": self.duration_ms,
        }


def parse_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON when declared, falling back to text."""
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


class ApiClient:
    """Thin wrapper around httpx with auth helpers and timing."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[dict[str, str]] = None,
        test_logger: Optional[TestLogger] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL prepended to request paths
            timeout: Request timeout in seconds
            headers: Extra default headers
            test_logger: Logger that records each call
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.test_logger = test_logger or TestLogger()

    def set_auth_token(self, token: str) -> None:
        self.headers["Authorization"] = f"Bearer {token}"

    def set_api_key(self, api_key: str, header: str = "X-API-Key") -> None:
        self.headers[header] = api_key

    def add_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def remove_header(self, name: str) -> None:
        self.headers.pop(name, None)

    def clear_auth(self) -> None:
        """Drop bearer and API-key credentials."""
        self.remove_header("Authorization")
        self.remove_header("X-API-Key")

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        data: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> ApiResponse:
        """Send a request and return the shaped response.

        HTTP error statuses are returned, not raised; use :meth:`validate_status`.

        Raises:
            ApiError: On timeouts and transport failures
        """
        url = self._url(path)
        request_headers = {**self.headers, **(headers or {})}
        if files:
            # Let httpx set the multipart boundary
            request_headers.pop("Content-Type", None)

        start = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(
                    method.upper(),
                    url,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    headers=request_headers,
                )
        except httpx.TimeoutException as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(f"{method.upper()} {url} timed out after {self.timeout}s")
            raise ApiError(f"Request timed out: {method.upper()} {url}", e, duration_ms) from e
        except httpx.HTTPError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(f"{method.upper()} {url} failed: {e}")
            raise ApiError(f"Request failed: {method.upper()} {url}: {e}", e, duration_ms) from e

        duration_ms = (time.perf_counter() - start) * 1000
        self.test_logger.api(method, url, response.status_code, duration_ms)

        return ApiResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=parse_body(response),
            url=str(response.url),
            duration_ms=duration_ms,
        )

    def get(self, path: str, params: Optional[dict[str, Any]] = None, **kwargs: Any) -> ApiResponse:
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("PUT", path, json=json, **kwargs)

    def patch(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("PATCH", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("DELETE", path, **kwargs)

    def upload_file(
        self,
        path: str,
        file_path: Path | str,
        field_name: str = "file",
        data: Optional[dict[str, Any]] = None,
    ) -> ApiResponse:
        """POST a file as multipart form data."""
        file_path = Path(file_path)
        with open(file_path, "rb") as f:
            return self.request(
                "POST",
                path,
                data=data,
                files={field_name: (file_path.name, f.read())},
            )

    @staticmethod
    def validate_status(response: ApiResponse, expected: int | list[int]) -> None:
        """Check a response status.

        Raises:
            ApiError: If the status is not one of the expected values
        """
        allowed = [expected] if isinstance(expected, int) else list(expected)
        if response.status not in allowed:
            raise ApiError(
                f"Expected status {allowed}, got {response.status} for {response.url}",
                duration_ms=response.duration_ms,
            )

    @staticmethod
    def validate_schema(data: Any, schema: dict[str, str]) -> list[str]:
        """Check that an object has the given keys with the given JSON types.

        Args:
            data: Decoded JSON object
            schema: Mapping of key to type name (string, number, integer,
                boolean, object, array, null)

        Returns:
            List of problems; empty when the data matches
        """
        if not isinstance(data, dict):
            return [f"Expected an object, got {type(data).__name__}"]

        errors = []
        for key, type_name in schema.items():
            if key not in data:
                errors.append(f"Missing key: {key}")
                continue
            expected = _SCHEMA_TYPES.get(type_name)
            if expected is None:
                errors.append(f"Unknown type '{type_name}' for key: {key}")
                continue
            value = data[key]
            # bool is an int subclass but not a JSON number
            if isinstance(value, bool) and type_name in ("number", "integer"):
                errors.append(f"Key {key} should be {type_name}, got boolean")
            elif not isinstance(value, expected):
                errors.append(f"Key {key} should be {type_name}, got {type(value).__name__}")
        return errors
