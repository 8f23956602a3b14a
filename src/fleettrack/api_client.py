"""JSON:API transit service client."""

import asyncio
import functools
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-v3.mbta.com"
DEFAULT_TIMEOUT = 10.0
JSONAPI_MEDIA_TYPE = "application/vnd.api+json"


class ServiceError(Exception):
    """Raised when the transit service cannot be reached or rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def extract_error_detail(payload: Any) -> Optional[str]:
    """
    Pull the first human-readable error out of a JSON:API error document.

    Args:
        payload: Decoded response body, e.g. {"errors": [{"detail": "..."}]}.

    Returns:
        errors[0].detail, or None if the payload does not carry one.
    """
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if not isinstance(errors, list) or not errors:
        return None
    first = errors[0]
    if not isinstance(first, dict):
        return None
    detail = first.get("detail")
    return str(detail) if detail else None


def page_params(limit: int, offset: int) -> Dict[str, int]:
    """Build JSON:API offset pagination parameters."""
    return {"page[limit]": limit, "page[offset]": offset}


def join_filter(values: Iterable[str]) -> str:
    """Join filter values the way the service expects (comma separated)."""
    return ",".join(values)


class TransitAPIClient:
    """Fetches JSON:API collections from the transit service."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Service root, e.g. "https://api-v3.mbta.com".
            api_key: Optional key sent as the x-api-key header.
            timeout: Per-request timeout in seconds.
            session: Optional pre-built requests.Session (mainly for tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": JSONAPI_MEDIA_TYPE})
        if api_key:
            self._session.headers["x-api-key"] = api_key

    @classmethod
    def from_env(cls) -> "TransitAPIClient":
        """Build a client from FLEETTRACK_BASE_URL, FLEETTRACK_API_KEY and FLEETTRACK_TIMEOUT."""
        base_url = (os.getenv("FLEETTRACK_BASE_URL") or "").strip() or DEFAULT_BASE_URL
        api_key = (os.getenv("FLEETTRACK_API_KEY") or "").strip() or None
        raw_timeout = (os.getenv("FLEETTRACK_TIMEOUT") or "").strip()
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise ValueError(f"FLEETTRACK_TIMEOUT must be a number, got {raw_timeout!r}") from None
        return cls(base_url=base_url, api_key=api_key, timeout=timeout)

    def get_collection(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Fetch one page of a collection (blocking).

        Args:
            endpoint: Path such as "/vehicles".
            params: Query parameters (page[limit], filter[route], ...).

        Returns:
            Decoded document with "data" and "included" always present as lists.

        Raises:
            ServiceError: On transport failure, non-2xx status or undecodable body.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"GET {url} {params}")
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise ServiceError(f"Request to {endpoint} failed: {e}") from e

        if not response.ok:
            try:
                detail = extract_error_detail(response.json())
            except ValueError:
                detail = None
            raise ServiceError(
                f"{endpoint} returned HTTP {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            document = response.json()
        except ValueError as e:
            raise ServiceError(f"{endpoint} returned a body that is not JSON") from e
        if not isinstance(document, dict):
            raise ServiceError(f"{endpoint} returned an unexpected document")

        return {
            "data": _as_list(document.get("data")),
            "included": _as_list(document.get("included")),
        }

    async def fetch(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Async wrapper around get_collection; runs the request in the loop's executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.get_collection, endpoint, params)
        )

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._session.close()


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
