"""Shared HTTP client configuration and API error types."""

import logging
from typing import Any

import httpx

from parish_admin.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """The backend answered with an error status."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NotFoundError(ApiError):
    """The requested resource does not exist (HTTP 404)."""


async def _no_cache(request: httpx.Request) -> None:
    if request.method == "GET":
        request.headers["Cache-Control"] = "no-cache"
        request.headers["Pragma"] = "no-cache"


def create_http_client(
    config: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the AsyncClient every resource client shares.

    Args:
        config: Settings providing base URL and timeout.
        transport: Optional transport override (tests mount the app here).

    Returns:
        Configured client; the caller owns it and must close it.
    """
    config = config or default_settings
    return httpx.AsyncClient(
        base_url=config.api_base_url,
        headers={"Accept": "application/json"},
        timeout=config.request_timeout,
        event_hooks={"request": [_no_cache]},
        transport=transport,
    )


def raise_for_api_error(response: httpx.Response) -> None:
    """Translate an error response into ApiError / NotFoundError."""
    if response.is_success:
        return
    request = response.request
    url = str(request.url)
    message = f"{request.method} {url} failed with {response.status_code}"
    logger.warning(message)
    if response.status_code == 404:
        raise NotFoundError(message, status_code=404, url=url)
    raise ApiError(message, status_code=response.status_code, url=url)


def decode_json(response: httpx.Response) -> Any:
    """Parse a successful response body.

    Raises:
        ApiError: The body is not valid JSON.
    """
    try:
        return response.json()
    except ValueError as exc:
        request = response.request
        url = str(request.url)
        message = f"{request.method} {url} returned a body that is not JSON"
        logger.warning(message)
        raise ApiError(message, status_code=response.status_code, url=url) from exc
