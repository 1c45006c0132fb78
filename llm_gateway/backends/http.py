"""Shared HTTP plumbing for calls to upstream AI backends."""

import logging
from typing import Any, Optional, Type

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(RuntimeError):
    """An upstream backend failed, timed out or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    service: str,
    error_cls: Type[UpstreamError] = UpstreamError,
    timeout: Optional[float] = None,
    **kwargs
) -> httpx.Response:
    """Send a request and translate transport failures into ``error_cls``.

    Args:
        client: Shared async HTTP client
        method: HTTP method
        url: Absolute URL of the backend endpoint
        service: Human readable backend name used in error messages
        error_cls: Exception type raised on failure
        timeout: Per-request timeout in seconds (client default when None)

    Returns:
        The successful (2xx) response

    Raises:
        UpstreamError: On connection errors, timeouts and non-2xx responses
    """
    if timeout is not None:
        kwargs["timeout"] = timeout

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.error(f"{service} request to {url} timed out")
        raise error_cls(f"{service} request timed out") from e
    except httpx.ConnectError as e:
        logger.error(f"Cannot connect to {service} at {url}: {e}")
        raise error_cls(f"{service} is not reachable at {url}") from e
    except httpx.HTTPError as e:
        logger.error(f"{service} request to {url} failed: {e}")
        raise error_cls(f"{service} request failed: {e}") from e

    if response.is_error:
        detail = response.text
        logger.error(f"{service} API error {response.status_code}: {detail}")
        raise error_cls(
            f"{service} API error: {response.status_code} {detail}",
            status_code=response.status_code
        )

    return response


def read_json(
    response: httpx.Response,
    *,
    service: str,
    error_cls: Type[UpstreamError] = UpstreamError,
    expected: Optional[type] = None
) -> Any:
    """Decode a successful response body as JSON.

    Args:
        response: Response returned by ``send``
        service: Human readable backend name used in error messages
        error_cls: Exception type raised on failure
        expected: Required type of the decoded document (dict or list)

    Raises:
        UpstreamError: If the body is not JSON or not of the expected type
    """
    try:
        body = response.json()
    except ValueError as e:
        logger.error(f"{service} returned a non-JSON body: {response.text[:200]}")
        raise error_cls(f"{service} returned invalid JSON: {e}") from e

    if expected is not None and not isinstance(body, expected):
        logger.error(f"{service} returned {type(body).__name__}, expected {expected.__name__}")
        raise error_cls(f"{service} returned an unexpected response: {response.text[:200]}")
    return body
