"""
Error classification - maps transport and HTTP outcomes onto ErrorKind.

All functions here are pure: they inspect an exception, a status code or a
response body and build a ClassifiedError without doing any I/O.
"""

import asyncio
import json
from typing import Any

import httpx

from storefront.services.errors import ClassifiedError, ErrorKind

MAX_ERROR_BODY = 200


def classify_exception(
    exc: BaseException, endpoint: str | None = None
) -> ClassifiedError:
    """Classify an exception raised while sending a request."""
    if isinstance(exc, ClassifiedError):
        return exc

    if isinstance(exc, asyncio.CancelledError):
        return ClassifiedError(
            ErrorKind.TIMEOUT, "Request cancelled", endpoint=endpoint
        )

    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ClassifiedError(ErrorKind.TIMEOUT, "Request timeout", endpoint=endpoint)

    if isinstance(exc, httpx.DecodingError):
        return ClassifiedError(
            ErrorKind.INVALID_RESPONSE,
            f"Undecodable response: {exc}",
            endpoint=endpoint,
        )

    return ClassifiedError(
        ErrorKind.NETWORK,
        f"Network error - unable to connect to API: {exc}",
        details={"exception": type(exc).__name__},
        endpoint=endpoint,
    )


def classify_status(
    status: int, body: str = "", endpoint: str | None = None
) -> ClassifiedError | None:
    """
    Classify an HTTP status code.

    Returns None for 2xx statuses. Any other status produces an error:
    404 is NOT_FOUND, 408/504 are TIMEOUT and everything else (5xx as well
    as unlisted 4xx codes) is SERVER_ERROR.
    """
    if 200 <= status < 300:
        return None

    message = f"HTTP {status}"
    if body:
        message = f"{message}: {body[:MAX_ERROR_BODY]}"

    if status == 404:
        kind = ErrorKind.NOT_FOUND
    elif status in (408, 504):
        kind = ErrorKind.TIMEOUT
    else:
        kind = ErrorKind.SERVER_ERROR

    return ClassifiedError(kind, message, http_status=status, endpoint=endpoint)


def decode_json(
    content: bytes | str, status: int | None = None, endpoint: str | None = None
) -> Any:
    """Parse a success body. Empty bodies decode to None."""
    if not content or not content.strip():
        return None
    try:
        return json.loads(content)
    except ValueError as e:
        raise ClassifiedError(
            ErrorKind.INVALID_RESPONSE,
            f"Malformed response body: {e}",
            http_status=status,
            details={"body": _preview(content)},
            endpoint=endpoint,
        ) from e


def _preview(content: bytes | str) -> str:
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return content[:MAX_ERROR_BODY]
