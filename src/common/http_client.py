"""Shared HTTP helpers used by the repository layer.

Encapsulates request/timeout/retry handling so callers only deal with a
single ``fetch(url, credentials) -> bytes`` operation and a single
``TransportError`` failure type. This module is dependency-light and can be
safely imported from anywhere in the package without cycles.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

USER_AGENT = "mvnresolve"


class TransportError(OSError):
    """Raised when a resource cannot be fetched."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def _auth(credentials) -> Optional[tuple]:
    """Map a Credentials-like object to a requests auth tuple."""
    if credentials is None:
        return None
    user = getattr(credentials, "user", None)
    if not user:
        return None
    return (user, getattr(credentials, "password", None) or "")


def fetch(url: str, credentials=None, *, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> bytes:
    """GET ``url`` and return the response body.

    Retries timeouts, connection errors and 5xx responses up to
    ``Constants.HTTP_RETRY_MAX`` attempts. Any other non-200 status fails
    immediately.

    Raises:
        TransportError: the resource could not be fetched.
    """
    safe_target = safe_url(url)
    request_headers = {"User-Agent": USER_AGENT}
    if headers:
        request_headers.update(headers)

    last_error = "no attempt made"
    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                        attempt=attempt + 1
                    )
                )
            try:
                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=request_headers,
                    auth=_auth(credentials),
                    **kwargs
                )
            except requests.Timeout:
                last_error = f"timed out after {Constants.REQUEST_TIMEOUT} seconds"
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_error = str(exc)
                continue

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=response.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target
                )
            )
        if response.status_code == 200:
            return response.content
        if response.status_code >= 500:
            last_error = f"server error {response.status_code}"
            continue
        raise TransportError(
            f"GET {safe_target} returned {response.status_code}",
            url=url,
            status_code=response.status_code,
        )

    raise TransportError(
        f"GET {safe_target} failed after {Constants.HTTP_RETRY_MAX} attempts: {last_error}",
        url=url,
    )
