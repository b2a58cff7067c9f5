"""Shared HTTP helpers used by the registry feed client.

Encapsulates request/timeout error handling and retries so callers get a
single exception type (``RegistryUnavailable``) for every transport-level
failure. Batches catch it per module, so nothing here exits the process.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import RegistryUnavailable

logger = logging.getLogger(__name__)


def safe_get(
    url: str,
    *,
    context: str,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with timeout, bounded retries and DEBUG traces.

    Server errors (5xx) and transport errors are retried with a linear
    backoff; any other status is returned to the caller as-is.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g. the module name).
        timeout: Seconds per attempt, defaults to Constants.REQUEST_TIMEOUT.
        retries: Maximum attempts, defaults to Constants.HTTP_RETRY_MAX.
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object.

    Raises:
        RegistryUnavailable: When every attempt failed.
    """
    safe_target = safe_url(url)
    timeout = Constants.REQUEST_TIMEOUT if timeout is None else timeout
    attempts = max(1, Constants.HTTP_RETRY_MAX if retries is None else retries)
    last_error = "no attempt made"

    for attempt in range(attempts):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * attempt)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                        context=context,
                        attempt=attempt + 1,
                    ),
                )
            try:
                res = requests.get(url, timeout=timeout, **kwargs)
            except requests.Timeout:
                last_error = f"timed out after {timeout} seconds"
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
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        context=context,
                    ),
                )
            if res.status_code >= 500:
                last_error = f"server returned HTTP {res.status_code}"
                continue
            return res

    logger.debug("%s request to %s failed: %s", context, safe_target, last_error)
    raise RegistryUnavailable(f"{context}: {safe_target} unavailable ({last_error})")
