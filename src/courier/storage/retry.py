"""Retry utilities for storage operations.

Storage writes back every delivery outcome, so a brief Qdrant hiccup must
not turn a delivered webhook into a missing log row. Transient network and
server errors are retried with exponential backoff; client errors are not.
"""

from __future__ import annotations

import logging

import httpx
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def is_transient(exc: BaseException) -> bool:
    """Network failures and 5xx responses from Qdrant."""
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException, ResponseHandlingException)):
        return True
    if isinstance(exc, UnexpectedResponse):
        return exc.status_code is not None and exc.status_code >= 500
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts with context."""
    logger.warning(
        "Retrying Qdrant operation",
        extra={
            "attempt": retry_state.attempt_number,
            "fn_name": retry_state.fn.__name__ if retry_state.fn else "unknown",
            "exception": str(retry_state.outcome.exception()) if retry_state.outcome else None,
        },
    )


qdrant_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception(is_transient),
    before_sleep=_log_retry,
    reraise=True,
)
