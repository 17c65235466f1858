"""Backoff for remote embedding requests."""

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()


def _log_retry(state: RetryCallState):
    error = state.outcome.exception() if state.outcome else None
    logger.warning(
        "embedding.retrying",
        attempt=state.attempt_number,
        wait=round(state.next_action.sleep, 2) if state.next_action else None,
        error=str(error),
    )


def api_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exceptions: tuple = (Exception,),
):
    """Retry decorator for embedding API requests.

    Args:
        max_attempts: Attempts including the first call; the last error is re-raised
        min_wait: Lower bound of the exponential wait (seconds)
        max_wait: Upper bound of the exponential wait (seconds)
        exceptions: Only these exception types are retried
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait or 1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=_log_retry,
        reraise=True,
    )
