from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from storefront_proxy.domain.errors import TransportError


def _is_transient(exc: BaseException) -> bool:
    """Network failures and 5xx answers are worth another attempt; 4xx are not."""
    if not isinstance(exc, TransportError):
        return False
    return exc.status is None or exc.status >= 500


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(f"[Retry] attempt {state.attempt_number} failed ({exc}), retrying")


def read_retry(attempts: int = 3, wait: float = 0.3):
    """Retry policy for idempotent upstream reads (never used for mutations)."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=wait, min=wait, max=3),
        retry=retry_if_exception(_is_transient),
        before_sleep=_log_retry,
    )
