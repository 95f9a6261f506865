# glovehub/infra/retry.py
import random
import time
from typing import Callable, Optional, TypeVar

from glovehub.core.logging_config import logger

T = TypeVar("T")


def _sleep_with_jitter(base: float, factor: float, attempt: int, cap: float) -> float:
    # exponential backoff with jitter
    delay = min(base * (factor ** attempt), cap)
    jitter = random.uniform(0, delay * 0.25)
    return delay + jitter


def retry_on(
    fn: Callable[[int], T],
    *,
    attempts: int = 3,
    base: float = 0.05,
    factor: float = 2.0,
    cap: float = 1.0,
    is_retryable: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
) -> T:
    """
    Call fn(attempt) until it succeeds or attempts run out.
    fn receives the zero-based attempt index so callers can vary their input
    (e.g. a time-based document number) between tries.
    Non-retryable exceptions propagate immediately.
    """
    last_exc: Optional[Exception] = None
    for i in range(attempts):
        try:
            return fn(i)
        except Exception as e:
            if is_retryable and not is_retryable(e):
                raise
            last_exc = e
            if i == attempts - 1:
                break
            sleep_s = _sleep_with_jitter(base, factor, i, cap)
            if on_retry:
                on_retry(i + 1, e, sleep_s)
            else:
                logger.warning("retry", attempt=i + 1, sleep_s=round(sleep_s, 3), error=repr(e))
            time.sleep(sleep_s)
    assert last_exc is not None
    raise last_exc
