"""Exponential backoff for the two flaky remote calls: the LLM API and IMAP login."""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable

from jobmail.log import get_logger

log = get_logger(__name__)


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    backoff_factor: float = 2.0,
    jitter: bool = True,
) -> float:
    """Seconds to wait after failed *attempt* (1-based)."""
    delay = min(base_delay * backoff_factor ** (attempt - 1), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: tuple[type[BaseException], ...] = (Exception,),
    give_up: Callable[[BaseException], bool] | None = None,
) -> Callable:
    """Retry on *retryable* exceptions; *give_up* marks ones not worth another try.

    The last exception is re-raised unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    permanent = give_up is not None and give_up(exc)
                    if permanent or attempt >= max_attempts:
                        log.error(
                            "%s failed after %d attempt(s)%s: %s",
                            fn.__qualname__, attempt, " (permanent)" if permanent else "", exc,
                        )
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay, backoff_factor, jitter)
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
