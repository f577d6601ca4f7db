"""Retry decorator for transient record-source faults."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, Tuple, Type, TypeVar, ParamSpec

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def retry(
    *,
    attempts: int = 3,
    delay: float = 0.05,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Re-run a storage call with exponential backoff, re-raising the last error."""

    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            wait = delay
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if attempt == attempts:
                        raise
                    logger.warning(
                        "storage_retry",
                        extra={
                            "operation": func.__name__,
                            "attempt": attempt,
                            "error": str(exc),
                        },
                    )
                    time.sleep(wait)
                    wait *= backoff
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
