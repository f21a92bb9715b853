from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger


T = TypeVar("T")

RetryHook = Callable[[int, int, BaseException], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with a deterministic exponential backoff.

    Attempt n (1-based) that fails and is not the last waits
    base_delay_ms * 2 ** (n - 1) before the next call: 5s, 10s, 20s, ...
    for the defaults. No jitter.
    """

    max_attempts: int = 3
    base_delay_ms: int = 5000
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def delay_ms(self, attempt: int) -> int:
        return self.base_delay_ms * 2 ** (attempt - 1)

    def call(
        self,
        operation: Callable[[], T],
        log: Logger = logger,
        on_retry: Optional[RetryHook] = None,
    ) -> T:
        """
        Run operation until it succeeds or attempts run out.

        The last exception is re-raised as-is (same type, same object).
        One "retry_scheduled" warning is logged per failed-but-retried attempt.
        """
        attempts = max(1, int(self.max_attempts))

        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except Exception as exc:
                if attempt == attempts:
                    raise

                wait_ms = self.delay_ms(attempt)
                log.warning(
                    "retry_scheduled",
                    attempt=attempt,
                    wait_ms=wait_ms,
                    error=str(exc),
                )
                if on_retry:
                    on_retry(attempt, wait_ms, exc)

                self.sleep(wait_ms / 1000.0)

        # Unreachable: the loop either returns or raises.
        raise AssertionError("retry loop exited without a result")


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    base_delay_ms: int = 5000,
    *,
    sleep: Callable[[float], None] = time.sleep,
    log: Logger = logger,
    on_retry: Optional[RetryHook] = None,
) -> T:
    policy = RetryPolicy(max_attempts=max_attempts, base_delay_ms=base_delay_ms, sleep=sleep)
    return policy.call(operation, log=log, on_retry=on_retry)
