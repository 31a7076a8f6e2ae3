"""Bounded retry with exponential backoff."""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from ..errors import ConfigurationError, RetryExhausted


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between."""

    max_attempts: int = 3
    base_delay_seconds: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay_seconds < 0:
            raise ValueError(f"base_delay_seconds must be >= 0, got {self.base_delay_seconds}")

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given failed attempt (1-based)."""
        return self.base_delay_seconds * (2 ** (attempt - 1))


def execute(
    operation: Callable[[], T],
    label: str,
    policy: RetryPolicy,
    on_attempt: Optional[Callable[[int], None]] = None,
    fatal: Tuple[Type[BaseException], ...] = (ConfigurationError,),
) -> T:
    """Run an operation until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument callable to run
        label: Name used in log messages and in the final error
        policy: Retry policy (attempt count and base delay)
        on_attempt: Optional callback notified with the 1-based attempt number
        fatal: Exception types that propagate immediately without retry

    Returns:
        Whatever the operation returns on its first successful attempt

    Raises:
        RetryExhausted: If every attempt failed (chained to the last error)
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, policy.max_attempts + 1):
        logger.info(f"[{label}] Attempt {attempt}/{policy.max_attempts}")
        if on_attempt:
            on_attempt(attempt)

        try:
            return operation()
        except fatal:
            raise
        except Exception as e:
            last_error = e
            logger.warning(f"[{label}] Attempt {attempt} failed: {e}")

            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.info(f"[{label}] Retrying in {delay:.1f}s...")
                time.sleep(delay)

    logger.error(f"[{label}] Giving up after {policy.max_attempts} attempts")
    raise RetryExhausted(label, policy.max_attempts, last_error) from last_error
