"""
Retry policy configuration for remote transfer operations.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Type


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration for retrying a failed remote operation.

    The wait between attempts is fixed: every retry sleeps ``wait_seconds``.
    Swapping in a growing delay only means overriding ``get_delay``; callers
    never compute delays themselves.

    Examples:
        >>> policy = RetryPolicy(max_attempts=3, wait_seconds=5.0)
        >>> policy.get_delay(attempt=0)
        5.0

        >>> # Only retry network-level failures
        >>> policy = RetryPolicy(max_attempts=5, retryable_exceptions=(OSError,))
    """

    # Total number of executions, including the first one
    max_attempts: int = 3

    # Fixed delay between attempts (seconds)
    wait_seconds: float = 5.0

    # Only retry these exception types (None = retry all exceptions)
    retryable_exceptions: Optional[Tuple[Type[BaseException], ...]] = None

    def __post_init__(self):
        """Validate configuration."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.wait_seconds < 0:
            raise ValueError("wait_seconds must be >= 0")

    def should_retry(self, exception: BaseException, attempt: int) -> bool:
        """
        Determine if we should retry after this exception.

        Args:
            exception: The exception that occurred
            attempt: Attempt that just failed (0-indexed)

        Returns:
            True if another attempt is allowed, False otherwise
        """
        if attempt + 1 >= self.max_attempts:
            return False
        if self.retryable_exceptions is not None:
            return isinstance(exception, self.retryable_exceptions)
        return True

    def get_delay(self, attempt: int) -> float:
        """Delay in seconds before the attempt following ``attempt``."""
        return self.wait_seconds


DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=3, wait_seconds=5.0)

NO_RETRY_POLICY = RetryPolicy(max_attempts=1, wait_seconds=0.0)
