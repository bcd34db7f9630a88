"""
Retry manager for executing blocking operations with a fixed wait.
"""

import time
from collections.abc import Callable
from typing import Any, TypeVar

from interchange.retry.policy import DEFAULT_RETRY_POLICY, RetryPolicy
from interchange.utils.logging import get_logger

logger = get_logger("interchange.retry.manager")

T = TypeVar("T")


class RetryManager:
    """
    Runs a callable under a RetryPolicy.

    Retries block the caller: there is no backgrounding and no overlap
    between attempts.

    Examples:
        >>> manager = RetryManager()
        >>> manager.execute_sync(ftp.nlst, "/out", policy=RetryPolicy(max_attempts=3, wait_seconds=2))
    """

    def __init__(self, sleep: Callable[[float], Any] | None = None):
        """
        Initialize RetryManager.

        Args:
            sleep: Sleep function, replaceable in tests (default: time.sleep)
        """
        self._sleep = sleep or time.sleep

    def execute_sync(
        self,
        func: Callable[..., T],
        *args,
        policy: RetryPolicy | None = None,
        operation: str | None = None,
        **kwargs,
    ) -> T:
        """
        Execute a function with retry logic.

        Args:
            func: Function to execute
            *args: Positional arguments to pass to func
            policy: Retry policy (defaults to DEFAULT_RETRY_POLICY)
            operation: Operation label used in logs
            **kwargs: Keyword arguments to pass to func

        Returns:
            Result of the successful execution

        Raises:
            Exception: The last exception once attempts are exhausted
        """
        policy = policy or DEFAULT_RETRY_POLICY
        label = operation or getattr(func, "__name__", "operation")

        for attempt in range(policy.max_attempts):
            try:
                logger.debug(f"Executing {label} (attempt {attempt + 1}/{policy.max_attempts})")
                result = func(*args, **kwargs)
            except Exception as e:
                if not policy.should_retry(e, attempt):
                    logger.error(f"{label} failed after {attempt + 1} attempts: {e}")
                    raise

                delay = policy.get_delay(attempt)
                logger.warning(f"{label} attempt {attempt + 1} failed: {e}. Retrying in {delay:.2f}s...")
                self._sleep(delay)
                continue

            if attempt > 0:
                logger.info(f"{label} succeeded after {attempt + 1} attempts")
            return result

        # Unreachable: the last failed attempt re-raises above
        raise RuntimeError(f"Retry logic error for {label}")
