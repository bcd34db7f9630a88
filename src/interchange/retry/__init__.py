"""
Retry framework for transient remote failures.
"""

from interchange.retry.manager import RetryManager
from interchange.retry.policy import DEFAULT_RETRY_POLICY, NO_RETRY_POLICY, RetryPolicy

__all__ = [
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "RetryManager",
]
