"""
Retry Policy

Architectural Intent:
- Wraps an arbitrary async operation in bounded retries
- Exponential backoff capped at max_delay, no jitter: the delay before retry
  n is exactly min(max_delay, base_delay * multiplier ** n)
- The last failure is re-raised unchanged so callers see the original error kind
- Caller programming errors and configuration errors are never retried
"""

from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from notion_mcp_wrapper.domain.errors import (
    ConfigurationError,
    InvalidParametersError,
    UnknownOperationError,
    UnsupportedOperationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_NON_RETRYABLE: tuple[type[BaseException], ...] = (
    ConfigurationError,
    InvalidParametersError,
    UnknownOperationError,
    UnsupportedOperationError,
)


class RetryPolicy:
    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        multiplier: float = 2.0,
        non_retryable: tuple[type[BaseException], ...] = DEFAULT_NON_RETRYABLE,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries cannot be negative, got {max_retries}")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Retry delays cannot be negative")
        if multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {multiplier}")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.non_retryable = non_retryable

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds after the failed attempt with the given 0-based index."""
        return min(self.max_delay, self.base_delay * self.multiplier ** attempt)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation, retrying failures up to max_retries times."""
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return await operation()
            except self.non_retryable:
                raise
            except Exception as e:
                last_error = e
                if attempt < self.max_retries:
                    delay = self.delay_for(attempt)
                    logger.debug(
                        "Attempt %d/%d failed (%s); retrying in %.3fs",
                        attempt + 1,
                        self.max_retries + 1,
                        e,
                        delay,
                    )
                    await asyncio.sleep(delay)

        logger.debug("Giving up after %d attempts: %s", self.max_retries + 1, last_error)
        raise last_error
