"""Retry utilities with exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import TransientError

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 10.0
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (TransientError,)
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
) -> T:
    """Execute async operation with exponential backoff retry."""
    if config is None:
        config = RetryConfig()

    attempts = max(config.max_attempts, 1)
    for attempt in range(attempts):
        try:
            return await operation()
        except config.retryable_exceptions as e:
            if attempt == attempts - 1:
                logger.error(f"{operation_name} failed after {attempts} attempts: {e}")
                raise

            delay = min(config.base_delay * (config.multiplier**attempt), config.max_delay)
            logger.warning(
                f"{operation_name} failed (attempt {attempt + 1}/{attempts}), "
                f"retrying in {delay:.1f}s: {e}"
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")
