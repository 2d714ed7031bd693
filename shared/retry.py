"""
Exponential backoff for one-time setup steps such as opening the store pool.

Request handling never goes through here; a failed query surfaces to the
caller straight away.
"""

import asyncio
import functools
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.logging import get_logger


JITTER_FRACTION = 0.1


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True


class RetryError(Exception):
    """Raised once every attempt has failed."""

    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait after the given (1-based) failed attempt."""
    delay = min(config.base_delay * config.exponential_base ** (attempt - 1), config.max_delay)
    if config.jitter:
        spread = delay * JITTER_FRACTION
        delay += random.uniform(-spread, spread)
    return max(0.0, delay)


def retry_on_exception(exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                       config: Optional[RetryConfig] = None,
                       sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> Callable:
    """Retry an async callable while it raises one of ``exceptions``.

    Anything else propagates on the first occurrence. When the attempts run
    out a :class:`RetryError` chained to the last failure is raised.
    """
    config = config or RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        name = func.__name__
        logger = get_logger(f"retry.{name}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                attempt += 1
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= config.max_attempts:
                        logger.error("Giving up", function=name, attempts=attempt, error=str(e))
                        raise RetryError(
                            f"{name} failed after {attempt} attempts", last_exception=e, attempts=attempt
                        ) from e
                    delay = calculate_delay(attempt, config)
                    logger.warning("Attempt failed, backing off", function=name, attempt=attempt,
                                   delay=round(delay, 3), error=str(e))
                    await sleep(delay)
                    continue

                if attempt > 1:
                    logger.info("Succeeded after retry", function=name, attempt=attempt)
                return result

        return wrapper

    return decorator
