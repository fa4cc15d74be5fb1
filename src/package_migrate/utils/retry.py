"""Bounded exponential-backoff retry for async operations."""

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, TypeVar, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..api.exceptions import AuthenticationError, NotFoundError, ToolError

T = TypeVar('T')

RetryCallback = Callable[[BaseException, int], Union[None, Awaitable[None]]]


class RetryPolicy(BaseModel):
    """How many times and how slowly to retry a failing operation."""

    model_config = ConfigDict(frozen=True)

    retries: int = Field(default=3, description='Retries after the first attempt')
    min_delay: float = Field(default=1.0, description='First backoff delay in seconds')
    max_delay: float = Field(default=10.0, description='Upper bound for any delay')
    multiplier: float = Field(default=2.0, description='Backoff growth factor')

    @field_validator('retries')
    @classmethod
    def validate_retries(cls, v):
        if v < 0:
            raise ValueError('Retries cannot be negative')
        return v

    @field_validator('min_delay', 'max_delay')
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError('Delays cannot be negative')
        return v

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given failed attempt (1-based)."""
        return min(self.max_delay, self.min_delay * self.multiplier ** (attempt - 1))


def is_permanent(error: BaseException) -> bool:
    """Whether an error must not be retried.

    Authentication failures and missing artifacts are permanent, including
    tool failures whose output reports them. Everything else is transient.
    """
    if isinstance(error, (AuthenticationError, NotFoundError)):
        return True
    if isinstance(error, ToolError):
        return error.is_unauthorized or error.is_not_found
    return False


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """Run ``operation`` until it succeeds, fails permanently, or runs out of attempts.

    Args:
        operation: Zero-argument coroutine function
        policy: Retry policy (defaults to 3 retries, 1s..10s, factor 2)
        on_retry: Called with the error and the failed attempt number before
            each backoff sleep. Awaited if it returns an awaitable

    Returns:
        The operation's result

    Raises:
        The permanent error immediately, or the last error once attempts
        are exhausted
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if is_permanent(e):
                raise

            retries_left = policy.max_attempts - attempt
            if retries_left <= 0:
                raise

            logger.info(
                f'Attempt {attempt} failed ({e}). {retries_left} retries left.'
            )
            if on_retry is not None:
                outcome = on_retry(e, attempt)
                if inspect.isawaitable(outcome):
                    await outcome

            await asyncio.sleep(policy.delay_for(attempt))
