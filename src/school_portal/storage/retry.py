"""
Retry-with-backoff for relational storage operations.

One policy, applied uniformly: ``with_retry`` decorates every public
``PostgresStorage`` coroutine. A ``PortalError`` is retried only when its own
``retry_policy`` allows it (``TransientStorageError``); other exceptions are
matched against ``retry_on_types`` (raw ``ConnectionError``/``TimeoutError``).
Constraint violations and permission failures pass straight through. When
the budget runs out the caller gets ``StorageUnavailableError`` chained to
the last failure.
"""

import asyncio
import random
from functools import wraps
from typing import Any, Awaitable, Callable, Coroutine, List, Optional, TypeVar, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator

from school_portal.app_logger import get_logger
from school_portal.exceptions import PortalError, StorageUnavailableError, TransientStorageError

logger = get_logger("storage.retry")

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Coroutine[Any, Any, Any]])


def _default_retry_types() -> List[type]:
    return [TransientStorageError, ConnectionError, TimeoutError]


class RetryConfig(BaseModel):
    """Configuration for retry behavior."""

    max_attempts: int = Field(
        default=3,
        description="Total attempts, including the first one",
        ge=1,
        le=10,
    )
    base_delay_seconds: float = Field(
        default=1.0,
        description="Delay before the second attempt",
        ge=0.0,
        le=300.0,
    )
    exponential_base: float = Field(
        default=2.0,
        description="Multiplier applied to the delay after each attempt",
        ge=1.0,
        le=10.0,
    )
    jitter_min: float = Field(
        default=0.15,
        description="Lower bound of random jitter, as a fraction of the delay",
        ge=0.0,
        le=1.0,
    )
    jitter_max: float = Field(
        default=0.30,
        description="Upper bound of random jitter, as a fraction of the delay",
        ge=0.0,
        le=1.0,
    )
    retry_on_types: List[type] = Field(
        default_factory=_default_retry_types,
        description="Exception types that trigger another attempt",
    )

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        arbitrary_types_allowed=True,  # For exception types
    )

    @model_validator(mode="after")
    def _check_jitter_bounds(self) -> "RetryConfig":
        if self.jitter_min > self.jitter_max:
            raise ValueError("jitter_min cannot exceed jitter_max")
        return self

    def is_retryable(self, exc: BaseException) -> bool:
        # Portal errors carry their own retry policy
        if isinstance(exc, PortalError):
            return exc.is_retryable()
        return isinstance(exc, tuple(self.retry_on_types))


def compute_delay(
    attempt: int,
    config: RetryConfig,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Seconds to wait after the failed ``attempt`` (0-based).

    ``base * exponential_base**attempt`` plus 15-30% of that as jitter.
    """
    rng = rng or random
    delay = config.base_delay_seconds * (config.exponential_base**attempt)
    return delay + delay * rng.uniform(config.jitter_min, config.jitter_max)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    operation_name: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    last_exception: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not config.is_retryable(e):
                raise
            last_exception = e
            logger.warning(
                "Database operation %s failed (attempt %d/%d): %s",
                operation_name,
                attempt + 1,
                config.max_attempts,
                e,
            )

            # Don't wait after the last attempt
            if attempt == config.max_attempts - 1:
                break

            delay = compute_delay(attempt, config)
            logger.info("Retrying %s in %.2fs", operation_name, delay)
            await sleep(delay)

    logger.error(
        "All %d attempts failed for %s: %s",
        config.max_attempts,
        operation_name,
        last_exception,
    )
    raise StorageUnavailableError(
        operation_name,
        config.max_attempts,
        cause=cast(Exception, last_exception),
    ) from last_exception


def with_retry(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """
    Decorate an async method so each call runs under ``self.retry_config``.

    The instance may also expose ``self._sleep`` to replace ``asyncio.sleep``.
    """

    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            return await run_with_retry(
                lambda: func(self, *args, **kwargs),
                self.retry_config,
                operation_name=name,
                sleep=getattr(self, "_sleep", asyncio.sleep),
            )

        return cast(F, wrapper)

    return decorator


__all__ = ["RetryConfig", "compute_delay", "run_with_retry", "with_retry"]
