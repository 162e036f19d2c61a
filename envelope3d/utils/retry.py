"""
Retry utilities for external calls.

Two flavors:
- retry_with_backoff / RetryableRequest: transparent retries of transient
  HTTP failures (connection errors, 429, 5xx) with exponential backoff.
- RetryState / retry_async: an explicit, bounded attempt counter for protocol
  level retries (one retry after re-authentication, three linear-backoff
  attempts for scene initialization).

Usage:
    from envelope3d.utils.retry import retry_with_backoff, RetryState

    @retry_with_backoff(max_retries=3)
    def fetch_data():
        return requests.get(url)

    state = RetryState.for_scene_init(backoff_s=0.5)
    result = await retry_async(init_scene, state)
"""

import asyncio
import functools
import logging
import random
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Literal, Optional, Tuple, Type, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    backoff: Literal["exponential", "linear"] = "exponential"
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = field(
        default_factory=lambda: (
            ConnectionError,
            TimeoutError,
            requests.ConnectionError,
            requests.Timeout,
        )
    )
    retryable_status_codes: Tuple[int, ...] = (429, 500, 502, 503, 504)


DEFAULT_RETRY_CONFIG = RetryConfig(
    max_retries=3,
    base_delay=1.0,
    max_delay=30.0,
)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay before the next attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    if config.backoff == "linear":
        delay = config.base_delay * (attempt + 1)
    else:
        delay = config.base_delay * (config.exponential_base ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        # Up to 25% random jitter
        delay = delay * (1 + random.uniform(0, 0.25))

    return delay


def should_retry_exception(exc: Exception, config: RetryConfig) -> bool:
    """Check if exception is retryable."""
    response = getattr(exc, "response", None)
    if response is not None and hasattr(response, "status_code"):
        return response.status_code in config.retryable_status_codes

    return isinstance(exc, config.retryable_exceptions)


def retry_with_backoff(
    func: Optional[Callable[..., T]] = None,
    *,
    config: Optional[RetryConfig] = None,
    max_retries: Optional[int] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Callable[..., T]:
    """
    Decorator for retrying a blocking call with backoff.

    Can be used bare (@retry_with_backoff) or with arguments
    (@retry_with_backoff(max_retries=3)).

    Args:
        func: Function to retry
        config: Full retry configuration
        max_retries: Override for max retries (convenience)
        on_retry: Callback called on each retry (exc, attempt)
    """
    if config is None:
        config = RetryConfig()
    if max_retries is not None:
        config = replace(config, max_retries=max_retries)

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(config.max_retries + 1):
                try:
                    return fn(*args, **kwargs)
                except Exception as exc:
                    if not should_retry_exception(exc, config):
                        logger.debug(f"Non-retryable exception: {type(exc).__name__}")
                        raise

                    if attempt >= config.max_retries:
                        logger.error(
                            f"All {config.max_retries} retries failed for {fn.__name__}"
                        )
                        raise

                    delay = calculate_delay(attempt, config)
                    logger.warning(
                        f"Retry {attempt + 1}/{config.max_retries} for {fn.__name__} "
                        f"after {delay:.1f}s (error: {exc})"
                    )
                    if on_retry:
                        on_retry(exc, attempt)
                    time.sleep(delay)

            raise RuntimeError("Retry logic error")

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


class RetryableRequest:
    """
    Context manager for retryable HTTP requests.

    Usage:
        with RetryableRequest(config, timeout=10) as session:
            response = session.get(url, headers=headers)
    """

    def __init__(self, config: Optional[RetryConfig] = None, timeout: float = 30.0):
        self.config = config or DEFAULT_RETRY_CONFIG
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    def __enter__(self) -> "RetryableRequest":
        self._session = requests.Session()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._session:
            self._session.close()
            self._session = None
        return False

    def _make_request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        session = self._session or requests
        kwargs.setdefault("timeout", self.timeout)

        @retry_with_backoff(config=self.config)
        def _request() -> requests.Response:
            response = getattr(session, method)(url, **kwargs)
            if response.status_code in self.config.retryable_status_codes:
                response.raise_for_status()
            return response

        return _request()

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        """GET request with retry."""
        return self._make_request("get", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        """POST request with retry."""
        return self._make_request("post", url, **kwargs)


# =============================================================================
# EXPLICIT RETRY STATE MACHINE
# =============================================================================


@dataclass
class RetryState:
    """
    Bounded attempt counter.

    `max_attempts` counts every attempt including the first, so
    `max_attempts=2` means one retry.
    """

    max_attempts: int
    backoff_s: float = 0.0
    attempts: int = 0

    @classmethod
    def for_auth(cls) -> "RetryState":
        """One retry after re-authentication, no delay."""
        return cls(max_attempts=2)

    @classmethod
    def for_scene_init(cls, max_attempts: int = 3, backoff_s: float = 0.1) -> "RetryState":
        """Scene initialization: a few attempts with linear backoff."""
        return cls(max_attempts=max_attempts, backoff_s=backoff_s)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    @property
    def retries_used(self) -> int:
        return max(self.attempts - 1, 0)

    def begin_attempt(self) -> int:
        """Record a new attempt and return its 1-based number."""
        if self.exhausted:
            raise RuntimeError(
                f"Retry budget exhausted after {self.attempts} attempts"
            )
        self.attempts += 1
        return self.attempts

    def next_delay(self) -> float:
        """Linear backoff: the n-th retry waits n * backoff_s."""
        return self.backoff_s * self.attempts


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    state: RetryState,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    label: str = "operation",
) -> T:
    """
    Run an async operation under a RetryState.

    Re-raises the last error once the budget is spent.
    """
    while True:
        attempt = state.begin_attempt()
        try:
            return await operation()
        except retry_on as exc:
            if state.exhausted:
                logger.error(f"{label} failed after {attempt} attempts: {exc}")
                raise
            delay = state.next_delay()
            logger.warning(
                f"{label} attempt {attempt}/{state.max_attempts} failed, "
                f"retrying in {delay:.2f}s (error: {exc})"
            )
            await asyncio.sleep(delay)
