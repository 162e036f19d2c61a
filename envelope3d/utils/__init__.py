"""Utility modules."""

from .logging_config import (
    get_logger,
    setup_logging,
    ensure_logging,
    SceneFormatter,
    FileFormatter,
)
from .retry import (
    retry_with_backoff,
    retry_async,
    RetryConfig,
    RetryState,
    RetryableRequest,
    DEFAULT_RETRY_CONFIG,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "ensure_logging",
    "SceneFormatter",
    "FileFormatter",
    # Retry
    "retry_with_backoff",
    "retry_async",
    "RetryConfig",
    "RetryState",
    "RetryableRequest",
    "DEFAULT_RETRY_CONFIG",
]
