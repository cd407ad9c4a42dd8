"""Core services"""

from .config import AppSettings, get_config
from .logging import setup_logging, get_logger
from .database import Base, Database
from .cache import CacheService
from .rate_limiter import RateLimiter
from .retry import FailureKind, RetryExecutor, RetryPolicy, classify_failure, retry_hint

__all__ = [
    "AppSettings",
    "get_config",
    "setup_logging",
    "get_logger",
    "Base",
    "Database",
    "CacheService",
    "RateLimiter",
    "FailureKind",
    "RetryExecutor",
    "RetryPolicy",
    "classify_failure",
    "retry_hint",
]
