"""Shared utilities for configuration, logging, and retries"""

from statesync.utils.config_loader import ConfigLoader, ConfigurationError
from statesync.utils.logging_config import configure_logging, configure_logging_from_config
from statesync.utils.retry import exponential_backoff_retry

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "configure_logging",
    "configure_logging_from_config",
    "exponential_backoff_retry",
]
