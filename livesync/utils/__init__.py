"""Shared utilities for configuration, logging, and retrying writes"""

from livesync.utils.retry import exponential_backoff_retry

__all__ = ["exponential_backoff_retry"]
