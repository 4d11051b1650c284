"""
Utility helpers shared across the labrinth package.
"""

from .retry import (
    RetryConfig,
    retry_with_backoff,
    retry_on_network_failure,
    NETWORK_ERRORS,
    CONNECT_ERRORS,
    IDEMPOTENT_METHODS
)

from .query import query_array, drop_empty

__all__ = [
    'RetryConfig',
    'retry_with_backoff',
    'retry_on_network_failure',
    'NETWORK_ERRORS',
    'CONNECT_ERRORS',
    'IDEMPOTENT_METHODS',
    'query_array',
    'drop_empty'
]
