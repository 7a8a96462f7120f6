"""
Redis Infrastructure Module

Redis-based storage for parked analysis results and idempotency keys.

Exports:
    - ResultMailbox: Parked replies and idempotency reservations
    - get_redis_client: Get Redis client with connection pooling
    - close_connections: Close all Redis connections
"""

from .connection import close_connections, get_redis_client
from .result_mailbox import ResultMailbox

__all__ = [
    "ResultMailbox",
    "get_redis_client",
    "close_connections",
]
