"""
Redis Connection for the Result Mailbox.

The mailbox is optional. The gateway asks for a client once at startup and
runs without parking and idempotency if Redis does not answer a single PING.
There is no retry loop: an absent Redis costs startup at most the connect
timeout, and every later mailbox call degrades on its own.

Business Rules:
    - Max connections: 10 (REDIS_MAX_CONNECTIONS)
    - Connect timeout: 1s (REDIS_CONNECT_TIMEOUT)
    - Command timeout: 2s (REDIS_TIMEOUT), keeps a slow Redis off the poll deadline
    - A failed startup PING discards the pool, so the next call starts clean
    - Decode responses: True (parked replies are JSON strings)

Examples:
    >>> client = get_redis_client()
    >>> mailbox = ResultMailbox(client)
    >>> close_connections()
"""

import logging
import os
import threading
from typing import Optional

from redis import ConnectionPool, Redis
from redis.exceptions import RedisError

# Configure logger for this module
logger = logging.getLogger(__name__)

# Singleton connection pool (thread-safe)
_redis_pool: Optional[ConnectionPool] = None
_pool_lock = threading.Lock()


def _create_pool(
    host: Optional[str],
    port: Optional[int],
    db: Optional[int],
    max_connections: Optional[int],
) -> ConnectionPool:
    redis_host = host or os.getenv("REDIS_HOST", "localhost")
    redis_port = port or int(os.getenv("REDIS_PORT", "6379"))
    redis_db = db if db is not None else int(os.getenv("REDIS_DB", "0"))
    max_conn = max_connections or int(os.getenv("REDIS_MAX_CONNECTIONS", "10"))
    connect_timeout = float(os.getenv("REDIS_CONNECT_TIMEOUT", "1"))
    command_timeout = float(os.getenv("REDIS_TIMEOUT", "2"))

    logger.info(
        f"Creating Redis connection pool: host={redis_host}, port={redis_port}, "
        f"db={redis_db}, max_connections={max_conn}, "
        f"connect_timeout={connect_timeout}s, timeout={command_timeout}s"
    )
    return ConnectionPool(
        host=redis_host,
        port=redis_port,
        db=redis_db,
        max_connections=max_conn,
        socket_connect_timeout=connect_timeout,
        socket_timeout=command_timeout,
        decode_responses=True,
    )


def get_redis_client(
    host: Optional[str] = None,
    port: Optional[int] = None,
    db: Optional[int] = None,
    max_connections: Optional[int] = None,
) -> Redis:
    """
    Get a Redis client on the shared pool, verified with one PING.

    Args:
        host: Redis hostname (default from env: REDIS_HOST or "localhost")
        port: Redis port (default from env: REDIS_PORT or 6379)
        db: Redis database number (default from env: REDIS_DB or 0)
        max_connections: Max pool size (default from env: REDIS_MAX_CONNECTIONS or 10)

    Returns:
        Redis client instance with connection pool

    Raises:
        RedisError: If Redis does not answer the PING
    """
    global _redis_pool

    with _pool_lock:
        if _redis_pool is None:
            _redis_pool = _create_pool(host, port, db, max_connections)
        pool = _redis_pool

    client = Redis(connection_pool=pool)
    try:
        client.ping()
    except RedisError as e:
        logger.warning(f"Redis did not answer PING: {e}")
        close_connections()
        raise RedisError(f"Failed to connect to Redis: {e}") from e

    return client


def close_connections() -> None:
    """Disconnect and drop the shared pool. Safe to call multiple times."""
    global _redis_pool

    with _pool_lock:
        if _redis_pool is None:
            return

        logger.info("Closing Redis connection pool")
        try:
            _redis_pool.disconnect()
        except Exception as e:
            logger.error(f"Error closing Redis connection pool: {e}")
        finally:
            _redis_pool = None
