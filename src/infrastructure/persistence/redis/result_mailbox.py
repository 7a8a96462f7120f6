"""
Redis Result Mailbox

Holds worker replies that were pulled off a shared response queue by a
request they do not belong to, and idempotency-key reservations.

Responsibility:
    - Park a reply under its correlation id until its owner claims it
    - Claim (get + delete, atomically) a parked reply
    - Reserve an idempotency key -> job id mapping (first writer wins)

Architecture Notes:
    - Infrastructure Layer (external dependency on Redis)
    - Synchronous redis-py client; async callers use asyncio.to_thread
    - Graceful degradation: Redis failures are logged, never raised

Storage Format:
    - "result:{job_id}" -> JSON reply body (TTL: MAILBOX_RESULT_TTL, default 1h)
    - "idempotency:{key}" -> job id string (TTL: IDEMPOTENCY_TTL_SECONDS, default 1h)

Examples:
    >>> mailbox = ResultMailbox(get_redis_client())
    >>> mailbox.park("0b7c...", {"hairType": "3A"})
    True
    >>> mailbox.claim("0b7c...")
    {'hairType': '3A'}
    >>> mailbox.claim("0b7c...") is None
    True
"""

import json
import logging
import os
from typing import Any, Optional

from redis import Redis
from redis.exceptions import RedisError

# Configure logger for this module
logger = logging.getLogger(__name__)


class ResultMailbox:
    """
    Parked replies and idempotency reservations in Redis.

    Attributes:
        redis: Redis client (decode_responses=True)
        result_ttl: Seconds a parked reply is kept
        idempotency_ttl: Seconds an idempotency key stays reserved
    """

    def __init__(
        self,
        redis: Redis,
        result_ttl: Optional[int] = None,
        idempotency_ttl: Optional[int] = None,
    ) -> None:
        """
        Initialize mailbox.

        Args:
            redis: Redis client
            result_ttl: Parked reply TTL (default from env: MAILBOX_RESULT_TTL or 3600)
            idempotency_ttl: Key TTL (default from env: IDEMPOTENCY_TTL_SECONDS or 3600)
        """
        self.redis = redis
        self.result_ttl: int = result_ttl or int(os.getenv("MAILBOX_RESULT_TTL", "3600"))
        self.idempotency_ttl: int = idempotency_ttl or int(
            os.getenv("IDEMPOTENCY_TTL_SECONDS", "3600")
        )

    def _get_result_key(self, job_id: str) -> str:
        return f"result:{job_id}"

    def _get_idempotency_key(self, key: str) -> str:
        return f"idempotency:{key}"

    def park(self, job_id: str, result: Any) -> bool:
        """
        Store a reply for its owning request.

        Args:
            job_id: Correlation id carried by the reply
            result: Decoded reply body (JSON-serializable)

        Returns:
            True if stored, False if Redis failed
        """
        try:
            self.redis.setex(self._get_result_key(job_id), self.result_ttl, json.dumps(result))
        except (RedisError, TypeError, ValueError) as e:
            logger.warning(f"Failed to park result for job {job_id}: {e}")
            return False

        logger.info(f"Parked result for job {job_id} (ttl={self.result_ttl}s)")
        return True

    def claim(self, job_id: str) -> Optional[Any]:
        """
        Take a parked reply (get and delete in one MULTI/EXEC).

        Returns:
            Decoded reply, or None if nothing is parked or Redis failed

        Raises:
            ValueError: If the parked value is not valid JSON (it is deleted either way)
        """
        key = self._get_result_key(job_id)
        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.get(key)
            pipe.delete(key)
            raw_result, _ = pipe.execute()
        except RedisError as e:
            logger.warning(f"Failed to claim result for job {job_id}: {e}")
            return None

        if raw_result is None:
            return None

        try:
            result = json.loads(raw_result)
        except ValueError as e:
            logger.error(f"Parked result for job {job_id} is not valid JSON: {e}")
            raise ValueError(f"Parked result for job {job_id} is corrupt: {e}") from e

        logger.info(f"Claimed parked result for job {job_id}")
        return result

    def reserve(self, idempotency_key: str, job_id: str) -> Optional[str]:
        """
        Reserve an idempotency key for a new job.

        Args:
            idempotency_key: Client-supplied key
            job_id: Job id to bind if the key is free

        Returns:
            None if the key was free and is now bound to job_id,
            otherwise the job id previously bound to the key.
            Also None if Redis failed (request is treated as new).
        """
        key = self._get_idempotency_key(idempotency_key)
        try:
            if self.redis.set(key, job_id, nx=True, ex=self.idempotency_ttl):
                return None
            existing = self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Failed to reserve idempotency key {idempotency_key!r}: {e}")
            return None

        if existing is not None:
            logger.info(
                f"Idempotency key {idempotency_key!r} already bound to job {existing}"
            )
        return existing

    def release(self, idempotency_key: str) -> None:
        """Drop a reservation whose job could not be published."""
        try:
            self.redis.delete(self._get_idempotency_key(idempotency_key))
        except RedisError as e:
            logger.warning(f"Failed to release idempotency key {idempotency_key!r}: {e}")
