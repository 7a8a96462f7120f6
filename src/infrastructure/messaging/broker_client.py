"""
AMQP Broker Client.

Thin adapter over kombu exposing the two operations the job bridge needs:
publish a message to an exchange/routing key, and fetch at most one message
from a queue without waiting.

Responsibility:
    - Borrow connections/producers from the Celery app's kombu pools
    - JSON serialization on publish, JSON-only decoding on receive
    - Declare exchanges, queues and bindings the gateway relies on
    - Convert every kombu/amqp failure into BrokerError

Architecture Notes:
    - Infrastructure Layer (external dependency on RabbitMQ)
    - Methods are synchronous (kombu is blocking); async callers run them
      with asyncio.to_thread so the event loop never blocks
    - Received messages are acknowledged before they are returned, unless
      the caller asks for them to be requeued

Examples:
    >>> client = get_broker_client()
    >>> client.publish({"kind": "text", "text": "curly"}, "consistence.exchange",
    ...                "consistence.request.bind", correlation_id="abc")
    >>> message = client.receive_no_wait("consistence.responses")
    >>> message.payload if message else None
    {'hairType': '3A'}
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional

from celery import Celery
from kombu import Queue

from src.infrastructure.messaging.celery_app import celery_app as default_celery_app

# Configure logger for this module
logger = logging.getLogger(__name__)

# Singleton broker client (thread-safe)
_broker_client: Optional["BrokerClient"] = None
_client_lock = threading.Lock()


class BrokerError(Exception):
    """
    Raised when the broker cannot accept or deliver a message.

    Covers connectivity faults, channel errors, serialization failures and
    malformed (undecodable) reply messages. Never retried by the gateway.
    """

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        self.operation = operation
        super().__init__(message)


@dataclass(frozen=True)
class ReceivedMessage:
    """
    One decoded message fetched from a queue.

    Attributes:
        payload: Decoded JSON body
        correlation_id: AMQP correlation_id property (None if absent)
        properties: Remaining AMQP properties
        headers: Application headers
    """

    payload: Any
    correlation_id: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, Any] = field(default_factory=dict)


class BrokerClient:
    """
    Publish / receive-no-wait adapter on top of kombu pools.

    Attributes:
        app: Celery application owning the broker configuration
        accept: Content types accepted when decoding replies
        acquire_timeout: Seconds to wait for a pooled connection or producer
    """

    def __init__(
        self,
        app: Optional[Celery] = None,
        accept: Iterable[str] = ("json",),
        acquire_timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize broker client.

        Args:
            app: Celery app to borrow pools from (default: gateway celery_app)
            accept: Accepted content types for received messages
            acquire_timeout: Pool wait in seconds (default from env:
                BROKER_ACQUIRE_TIMEOUT or 2). A put-back publish runs while a
                receive still holds its connection, so pool waits are bounded.
        """
        self.app = app or default_celery_app
        self.accept = list(accept)
        self.acquire_timeout: float = (
            acquire_timeout
            if acquire_timeout is not None
            else float(os.getenv("BROKER_ACQUIRE_TIMEOUT", "2"))
        )
        self._declared_queues: set[str] = set()

    def publish(
        self,
        message: Dict[str, Any],
        exchange_name: str,
        routing_key: str,
        correlation_id: Optional[str] = None,
        reply_to: Optional[str] = None,
        declare: Iterable[Any] = (),
        expiration: Optional[float] = None,
        headers: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Publish one JSON message.

        Args:
            message: JSON-serializable body
            exchange_name: Target exchange ("" for the default exchange)
            routing_key: Routing key (queue name when exchange_name is "")
            correlation_id: AMQP correlation_id property
            reply_to: AMQP reply_to property
            declare: kombu entities to declare before publishing
            expiration: Per-message TTL in seconds (AMQP expiration)
            headers: Application headers

        Raises:
            BrokerError: If the broker rejects the message or is unreachable
        """
        properties: Dict[str, Any] = {}
        if correlation_id is not None:
            properties["correlation_id"] = correlation_id
        if reply_to is not None:
            properties["reply_to"] = reply_to
        if expiration is not None:
            properties["expiration"] = expiration
        if headers:
            properties["headers"] = headers

        try:
            producers = self.app.producer_pool
            with producers.acquire(block=True, timeout=self.acquire_timeout) as producer:
                producer.publish(
                    message,
                    exchange=exchange_name,
                    routing_key=routing_key,
                    serializer="json",
                    declare=list(declare),
                    retry=False,
                    **properties,
                )
        except Exception as e:
            logger.error(
                f"Publish failed: exchange={exchange_name!r}, routing_key={routing_key!r}: {e}"
            )
            raise BrokerError(f"Failed to publish message: {e}", operation="publish") from e

        logger.debug(
            f"Published message: exchange={exchange_name!r}, routing_key={routing_key!r}, "
            f"correlation_id={correlation_id}"
        )

    def receive_no_wait(
        self,
        queue_name: str,
        declare: Optional[Queue] = None,
        keep: Optional[Callable[[ReceivedMessage], bool]] = None,
    ) -> Optional[ReceivedMessage]:
        """
        Fetch at most one message from a queue without waiting (AMQP basic.get).

        Args:
            queue_name: Queue to read from
            declare: Queue definition (with exchange binding) declared once
                before the first read; plain queue of that name if omitted
            keep: Called with the decoded message before it is acknowledged.
                Returning False rejects the message back onto the queue
                (basic.reject with requeue) and None is returned instead.

        Returns:
            ReceivedMessage, or None if the queue is empty or the message was requeued

        Raises:
            BrokerError: On connectivity failure or undecodable message
                (the undecodable message is acknowledged and dropped)
        """
        queue = declare if declare is not None else Queue(queue_name, durable=True)

        try:
            with self.app.pool.acquire(block=True, timeout=self.acquire_timeout) as connection:
                bound_queue = queue(connection.default_channel)
                if queue_name not in self._declared_queues:
                    bound_queue.declare()
                    self._declared_queues.add(queue_name)

                raw_message = bound_queue.get(no_ack=False, accept=self.accept)
                if raw_message is None:
                    return None

                try:
                    payload = raw_message.decode()
                except Exception:
                    raw_message.ack()
                    raise

                message = self._to_received_message(payload, raw_message)

                try:
                    kept = keep(message) if keep is not None else True
                except Exception:
                    raw_message.requeue()
                    raise

                if not kept:
                    raw_message.requeue()
                    logger.debug(
                        f"Requeued message on {queue_name!r}: correlation_id={message.correlation_id}"
                    )
                    return None

                raw_message.ack()
        except Exception as e:
            logger.error(f"Receive failed on queue {queue_name!r}: {e}")
            raise BrokerError(f"Failed to get result: {e}", operation="receive") from e

        logger.debug(
            f"Received message from {queue_name!r}: correlation_id={message.correlation_id}"
        )
        return message

    @staticmethod
    def _to_received_message(payload: Any, raw_message: Any) -> ReceivedMessage:
        properties = dict(raw_message.properties or {})
        correlation_id = properties.pop("correlation_id", None)
        return ReceivedMessage(
            payload=payload,
            correlation_id=str(correlation_id) if correlation_id is not None else None,
            properties=properties,
            headers=dict(raw_message.headers or {}),
        )

    def close(self) -> None:
        """Release all pooled broker connections."""
        logger.info("Closing broker connection pools")
        self.app.pool.force_close_all()
        self._declared_queues.clear()


def get_broker_client() -> BrokerClient:
    """
    Get process-wide BrokerClient (singleton pattern).

    Returns:
        Shared BrokerClient bound to the gateway Celery app
    """
    global _broker_client

    if _broker_client is None:
        with _client_lock:
            # Double-check locking pattern
            if _broker_client is None:
                logger.info("Creating broker client")
                _broker_client = BrokerClient()

    return _broker_client


def close_broker_client() -> None:
    """Close the singleton client if it was created. Safe to call multiple times."""
    global _broker_client

    with _client_lock:
        if _broker_client is not None:
            try:
                _broker_client.close()
            except Exception as e:
                logger.error(f"Error closing broker client: {e}")
            finally:
                _broker_client = None
