"""
Job Publisher.

Hands a JobEnvelope to the exchange / routing key of its job family.
Fire-and-forget: returns as soon as the broker client accepted the message.
"""

import asyncio
import logging

from src.domain.analysis import JobEnvelope, QueueDescriptor
from src.infrastructure.messaging.broker_client import BrokerClient, BrokerError
from src.infrastructure.messaging.topology import declarations_for

logger = logging.getLogger(__name__)


class JobPublisher:
    """
    Submit analysis jobs to the broker.

    The envelope's job_id travels as the AMQP correlation_id and the family's
    response queue as reply_to, so workers can route and tag their replies.
    Failures surface as BrokerError and are not retried here.

    Examples:
        >>> publisher = JobPublisher(get_broker_client())
        >>> await publisher.submit(JobEnvelope.for_text("curly, 3a"), descriptor)
    """

    def __init__(self, broker: BrokerClient) -> None:
        self.broker = broker

    async def submit(self, envelope: JobEnvelope, descriptor: QueueDescriptor) -> None:
        """
        Publish one envelope.

        Args:
            envelope: Job payload
            descriptor: Target job family

        Raises:
            BrokerError: Serialization or broker failure
        """
        try:
            message = envelope.encode()
        except Exception as e:
            raise BrokerError(f"Failed to serialize job: {e}", operation="serialize") from e

        await asyncio.to_thread(
            self.broker.publish,
            message,
            descriptor.exchange_name,
            descriptor.routing_key,
            correlation_id=str(envelope.job_id),
            reply_to=descriptor.response_queue_name,
            declare=declarations_for(descriptor),
        )

        logger.info(
            f"Submitted {envelope.kind.value} job {envelope.job_id} to "
            f"{descriptor.exchange_name} ({descriptor.routing_key})"
        )
