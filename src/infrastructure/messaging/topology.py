"""
Broker Topology.

Queue descriptors of the two job families and the kombu entities declared
for them. Names come from environment variables with the worker defaults.

Business Rules:
    - composition: consistence.exchange / consistence.request.bind,
      replies on consistence.responses
    - porosity: hairType.exchange / hairType.request.bind,
      replies on hairType.responses
    - Exchanges are direct; queues are durable
    - Replies are bound to the same exchange with "<prefix>.response.bind"
"""

import logging
import os
from functools import lru_cache
from typing import Dict, List

from kombu import Exchange, Queue

from src.domain.analysis import QueueDescriptor

logger = logging.getLogger(__name__)

COMPOSITION = "composition"
POROSITY = "porosity"

# family -> (env prefix, default broker name prefix)
_FAMILY_PREFIXES: Dict[str, tuple[str, str]] = {
    COMPOSITION: ("COMPOSITION", "consistence"),
    POROSITY: ("POROSITY", "hairType"),
}


def _descriptor_from_env(family: str) -> QueueDescriptor:
    env_prefix, name_prefix = _FAMILY_PREFIXES[family]
    return QueueDescriptor(
        family=family,
        exchange_name=os.getenv(f"{env_prefix}_EXCHANGE", f"{name_prefix}.exchange"),
        routing_key=os.getenv(f"{env_prefix}_ROUTING_KEY", f"{name_prefix}.request.bind"),
        response_queue_name=os.getenv(
            f"{env_prefix}_RESPONSE_QUEUE", f"{name_prefix}.responses"
        ),
        request_queue_name=os.getenv(
            f"{env_prefix}_REQUEST_QUEUE", f"{name_prefix}.requests"
        ),
        response_routing_key=os.getenv(
            f"{env_prefix}_RESPONSE_ROUTING_KEY", f"{name_prefix}.response.bind"
        ),
    )


@lru_cache(maxsize=None)
def load_queue_descriptors() -> Dict[str, QueueDescriptor]:
    """
    Load descriptors of all job families (read once per process).

    Returns:
        Mapping family name -> QueueDescriptor
    """
    descriptors = {family: _descriptor_from_env(family) for family in _FAMILY_PREFIXES}
    for descriptor in descriptors.values():
        logger.info(
            f"Job family {descriptor.family}: exchange={descriptor.exchange_name}, "
            f"routing_key={descriptor.routing_key}, responses={descriptor.response_queue_name}"
        )
    return descriptors


def get_queue_descriptor(family: str) -> QueueDescriptor:
    """
    Get descriptor of one job family.

    Raises:
        KeyError: If family is unknown
    """
    return load_queue_descriptors()[family]


def exchange_for(descriptor: QueueDescriptor) -> Exchange:
    return Exchange(descriptor.exchange_name, type="direct", durable=True)


def request_queue_for(descriptor: QueueDescriptor) -> Queue:
    return Queue(
        descriptor.request_queue_name,
        exchange=exchange_for(descriptor),
        routing_key=descriptor.routing_key,
        durable=True,
    )


def response_queue_for(descriptor: QueueDescriptor) -> Queue:
    return Queue(
        descriptor.response_queue_name,
        exchange=exchange_for(descriptor),
        routing_key=descriptor.response_routing_key,
        durable=True,
    )


def declarations_for(descriptor: QueueDescriptor) -> List[Queue]:
    """Queues (with their exchange and bindings) declared on publish."""
    return [request_queue_for(descriptor), response_queue_for(descriptor)]
