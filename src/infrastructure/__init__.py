"""
Infrastructure Layer - External Dependencies

Implements technical capabilities the gateway needs: the AMQP broker,
Redis, and the backend REST service.

Modules:
    - messaging: Broker client, topology, job publisher, result poller
    - persistence: Redis result mailbox
    - backend: httpx client for passthrough routes
"""

from .backend import BackendClient
from .messaging import BrokerClient, JobPublisher, ResultPoller
from .persistence import ResultMailbox

__all__ = [
    "BrokerClient",
    "JobPublisher",
    "ResultPoller",
    "ResultMailbox",
    "BackendClient",
]
