"""
Messaging Infrastructure Module

AMQP job bridge: broker client (kombu pools of the Celery app), topology,
job publisher and result poller.

Exports:
    - BrokerClient, BrokerError, ReceivedMessage
    - get_broker_client, close_broker_client
    - JobPublisher
    - ResultPoller, PollAttempt
    - load_queue_descriptors, get_queue_descriptor, COMPOSITION, POROSITY
"""

from .broker_client import (
    BrokerClient,
    BrokerError,
    ReceivedMessage,
    close_broker_client,
    get_broker_client,
)
from .job_publisher import JobPublisher
from .result_poller import PollAttempt, ResultPoller
from .topology import COMPOSITION, POROSITY, get_queue_descriptor, load_queue_descriptors

__all__ = [
    "BrokerClient",
    "BrokerError",
    "ReceivedMessage",
    "get_broker_client",
    "close_broker_client",
    "JobPublisher",
    "ResultPoller",
    "PollAttempt",
    "load_queue_descriptors",
    "get_queue_descriptor",
    "COMPOSITION",
    "POROSITY",
]
