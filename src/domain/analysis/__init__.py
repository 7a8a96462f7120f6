"""
Analysis Subdomain

Asynchronous analysis jobs (composition, porosity) bridged from HTTP to
broker workers: job payloads, broker coordinates and request outcomes.
"""

from .value_objects import (
    Completed,
    Failed,
    JobEnvelope,
    JobKind,
    Outcome,
    Pending,
    QueueDescriptor,
    TimedOut,
)

__all__ = [
    "JobEnvelope",
    "JobKind",
    "QueueDescriptor",
    "Outcome",
    "Completed",
    "Pending",
    "TimedOut",
    "Failed",
]
