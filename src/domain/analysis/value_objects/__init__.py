"""
Analysis Value Objects.

Available Value Objects:
    - JobEnvelope / JobKind: Job payload placed on the broker
    - QueueDescriptor: Exchange, routing key and response queue of a job family
    - Completed / Pending / TimedOut / Failed: Request outcomes
"""

from src.domain.analysis.value_objects.job_envelope import JobEnvelope, JobKind
from src.domain.analysis.value_objects.outcome import (
    Completed,
    Failed,
    Outcome,
    Pending,
    TimedOut,
)
from src.domain.analysis.value_objects.queue_descriptor import QueueDescriptor

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
