"""
Domain Layer - Core Concepts

Framework-independent concepts of the analysis job bridge.

Subdomains:
    - analysis: Job envelopes, queue descriptors, request outcomes
    - shared: Cross-subdomain exceptions

Usage:
    >>> from src.domain import JobEnvelope, DomainException
    >>> from src.domain.analysis import QueueDescriptor
"""

# Analysis Subdomain
from .analysis import (
    Completed,
    Failed,
    JobEnvelope,
    JobKind,
    Outcome,
    Pending,
    QueueDescriptor,
    TimedOut,
)

# Shared Domain
from .shared import ClientInputError, DomainException

__all__ = [
    # Analysis Subdomain
    "JobEnvelope",
    "JobKind",
    "QueueDescriptor",
    "Outcome",
    "Completed",
    "Pending",
    "TimedOut",
    "Failed",
    # Shared Domain
    "DomainException",
    "ClientInputError",
]
