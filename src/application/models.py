"""
Shared Application Models

Responsibility:
    Contains shared models used across Application Layer.
    Prevents circular dependencies between commands and services.

Contains:
    - AnalysisStatus: Status values reported to HTTP clients
"""

from enum import Enum


class AnalysisStatus(str, Enum):
    """
    Status of an analysis request as reported in response bodies.

    Attributes:
        COMPLETED: Worker reply received, result included
        PROCESSING: No reply yet (single-check path)
        TIMED_OUT: Gateway stopped waiting; job may still complete later

    Usage:
        >>> from src.application.models import AnalysisStatus
        >>> AnalysisStatus.TIMED_OUT.value
        'timed_out'
    """

    COMPLETED = "completed"
    PROCESSING = "processing"
    TIMED_OUT = "timed_out"
