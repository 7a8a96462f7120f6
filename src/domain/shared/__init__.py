"""
Shared Domain Module

Shared domain concepts used across all subdomains.

This module exports:
    - DomainException: Base exception for all domain errors
    - ClientInputError and subclasses: Rejected analysis requests (HTTP 400)
"""

from .exceptions import (
    ClientInputError,
    DomainException,
    InvalidAnalysisInputError,
    UnsupportedMediaTypeError,
)

__all__ = [
    "DomainException",
    "ClientInputError",
    "InvalidAnalysisInputError",
    "UnsupportedMediaTypeError",
]
