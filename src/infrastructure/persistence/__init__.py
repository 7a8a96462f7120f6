"""
Persistence Infrastructure Module

Exports:
    From redis:
        - ResultMailbox
"""

from .redis import ResultMailbox

__all__ = [
    "ResultMailbox",
]
