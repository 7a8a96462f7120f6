"""
Application Commands (CQRS write side)

Contains:
    - AnalyzeCommand: Submit one analysis job
"""

from .analyze import AnalyzeCommand

__all__ = ["AnalyzeCommand"]
