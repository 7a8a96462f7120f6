"""
API Schemas Package

Contains shared Pydantic models for API Layer.
"""

from src.api.schemas.analysis import AnalysisAcceptedResponse, AnalysisCompletedResponse
from src.api.schemas.common import ErrorResponse, SimpleErrorResponse

__all__ = [
    "ErrorResponse",
    "SimpleErrorResponse",
    "AnalysisCompletedResponse",
    "AnalysisAcceptedResponse",
]
