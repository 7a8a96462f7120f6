"""
Common API Schemas

Shared Pydantic models used across all API routers.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response model for unexpected API errors.

    Attributes:
        code: Machine-readable error code (e.g., "INTERNAL_SERVER_ERROR")
        message: Human-readable error message
        details: Optional additional error details (debug info)
    """

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional error context"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
                "details": {"type": "RuntimeError"},
            }
        }


class SimpleErrorResponse(BaseModel):
    """
    Error body of analysis and passthrough endpoints.

    Used for rejected input (400), broker failures (500) and unreachable
    backend (502).
    """

    error: str = Field(description="Human-readable error description")

    class Config:
        json_schema_extra = {"example": {"error": "File must be an image"}}
