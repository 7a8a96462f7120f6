"""
Analysis API Schemas

Response bodies of the analysis endpoints (documentation models; the router
returns the translated bodies as-is).
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from src.application.models import AnalysisStatus


class AnalysisCompletedResponse(BaseModel):
    """HTTP 200 - worker result available."""

    status: AnalysisStatus = Field(description="Always 'completed'")
    result: Any = Field(description="Worker result, passed through unchanged")

    class Config:
        json_schema_extra = {
            "example": {"status": "completed", "result": {"hairType": "3A"}}
        }


class AnalysisAcceptedResponse(BaseModel):
    """HTTP 202 - result not available (yet)."""

    status: AnalysisStatus = Field(description="'processing' or 'timed_out'")
    message: str = Field(description="Human-readable explanation")
    job_id: Optional[str] = Field(
        default=None, description="Job id to use with GET ?job_id= for a late result"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "status": "timed_out",
                "message": "Analysis takes too much time",
                "job_id": "3fa85f64-5717-4562-b3fc-2c963f66afa6",
            }
        }
