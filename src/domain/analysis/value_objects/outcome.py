"""
Outcome Value Objects

Terminal state of one analysis request as seen by the gateway. Exactly one
Outcome is produced per request and it is never stored.

Variants:
    - Completed(result): a worker reply was received and decoded
    - Pending: single check found no reply yet
    - TimedOut: polling gave up at the overall deadline
    - Failed(reason): broker or decode failure
"""

from typing import Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field


class Completed(BaseModel):
    """Worker reply received; `result` is the decoded message body."""

    state: Literal["completed"] = "completed"
    result: Any = Field(description="Decoded worker reply")
    job_id: Optional[UUID] = None

    model_config = {"frozen": True}


class Pending(BaseModel):
    """No reply available yet (single-check path)."""

    state: Literal["pending"] = "pending"
    job_id: Optional[UUID] = None

    model_config = {"frozen": True}


class TimedOut(BaseModel):
    """Overall deadline elapsed before a reply arrived."""

    state: Literal["timed_out"] = "timed_out"
    job_id: Optional[UUID] = None
    attempts: int = Field(default=0, ge=0, description="Broker receives performed")

    model_config = {"frozen": True}


class Failed(BaseModel):
    """Publish, receive or decode failure."""

    state: Literal["failed"] = "failed"
    reason: str
    job_id: Optional[UUID] = None

    model_config = {"frozen": True}


Outcome = Union[Completed, Pending, TimedOut, Failed]
