"""
JobEnvelope Value Object and Codec

The envelope is the unit of work placed on the broker: either raw image bytes
or a text description, tagged with the job kind and the job id.

Responsibility:
    - Encapsulate one analysis job payload (immutable)
    - Enforce "exactly one payload, matching kind"
    - Encode to / decode from the JSON wire format consumed by workers

Architecture Notes:
    - Value Object (immutable, defined by values)
    - Uses Pydantic for validation
    - No broker or HTTP dependencies

Wire Format:
    Image job:  {"kind": "image", "file": "<base64>", "job_id": "<uuid>"}
    Text job:   {"kind": "text", "text": "curly, 3a", "job_id": "<uuid>"}

    The "file" key is the field name the analysis workers read.
"""

import base64
import binascii
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from src.domain.shared.exceptions import InvalidAnalysisInputError


class JobKind(str, Enum):
    """
    Kind of payload carried by a JobEnvelope.

    Attributes:
        IMAGE: Raw image bytes (sent as base64 text)
        TEXT: Free-form text description
    """

    IMAGE = "image"
    TEXT = "text"


class JobEnvelope(BaseModel):
    """
    Immutable analysis job payload.

    Exactly one of `image` / `text` is set and it must match `kind`.
    Use the `for_image()` / `for_text()` constructors rather than building
    the model by hand.

    Attributes:
        kind: JobKind tag
        image: Raw image bytes (IMAGE jobs only)
        text: Text description (TEXT jobs only)
        job_id: Identifier sent as AMQP correlation id and echoed by workers

    Examples:
        >>> envelope = JobEnvelope.for_text("curly, 3a")
        >>> envelope.kind
        <JobKind.TEXT: 'text'>
        >>> JobEnvelope.decode(envelope.encode()) == envelope
        True
    """

    kind: JobKind
    image: Optional[bytes] = Field(default=None, description="Raw image bytes")
    text: Optional[str] = Field(default=None, description="Text description")
    job_id: UUID = Field(default_factory=uuid4)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_payload_matches_kind(self) -> "JobEnvelope":
        """
        Ensure exactly one payload field is set and it matches kind.

        Raises:
            ValueError: If payload fields disagree with kind
        """
        if self.kind == JobKind.IMAGE:
            if self.image is None or self.text is not None:
                raise ValueError("Image job must carry image bytes and no text")
        elif self.text is None or self.image is not None:
            raise ValueError("Text job must carry text and no image bytes")
        return self

    @classmethod
    def for_image(cls, image: bytes, job_id: Optional[UUID] = None) -> "JobEnvelope":
        """Build an IMAGE envelope."""
        if job_id is None:
            return cls(kind=JobKind.IMAGE, image=image)
        return cls(kind=JobKind.IMAGE, image=image, job_id=job_id)

    @classmethod
    def for_text(cls, text: str, job_id: Optional[UUID] = None) -> "JobEnvelope":
        """Build a TEXT envelope."""
        if job_id is None:
            return cls(kind=JobKind.TEXT, text=text)
        return cls(kind=JobKind.TEXT, text=text, job_id=job_id)

    def encode(self) -> Dict[str, Any]:
        """
        Encode envelope to the JSON-compatible wire format.

        Image bytes are base64-encoded (standard alphabet, padded).

        Returns:
            Dict ready for JSON serialization by the broker client
        """
        message: Dict[str, Any] = {"kind": self.kind.value, "job_id": str(self.job_id)}
        if self.kind == JobKind.IMAGE:
            message["file"] = base64.b64encode(self.image).decode("ascii")
        else:
            message["text"] = self.text
        return message

    @classmethod
    def decode(cls, message: Dict[str, Any]) -> "JobEnvelope":
        """
        Decode wire format back into an envelope.

        Args:
            message: Dict produced by encode()

        Returns:
            Equivalent JobEnvelope

        Raises:
            InvalidAnalysisInputError: If the message is malformed
        """
        try:
            kind = JobKind(message["kind"])
            job_id = UUID(message["job_id"])
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidAnalysisInputError(f"Malformed job envelope: {e}")

        if kind == JobKind.IMAGE:
            try:
                image = base64.b64decode(message["file"], validate=True)
            except (KeyError, binascii.Error, TypeError) as e:
                raise InvalidAnalysisInputError(
                    f"Malformed image payload: {e}", field="file"
                )
            return cls.for_image(image, job_id=job_id)

        if "text" not in message:
            raise InvalidAnalysisInputError("Malformed text payload", field="text")
        return cls.for_text(message["text"], job_id=job_id)
