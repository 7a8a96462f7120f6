"""
AnalyzeCommand - CQRS Write Command

Command object for submitting one analysis job (image or text) to a worker
family. Carries the raw inbound payload; validation decides which job kind
it becomes.

Responsibility:
    - Hold raw request data (file bytes + content type, or text)
    - Enforce "exactly one of file / text" and image-only file uploads
    - Build the JobEnvelope once validation passed

Architecture Notes:
    - Part of Application Layer (orchestration)
    - Pydantic model for structural validation
    - Business rules in validate_business_rules() raise ClientInputError
      subclasses, which the API Layer maps to HTTP 400
"""

from typing import Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field

from src.domain.analysis import JobEnvelope, JobKind
from src.domain.shared.exceptions import (
    InvalidAnalysisInputError,
    UnsupportedMediaTypeError,
)

IMAGE_CONTENT_TYPE_PREFIX = "image/"


class AnalyzeCommand(BaseModel):
    """
    Command to submit an analysis job.

    Attributes:
        file_bytes: Raw uploaded file (None if no file part was sent)
        content_type: Content type declared for the file part
        filename: Original filename (logging only)
        text: Text description (None or blank means absent)
        accepted_kinds: Job kinds the target family accepts
        idempotency_key: Client-supplied key reused across retries (optional)

    Examples:
        >>> command = AnalyzeCommand(text="curly, 3a")
        >>> command.validate_business_rules()
        >>> command.to_envelope().kind
        <JobKind.TEXT: 'text'>
    """

    file_bytes: Optional[bytes] = Field(default=None, description="Raw uploaded file")
    content_type: Optional[str] = Field(default=None, description="File content type")
    filename: Optional[str] = Field(default=None, description="Original filename")
    text: Optional[str] = Field(default=None, description="Text description")
    accepted_kinds: Tuple[JobKind, ...] = Field(default=(JobKind.IMAGE, JobKind.TEXT))
    idempotency_key: Optional[str] = Field(
        default=None, description="Idempotency-Key header value"
    )

    @property
    def has_file(self) -> bool:
        return self.file_bytes is not None

    @property
    def has_text(self) -> bool:
        return self.text is not None and self.text.strip() != ""

    def validate_business_rules(self) -> None:
        """
        Validate the payload before anything is published.

        Business Rules:
            1. Exactly one of file / text must be present
            2. The target family must accept the supplied kind
            3. File content type must start with "image/"
            4. File must not be empty

        Raises:
            InvalidAnalysisInputError: Rules 1, 2, 4
            UnsupportedMediaTypeError: Rule 3
        """
        image_only = self.accepted_kinds == (JobKind.IMAGE,)

        if self.has_file and self.has_text:
            raise InvalidAnalysisInputError(
                "Provide exactly one of 'file' or 'text', not both"
            )

        if not self.has_file and not self.has_text:
            if image_only:
                raise InvalidAnalysisInputError(
                    "Request must contain an image 'file'", field="file"
                )
            raise InvalidAnalysisInputError("Provide exactly one of 'file' or 'text'")

        if self.has_text:
            if JobKind.TEXT not in self.accepted_kinds:
                raise InvalidAnalysisInputError(
                    "This analysis accepts image files only", field="text"
                )
            return

        content_type = (self.content_type or "").strip().lower()
        if not content_type.startswith(IMAGE_CONTENT_TYPE_PREFIX):
            raise UnsupportedMediaTypeError("File must be an image", self.content_type)

        if len(self.file_bytes) == 0:
            raise InvalidAnalysisInputError("File is empty", field="file")

    def to_envelope(self, job_id: Optional[UUID] = None) -> JobEnvelope:
        """
        Build the JobEnvelope (call validate_business_rules() first).

        Args:
            job_id: Job id to use (new random id if omitted)
        """
        if self.has_file:
            return JobEnvelope.for_image(self.file_bytes, job_id=job_id)
        return JobEnvelope.for_text(self.text, job_id=job_id)
