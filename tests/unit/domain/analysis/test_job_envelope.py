"""
Tests for JobEnvelope and QueueDescriptor value objects.

Covers:
- Constructors and payload/kind invariant
- Wire format (kind tag, job_id, base64 image)
- Decoding of malformed messages
- Immutability
"""

import base64
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from src.domain.analysis import JobEnvelope, JobKind, QueueDescriptor
from src.domain.shared.exceptions import InvalidAnalysisInputError


# ============================================================================
# CONSTRUCTION
# ============================================================================


def test_for_text_builds_text_envelope():
    envelope = JobEnvelope.for_text("curly, 3a")

    assert envelope.kind == JobKind.TEXT
    assert envelope.text == "curly, 3a"
    assert envelope.image is None
    assert isinstance(envelope.job_id, UUID)


def test_for_image_keeps_given_job_id():
    job_id = uuid4()

    envelope = JobEnvelope.for_image(b"\x89PNG", job_id=job_id)

    assert envelope.kind == JobKind.IMAGE
    assert envelope.image == b"\x89PNG"
    assert envelope.job_id == job_id


def test_each_envelope_gets_distinct_job_id():
    assert JobEnvelope.for_text("a").job_id != JobEnvelope.for_text("a").job_id


def test_envelope_rejects_payload_not_matching_kind():
    with pytest.raises(ValidationError):
        JobEnvelope(kind=JobKind.IMAGE, text="curly")


def test_envelope_rejects_both_payloads():
    with pytest.raises(ValidationError):
        JobEnvelope(kind=JobKind.TEXT, text="curly", image=b"abc")


def test_envelope_is_immutable():
    envelope = JobEnvelope.for_text("curly")

    with pytest.raises(ValidationError):
        envelope.text = "straight"


# ============================================================================
# WIRE FORMAT
# ============================================================================


def test_encode_text_envelope():
    job_id = uuid4()
    envelope = JobEnvelope.for_text("curly, 3a", job_id=job_id)

    message = envelope.encode()

    assert message == {"kind": "text", "job_id": str(job_id), "text": "curly, 3a"}


def test_encode_image_envelope_uses_base64():
    envelope = JobEnvelope.for_image(b"\x00\x01\xffimage")

    message = envelope.encode()

    assert message["kind"] == "image"
    assert "text" not in message
    assert base64.b64decode(message["file"]) == b"\x00\x01\xffimage"


def test_decode_restores_image_envelope():
    original = JobEnvelope.for_image(b"\x89PNG\r\n\x1a\n")

    decoded = JobEnvelope.decode(original.encode())

    assert decoded == original


def test_decode_keeps_empty_text():
    original = JobEnvelope.for_text("")

    assert JobEnvelope.decode(original.encode()).text == ""


@pytest.mark.parametrize(
    "message",
    [
        {},
        {"kind": "video", "job_id": str(uuid4()), "text": "x"},
        {"kind": "text", "job_id": "not-a-uuid", "text": "x"},
        {"kind": "text", "job_id": str(uuid4())},
        {"kind": "image", "job_id": str(uuid4())},
        {"kind": "image", "job_id": str(uuid4()), "file": "***not base64***"},
    ],
)
def test_decode_rejects_malformed_messages(message):
    with pytest.raises(InvalidAnalysisInputError):
        JobEnvelope.decode(message)


# ============================================================================
# QUEUE DESCRIPTOR
# ============================================================================


def test_queue_descriptor_is_immutable(composition_descriptor):
    with pytest.raises(ValidationError):
        composition_descriptor.exchange_name = "other.exchange"


def test_queue_descriptor_equality(composition_descriptor):
    copy = QueueDescriptor(**composition_descriptor.model_dump())

    assert copy == composition_descriptor
