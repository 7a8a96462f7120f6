"""
API Router for Asynchronous Analysis

Responsibility:
    HTTP interface of the analysis job bridge. Accepts an image or a text
    description, hands it to the worker family through the broker and
    answers with the polled result (or a processing/timeout marker).

Architecture Notes:
    - Part of API Layer (Presentation)
    - Depends on Application Layer (AnalysisUseCase)
    - No business logic - pure HTTP concerns (multipart extraction, status codes)
    - Invalid input surfaces as ClientInputError, mapped to 400 by the
      global exception handler in main.py

Contains:
    - POST /composition/analyze - image or text, polls for the result
    - GET  /composition/analyze - single non-blocking result check
    - POST /analyze - porosity analysis, image only
    - GET  /analyze - single non-blocking porosity result check
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Header, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from src.api.schemas.analysis import AnalysisAcceptedResponse, AnalysisCompletedResponse
from src.api.schemas.common import SimpleErrorResponse
from src.application.commands.analyze import AnalyzeCommand
from src.application.services.analysis_use_case import AnalysisUseCase
from src.application.services.outcome_translator import TranslatedOutcome
from src.domain.analysis import JobKind, QueueDescriptor
from src.infrastructure.messaging.broker_client import get_broker_client
from src.infrastructure.messaging.job_publisher import JobPublisher
from src.infrastructure.messaging.result_poller import ResultPoller
from src.infrastructure.messaging.topology import COMPOSITION, POROSITY, get_queue_descriptor

# Configure logger
logger = logging.getLogger(__name__)

# Status returned when the client went away before the result was ready
CLIENT_CLOSED_REQUEST = 499


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================


router = APIRouter(
    tags=["analysis"],
    responses={
        200: {"model": AnalysisCompletedResponse, "description": "Result available"},
        202: {
            "model": AnalysisAcceptedResponse,
            "description": "Still processing, or gateway stopped waiting",
        },
        400: {"model": SimpleErrorResponse, "description": "Invalid analysis input"},
        500: {"model": SimpleErrorResponse, "description": "Broker failure"},
    },
)


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================


async def get_analysis_use_case(request: Request) -> AnalysisUseCase:
    """
    Dependency injection for AnalysisUseCase.

    Wires the process-wide broker client and, when Redis was reachable at
    startup, the result mailbox stored on app.state by the lifespan handler.
    """
    broker = get_broker_client()
    mailbox = getattr(request.app.state, "result_mailbox", None)
    return AnalysisUseCase(
        publisher=JobPublisher(broker),
        poller=ResultPoller(broker, mailbox=mailbox),
        mailbox=mailbox,
    )


def get_composition_descriptor() -> QueueDescriptor:
    return get_queue_descriptor(COMPOSITION)


def get_porosity_descriptor() -> QueueDescriptor:
    return get_queue_descriptor(POROSITY)


# ============================================================================
# HELPERS
# ============================================================================


async def _build_command(
    file: Optional[UploadFile],
    text: Optional[str],
    idempotency_key: Optional[str],
    accepted_kinds: Tuple[JobKind, ...],
) -> AnalyzeCommand:
    file_bytes = await file.read() if file is not None else None
    return AnalyzeCommand(
        file_bytes=file_bytes,
        content_type=file.content_type if file is not None else None,
        filename=file.filename if file is not None else None,
        text=text,
        accepted_kinds=accepted_kinds,
        idempotency_key=idempotency_key,
    )


def _to_response(translated: TranslatedOutcome) -> JSONResponse:
    return JSONResponse(status_code=translated.status_code, content=translated.body)


async def _submit_and_wait(
    request: Request,
    command: AnalyzeCommand,
    descriptor: QueueDescriptor,
    use_case: AnalysisUseCase,
) -> Response:
    logger.info(
        f"Analysis request for {descriptor.family}: "
        f"file={command.filename!r}, text={'yes' if command.has_text else 'no'}"
    )
    translated = await use_case.execute(
        command, descriptor, is_disconnected=request.is_disconnected
    )
    if translated is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return _to_response(translated)


# ============================================================================
# ENDPOINTS
# ============================================================================


@router.post(
    "/composition/analyze",
    summary="Analyze product composition (image or text)",
    description=(
        "Multipart request with exactly one of `file` (image) or `text`. "
        "The job is published to the composition workers and the gateway waits "
        "up to the polling deadline for the result."
    ),
)
async def analyze_composition(
    request: Request,
    file: Optional[UploadFile] = File(default=None, description="Product image"),
    text: Optional[str] = Form(default=None, description="Product composition text"),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    use_case: AnalysisUseCase = Depends(get_analysis_use_case),
    descriptor: QueueDescriptor = Depends(get_composition_descriptor),
) -> Response:
    """
    Submit a composition analysis job and wait for its result.

    Returns:
        200 {"status": "completed", "result": ...}
        202 {"status": "timed_out", "message": "Analysis takes too much time", "job_id": ...}
        400 {"error": ...} for missing/ambiguous input or non-image file
        500 {"error": ...} for broker failures

    Examples:
        >>> curl -X POST http://localhost:8080/composition/analyze -F "text=curly, 3a"
        {"status": "completed", "result": {"hairType": "3A"}}
    """
    command = await _build_command(
        file, text, idempotency_key, accepted_kinds=(JobKind.IMAGE, JobKind.TEXT)
    )
    return await _submit_and_wait(request, command, descriptor, use_case)


@router.get(
    "/composition/analyze",
    summary="Check for a composition analysis result",
    description=(
        "Single non-blocking check of the composition response queue. "
        "Pass `job_id` (from a 202 response) to fetch that job's result."
    ),
)
async def get_composition_result(
    job_id: Optional[UUID] = Query(default=None, description="Job id from a 202 response"),
    use_case: AnalysisUseCase = Depends(get_analysis_use_case),
    descriptor: QueueDescriptor = Depends(get_composition_descriptor),
) -> JSONResponse:
    return _to_response(await use_case.check(descriptor, job_id))


@router.post(
    "/analyze",
    summary="Analyze hair porosity (image only)",
    description="Multipart request with an image `file`; same flow as /composition/analyze.",
)
async def analyze_porosity(
    request: Request,
    file: Optional[UploadFile] = File(default=None, description="Hair image"),
    text: Optional[str] = Form(default=None, description="Not accepted; images only"),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    use_case: AnalysisUseCase = Depends(get_analysis_use_case),
    descriptor: QueueDescriptor = Depends(get_porosity_descriptor),
) -> Response:
    command = await _build_command(
        file, text, idempotency_key, accepted_kinds=(JobKind.IMAGE,)
    )
    return await _submit_and_wait(request, command, descriptor, use_case)


@router.get(
    "/analyze",
    summary="Check for a porosity analysis result",
)
async def get_porosity_result(
    job_id: Optional[UUID] = Query(default=None, description="Job id from a 202 response"),
    use_case: AnalysisUseCase = Depends(get_analysis_use_case),
    descriptor: QueueDescriptor = Depends(get_porosity_descriptor),
) -> JSONResponse:
    return _to_response(await use_case.check(descriptor, job_id))
