"""
Outcome Translator

Maps the terminal Outcome of an analysis request to the HTTP status code and
JSON body returned to the client.

Mapping:
    Completed(result) -> 200 {"status": "completed", "result": result}
    Pending           -> 202 {"status": "processing", "message": "Analysis still in progress"}
    TimedOut          -> 202 {"status": "timed_out", "message": "Analysis takes too much time"}
    Failed(reason)    -> 500 {"error": reason}

202 bodies also carry "job_id" when the job id is known, so clients can
fetch a late result through the single-check endpoint.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from src.application.models import AnalysisStatus
from src.domain.analysis import Completed, Failed, Outcome, Pending, TimedOut

logger = logging.getLogger(__name__)

PROCESSING_MESSAGE = "Analysis still in progress"
TIMEOUT_MESSAGE = "Analysis takes too much time"


@dataclass(frozen=True)
class TranslatedOutcome:
    """HTTP-facing result: status code and JSON body."""

    status_code: int
    body: Dict[str, Any]


class OutcomeTranslator:
    """Fixed Outcome -> HTTP table."""

    def translate(self, outcome: Outcome) -> TranslatedOutcome:
        """
        Translate one Outcome.

        Raises:
            TypeError: If outcome is not a known variant
        """
        if isinstance(outcome, Completed):
            return TranslatedOutcome(
                200, {"status": AnalysisStatus.COMPLETED.value, "result": outcome.result}
            )

        if isinstance(outcome, Pending):
            body = {"status": AnalysisStatus.PROCESSING.value, "message": PROCESSING_MESSAGE}
            return TranslatedOutcome(202, self._with_job_id(body, outcome))

        if isinstance(outcome, TimedOut):
            body = {"status": AnalysisStatus.TIMED_OUT.value, "message": TIMEOUT_MESSAGE}
            return TranslatedOutcome(202, self._with_job_id(body, outcome))

        if isinstance(outcome, Failed):
            return TranslatedOutcome(500, {"error": outcome.reason})

        raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")

    @staticmethod
    def _with_job_id(body: Dict[str, Any], outcome: Outcome) -> Dict[str, Any]:
        if outcome.job_id is not None:
            body["job_id"] = str(outcome.job_id)
        return body
