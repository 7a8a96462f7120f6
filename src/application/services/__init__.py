"""
Application Services

Responsibility:
    Orchestration services that coordinate domain objects and
    infrastructure components.

Contains:
    - AnalysisUseCase: HTTP request -> broker job -> polled result
    - OutcomeTranslator: Outcome -> HTTP status code and body

Does NOT contain:
    - Domain rules (use Domain value objects)
    - Direct broker calls (delegated to JobPublisher / ResultPoller)
"""

from .analysis_use_case import AnalysisUseCase
from .outcome_translator import OutcomeTranslator, TranslatedOutcome

__all__ = ["AnalysisUseCase", "OutcomeTranslator", "TranslatedOutcome"]
