"""
Common fixtures for API unit tests.

Provides shared test utilities:
- FastAPI app with dependency overrides
- Mock broker wired into a real AnalysisUseCase
- Mock backend transport
"""

from typing import Callable, Dict, List
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.api.routers.analysis import get_analysis_use_case
from src.application.services.analysis_use_case import AnalysisUseCase
from src.infrastructure.backend.backend_client import BackendClient, get_backend_client
from src.infrastructure.messaging.job_publisher import JobPublisher
from src.infrastructure.messaging.result_poller import ResultPoller


@pytest.fixture
def app() -> FastAPI:
    """Fresh app per test so dependency overrides never leak."""
    return create_app()


@pytest.fixture
def client(app):
    """
    FastAPI TestClient for testing endpoints.

    Not used as a context manager: lifespan (Redis connect) is skipped.
    """
    return TestClient(app)


@pytest.fixture
def mock_broker():
    """Broker with an empty response queue."""
    broker = MagicMock()
    broker.receive_no_wait.return_value = None
    return broker


@pytest.fixture
def broker_app(app, mock_broker):
    """App whose analysis endpoints run the real use case on a mock broker."""

    def override() -> AnalysisUseCase:
        poller = ResultPoller(mock_broker, interval=0.01, max_attempts=10, overall_deadline=0.05)
        return AnalysisUseCase(JobPublisher(mock_broker), poller)

    app.dependency_overrides[get_analysis_use_case] = override
    return app


@pytest.fixture
def broker_client(broker_app):
    return TestClient(broker_app)


@pytest.fixture
def mock_use_case(app):
    """App whose analysis endpoints use a MagicMock use case."""
    use_case = MagicMock()
    app.dependency_overrides[get_analysis_use_case] = lambda: use_case
    return use_case


@pytest.fixture
def backend_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def backend_responder() -> Dict[str, Callable[[httpx.Request], httpx.Response]]:
    """Mutable holder for the handler the mock backend uses."""
    return {"handler": lambda request: httpx.Response(200, json={"ok": True})}


@pytest.fixture
def backend_app(app, backend_requests, backend_responder):
    """App whose passthrough routes hit an httpx.MockTransport backend."""

    def handler(request: httpx.Request) -> httpx.Response:
        backend_requests.append(request)
        return backend_responder["handler"](request)

    backend = BackendClient(
        base_uri="http://backend:8081", transport=httpx.MockTransport(handler)
    )
    app.dependency_overrides[get_backend_client] = lambda: backend
    return app


@pytest.fixture
def backend_client(backend_app):
    return TestClient(backend_app)
