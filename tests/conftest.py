"""
Pytest Configuration and Shared Fixtures

This module contains pytest configuration and shared fixtures used across
all test suites.

Fixtures:
    - test_client: FastAPI TestClient for API testing (no lifespan, no Redis)
    - composition_descriptor / porosity_descriptor: default job families

Architecture Notes:
    - Unit tests never touch a real broker, Redis or backend
    - TestClient doesn't require running server

Usage:
    def test_something(test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
"""

import logging
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.domain.analysis import QueueDescriptor

# Configure logger for tests
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ============================================================================
# APP FIXTURES
# ============================================================================


@pytest.fixture
def test_client() -> Generator[TestClient, None, None]:
    """
    Provide FastAPI TestClient.

    Not entered as a context manager, so the lifespan handler (Redis
    connect) does not run.
    """
    app = create_app()
    yield TestClient(app)


# ============================================================================
# DOMAIN FIXTURES
# ============================================================================


@pytest.fixture
def composition_descriptor() -> QueueDescriptor:
    """Default composition family topology."""
    return QueueDescriptor(
        family="composition",
        exchange_name="consistence.exchange",
        routing_key="consistence.request.bind",
        response_queue_name="consistence.responses",
        request_queue_name="consistence.requests",
        response_routing_key="consistence.response.bind",
    )


@pytest.fixture
def porosity_descriptor() -> QueueDescriptor:
    """Default porosity family topology."""
    return QueueDescriptor(
        family="porosity",
        exchange_name="hairType.exchange",
        routing_key="hairType.request.bind",
        response_queue_name="hairType.responses",
        request_queue_name="hairType.requests",
        response_routing_key="hairType.response.bind",
    )


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """
    Pytest configuration hook.

    Registers custom markers for test categorization.

    Usage:
        @pytest.mark.slow
        def test_deadline_elapses():
            ...
    """
    config.addinivalue_line("markers", "e2e: End-to-end tests (require broker, Redis and backend)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (may require external services)"
    )
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: Slow tests (>1s execution time)")
