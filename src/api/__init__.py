"""
API Layer - FastAPI Presentation Layer

Responsibility:
    HTTP interface of the gateway. Extracts request data, delegates to the
    Application Layer or the backend client and maps results to responses.
    No business logic.

Contains:
    - FastAPI routers (analysis, backend passthrough)
    - Response models (Pydantic)
    - Dependency injection setup
    - Middleware configuration (CORS, logging)

Does NOT contain:
    - Business logic (belongs to Domain layer)
    - Orchestration (belongs to Application layer)
    - Broker, Redis or HTTP client code (belongs to Infrastructure layer)
"""
