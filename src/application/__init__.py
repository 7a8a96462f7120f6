"""
Application Layer - Use Cases and Orchestration

Responsibility:
    Coordinates the flow of data between API, Domain and Infrastructure
    layers for asynchronous analysis requests.

Contains:
    - Commands (CQRS write operations)
    - Application services (orchestration, outcome translation)
    - Shared application models

Does NOT contain:
    - Domain business rules (belongs to Domain layer)
    - HTTP handling (belongs to API layer)
    - Broker or Redis details (belongs to Infrastructure layer)
"""
