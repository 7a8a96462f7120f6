"""
API Routers Package

Contains all FastAPI routers grouped by functionality.

Architecture Notes:
    - Part of API Layer (Presentation)
    - Routers are thin wrappers around Application Layer use cases
      or the backend client
    - All routers follow dependency injection pattern

Available Routers:
    - analysis_router: Composition and porosity analysis (broker job bridge)
    - passthrough_router: CRUD routes forwarded to the backend service
"""

from .analysis import router as analysis_router
from .passthrough import router as passthrough_router

__all__ = ["analysis_router", "passthrough_router"]
