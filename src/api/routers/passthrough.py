"""
API Router for Backend Passthrough

Responsibility:
    Forward CRUD requests (products, users, hair types, reviews, favourites)
    to the backend service and relay its response verbatim.

Architecture Notes:
    - Part of API Layer (Presentation)
    - One canonical route table; every route shares the same forwarder
    - No transformation: method, path, query and body go out unchanged,
      status code, body and content type come back unchanged
    - Backend unreachable -> 502 {"error": "Backend request failed: ..."}
"""

import logging
from typing import Tuple

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response

from src.infrastructure.backend.backend_client import (
    BackendClient,
    BackendUnavailableError,
    get_backend_client,
)

# Configure logger
logger = logging.getLogger(__name__)

# (method, path template, tag)
PASSTHROUGH_ROUTES: Tuple[Tuple[str, str, str], ...] = (
    # Products
    ("GET", "/products", "products"),
    ("GET", "/products/{product_id}", "products"),
    # Users
    ("GET", "/users/{user_id}", "users"),
    ("POST", "/users", "users"),
    ("PUT", "/users/{user_id}", "users"),
    ("DELETE", "/users/{user_id}", "users"),
    # Hair types
    ("GET", "/hairtypes/{user_id}", "hairtypes"),
    ("POST", "/hairtypes", "hairtypes"),
    ("PUT", "/hairtypes/{user_id}", "hairtypes"),
    ("DELETE", "/hairtypes/{user_id}", "hairtypes"),
    # Reviews
    ("GET", "/products/{product_id}/reviews", "reviews"),
    ("POST", "/products/{product_id}/reviews", "reviews"),
    ("PUT", "/products/{product_id}/reviews/{review_id}", "reviews"),
    ("DELETE", "/products/{product_id}/reviews/{review_id}", "reviews"),
    # Favourites
    ("GET", "/users/{user_id}/favourites", "favourites"),
    ("GET", "/products/{product_id}/is_favourite/{user_id}", "favourites"),
    ("POST", "/users/{user_id}/favourites", "favourites"),
    ("DELETE", "/users/{user_id}/favourites/{product_id}", "favourites"),
)


async def forward_to_backend(
    request: Request, backend: BackendClient = Depends(get_backend_client)
) -> Response:
    """
    Forward the current request to the backend and relay the answer.

    Returns:
        Backend response (status, body, content type unchanged), or
        502 {"error": ...} if the backend cannot be reached
    """
    body = await request.body()
    try:
        backend_response = await backend.forward(
            request.method,
            request.url.path,
            query=request.url.query,
            body=body,
            content_type=request.headers.get("content-type"),
        )
    except BackendUnavailableError as e:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": str(e)})

    return Response(
        content=backend_response.content,
        status_code=backend_response.status_code,
        media_type=backend_response.headers.get("content-type"),
    )


def _route_name(method: str, path: str) -> str:
    parts = [part.strip("{}") for part in path.strip("/").split("/")]
    return f"{method.lower()}_{'_'.join(parts)}"


def build_router() -> APIRouter:
    """Register every entry of PASSTHROUGH_ROUTES on a new router."""
    passthrough_router = APIRouter()
    for method, path, tag in PASSTHROUGH_ROUTES:
        passthrough_router.add_api_route(
            path,
            forward_to_backend,
            methods=[method],
            name=_route_name(method, path),
            tags=[tag],
            summary=f"{method} {path} (forwarded to backend)",
        )
    logger.debug(f"Registered {len(PASSTHROUGH_ROUTES)} passthrough routes")
    return passthrough_router


router = build_router()
