"""
FastAPI routes for safe walk routing endpoints.
"""

from fastapi import APIRouter
import logging

from api.schemas.routing import (
    RouteRequest,
    RouteSetResponse,
    HealthResponse,
    ErrorResponse
)
from api.services.routing_service import routing_service

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/routing", tags=["routing"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid coordinates or destination out of range"},
    404: {"model": ErrorResponse, "description": "No nearby road, no route, or no street data"},
    409: {"model": ErrorResponse, "description": "Request superseded by a newer one in the same session"},
    500: {"model": ErrorResponse, "description": "Internal error"},
}


@router.get("/health", response_model=HealthResponse, summary="Health Check")
async def health_check():
    """
    Check the health status of the routing service.

    Returns:
        HealthResponse: Service health information
    """
    return routing_service.get_health_status()


@router.post("/routes", response_model=RouteSetResponse, responses=ERROR_RESPONSES,
             summary="Calculate Safe Walking Routes")
async def calculate_routes(request: RouteRequest):
    """
    Calculate ranked safe walking routes between two locations.

    Up to five distinct routes are returned, selected route first. Each carries
    a safety breakdown, confidence and label. When data coverage is too thin
    to trust safety scores, routes are ordered by distance instead and
    ``selection_mode`` is ``"shortest"``.

    Example:
        ```json
        {
            "origin": {"latitude": 51.5079, "longitude": -0.1281},
            "destination": {"latitude": 51.5138, "longitude": -0.0984},
            "session_id": "abc123",
            "include_geojson": true
        }
        ```
    """
    logger.info(f"Route request from ({request.origin.latitude}, {request.origin.longitude}) to "
                f"({request.destination.latitude}, {request.destination.longitude})"
                f"{f' [session {request.session_id}]' if request.session_id else ''}")

    # RoutingError propagates to the handlers in api.main
    return await routing_service.calculate_routes(request)


@router.get("/", summary="API Information")
async def get_api_info():
    """
    Get information about the Safe Walk Routing API.

    Returns:
        dict: API information and available endpoints
    """
    return {
        "api": "Safe Walk Routing API",
        "version": routing_service.get_health_status().version,
        "description": "Walking routes ranked by estimated personal safety",
        "endpoints": {
            "POST /api/routing/routes": "Calculate ranked safe walking routes",
            "GET /api/routing/health": "Check service health status",
            "GET /api/routing/": "This information endpoint"
        },
        "max_distance_m": routing_service.engine_config().max_distance_m,
        "error_codes": [
            "INVALID_COORDINATES",
            "DESTINATION_OUT_OF_RANGE",
            "NO_NEARBY_ROAD",
            "NO_ROUTE_FOUND",
            "GRAPH_EMPTY",
            "REQUEST_SUPERSEDED",
            "validation_error",
            "internal_error"
        ]
    }
