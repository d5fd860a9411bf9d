"""
Error taxonomy for safe walk routing.

Every user-visible failure carries a stable machine-readable ``code``, a
message that is safe to display, and ``details`` with enough context
(endpoint, coordinate pair) for support diagnosis.
"""

from typing import Any, Dict, Optional


class RoutingError(Exception):
    """Base class for errors surfaced to API clients."""

    code = "internal_error"
    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the error body shape used by the API."""
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "details": self.details or None,
        }


class InvalidCoordinatesError(RoutingError):
    """Malformed or out-of-bounds coordinates."""

    code = "INVALID_COORDINATES"
    http_status = 400


class DestinationOutOfRangeError(RoutingError):
    """Straight-line distance exceeds the configured walking ceiling."""

    code = "DESTINATION_OUT_OF_RANGE"
    http_status = 400


class NoNearbyRoadError(RoutingError):
    """An endpoint could not be snapped to any walkable edge."""

    code = "NO_NEARBY_ROAD"
    http_status = 404


class NoRouteFoundError(RoutingError):
    """Origin and destination are not connected in the walkable graph."""

    code = "NO_ROUTE_FOUND"
    http_status = 404


class GraphEmptyError(NoRouteFoundError):
    """The bounding box produced zero usable edges."""

    code = "GRAPH_EMPTY"
    http_status = 404


class RequestSupersededError(RoutingError):
    """A newer request in the same session replaced this one."""

    code = "REQUEST_SUPERSEDED"
    http_status = 409


class ProviderError(Exception):
    """Base class for upstream data provider failures."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderNetworkError(ProviderError):
    """Transient upstream failure (timeout, 429, 5xx). Safe to retry."""


class ProviderParseError(ProviderError):
    """Upstream returned data that could not be interpreted. Not retried."""
