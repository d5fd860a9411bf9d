"""
Service layer for the safe walk routing API.
"""

import logging
import os
from typing import Dict, Any, Optional

import geojson

from safe_walk_routing import SafeRouteEngine, RoutingConfig, GeoPoint, RouteSet, __version__
from safe_walk_routing.data.data_loader import default_crime_data_path
from safe_walk_routing.data.polyline import decode_polyline
from api.schemas.routing import RouteRequest, RouteSetResponse, HealthResponse

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "balanced"


class SafeWalkRoutingService:
    """
    Service class that wires the routing engine into the API.

    The engine is built lazily on first use from environment configuration:
    ``SAFE_WALK_CRIME_DATA`` (crime GeoJSON path) and
    ``SAFE_WALK_CONFIG_PRESET`` (balanced, safety_first or low_latency).
    """

    def __init__(self):
        """Initialize the routing service."""
        self.crime_data_path = default_crime_data_path()
        self.config_preset = os.environ.get('SAFE_WALK_CONFIG_PRESET', DEFAULT_PRESET)
        self._engine: Optional[SafeRouteEngine] = None

    @property
    def engine(self) -> SafeRouteEngine:
        if self._engine is None:
            logger.info(f"Initializing routing engine with '{self.config_preset}' preset...")
            config = RoutingConfig.from_preset(self.config_preset)
            if self.crime_data_path and not os.path.exists(self.crime_data_path):
                logger.warning(f"Crime data file not found at {self.crime_data_path}; "
                               f"routing without crime data")
                self.crime_data_path = None
            self._engine = SafeRouteEngine.with_openstreetmap(self.crime_data_path, config)
        return self._engine

    def set_engine(self, engine: SafeRouteEngine) -> None:
        """Replace the engine, e.g. with one backed by static providers."""
        self._engine = engine

    def engine_config(self) -> RoutingConfig:
        """Active configuration, without forcing the engine to be built."""
        if self._engine is not None:
            return self._engine.config
        return RoutingConfig.from_preset(self.config_preset)

    def get_health_status(self) -> HealthResponse:
        """Get the health status of the routing service."""
        cache_stats = self._engine.get_cache_stats() if self._engine is not None else {}
        return HealthResponse(
            status="healthy" if self.crime_data_path else "degraded",
            version=__version__,
            config_preset=self.config_preset,
            crime_data_configured=bool(self.crime_data_path),
            crime_data_path=self.crime_data_path,
            cache=cache_stats
        )

    async def calculate_routes(self, request: RouteRequest) -> RouteSetResponse:
        """
        Calculate ranked safe routes between two points.

        Args:
            request: Route calculation request

        Returns:
            RouteSetResponse with routes and optional GeoJSON

        Raises:
            RoutingError: Propagated to the API exception handlers
        """
        origin = GeoPoint(request.origin.latitude, request.origin.longitude)
        destination = GeoPoint(request.destination.latitude, request.destination.longitude)

        engine = self.engine
        token = engine.context.epochs.token_for(request.session_id)
        route_set = await engine.find_safe_routes(origin, destination, token, request.departure_hour)

        payload = route_set.to_dict()
        if request.include_geojson:
            payload['geojson'] = route_set_to_geojson(route_set)
        return RouteSetResponse(success=True, **payload)


def route_set_to_geojson(route_set: RouteSet) -> Dict[str, Any]:
    """
    Convert a route set to a GeoJSON FeatureCollection.

    One LineString feature per route, followed by start and end points.
    """
    features = []
    for route in route_set.routes:
        coordinates = [(lon, lat) for lat, lon in decode_polyline(route.polyline)]
        features.append(geojson.Feature(
            geometry=geojson.LineString(coordinates),
            properties={
                "route_index": route.route_index,
                "is_selected": route.is_selected,
                "label": route.label,
                "color": route.color,
                "safety_score": route.breakdown.overall,
                "confidence": route.confidence,
                "distance_m": route.distance_m,
                "duration_s": route.duration_s,
            }
        ))

    selected = decode_polyline(route_set.selected.polyline)
    if selected:
        start_lat, start_lon = selected[0]
        end_lat, end_lon = selected[-1]
        features.append(geojson.Feature(
            geometry=geojson.Point((start_lon, start_lat)),
            properties={"type": "start", "name": "Start Point"}
        ))
        features.append(geojson.Feature(
            geometry=geojson.Point((end_lon, end_lat)),
            properties={"type": "end", "name": "End Point"}
        ))

    return geojson.FeatureCollection(features)


# Global service instance
routing_service = SafeWalkRoutingService()
