"""
Pydantic schemas for the safe walk routing API.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


class LocationRequest(BaseModel):
    """
    Request model for a single location.

    Bounds are checked by the engine so out-of-range values are reported as
    INVALID_COORDINATES rather than a schema error.
    """
    latitude: float = Field(..., description="Latitude coordinate (WGS84, -90 to 90)")
    longitude: float = Field(..., description="Longitude coordinate (WGS84, -180 to 180)")


class RouteRequest(BaseModel):
    """Request model for safe route calculation."""
    origin: LocationRequest = Field(..., description="Starting location")
    destination: LocationRequest = Field(..., description="Destination location")
    session_id: Optional[str] = Field(
        default=None, max_length=128,
        description="Client session; a newer request in the same session supersedes older ones"
    )
    departure_hour: Optional[int] = Field(
        default=None, ge=0, le=23,
        description="Local departure hour; adapts scoring weights to the time of day"
    )
    include_geojson: bool = Field(default=False, description="Attach a GeoJSON FeatureCollection of the routes")


class SafetyBreakdownModel(BaseModel):
    """Route safety sub-scores (0-100 integers)."""
    road_type: int = Field(..., ge=0, le=100)
    lighting: int = Field(..., ge=0, le=100)
    crime: int = Field(..., ge=0, le=100)
    cctv: int = Field(..., ge=0, le=100)
    open_places: int = Field(..., ge=0, le=100)
    traffic: int = Field(..., ge=0, le=100)
    main_road: int = Field(..., ge=0, le=100)
    transit: int = Field(..., ge=0, le=100)
    lit_road: int = Field(..., ge=0, le=100)
    overall: int = Field(..., ge=1, le=100, description="Composite safety score")
    road_type_pct: Dict[str, int] = Field(default_factory=dict, description="Share of distance per road class")


class RouteSegmentModel(BaseModel):
    """Run of consecutive edges with the same safety color."""
    edge_ids: List[str]
    score: int
    color: str
    polyline: str


class RoadNameChangeModel(BaseModel):
    """Where a route moves onto a differently named street."""
    segment_index: int
    name: str
    distance_m: float


class RouteMarkerModel(BaseModel):
    """Map marker for a feature along a route."""
    latitude: float
    longitude: float
    category: Optional[str] = None


class RouteStatsModel(BaseModel):
    """Route diagnostics."""
    dead_ends: int
    sidewalk_pct: int
    unpaved_pct: int
    transit_stops_nearby: int
    cctv_nearby: int
    road_name_changes: List[RoadNameChangeModel] = Field(default_factory=list)


class RouteModel(BaseModel):
    """A single candidate route."""
    route_index: int = Field(..., description="Rank within the response (0 = selected)")
    is_selected: bool
    distance_m: float = Field(..., description="Route length in meters")
    duration_s: float = Field(..., description="Estimated walking time in seconds")
    polyline: str = Field(..., description="Encoded polyline (precision 5)")
    breakdown: SafetyBreakdownModel
    pathfinding_score: int
    confidence: float = Field(..., ge=0.0, le=1.0, description="Share of data sources with coverage")
    label: str
    color: str
    safety_variance: float
    segments: List[RouteSegmentModel] = Field(default_factory=list)
    poi_counts: Dict[str, int] = Field(default_factory=dict)
    markers: Dict[str, List[RouteMarkerModel]] = Field(
        default_factory=dict, description="Marker positions per feature kind along the route"
    )
    stats: RouteStatsModel
    edge_ids: List[str] = Field(default_factory=list)


class RouteSetResponse(BaseModel):
    """Response model for safe route calculation."""
    success: bool = Field(True, description="Whether the route calculation was successful")
    selection_mode: str = Field(..., description="'safety' or 'shortest' (low data confidence)")
    routes: List[RouteModel] = Field(..., description="Routes, selected route first")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Data quality, timings and bbox")
    geojson: Optional[Dict[str, Any]] = Field(default=None, description="Routes as GeoJSON FeatureCollection")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    config_preset: str = Field(..., description="Active routing configuration preset")
    crime_data_configured: bool = Field(..., description="Whether a crime data file is configured")
    crime_data_path: Optional[str] = Field(None, description="Configured crime data file")
    cache: Dict[str, Any] = Field(default_factory=dict, description="Cache and provider gate statistics")


class ErrorResponse(BaseModel):
    """Error response model."""
    success: bool = Field(False, description="Always false for error responses")
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Detailed error message")
    details: Optional[Any] = Field(None, description="Additional error details")
