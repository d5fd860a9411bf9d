"""
Data model and geographic utilities for safe walk routing.

This module contains:
- Immutable route/graph data types
- Distance calculations
- Polyline encoding
- Crime data loading
"""

from .models import (
    GeoPoint,
    BoundingBox,
    HighwayClass,
    LitFlag,
    SurfaceFlag,
    StreetNode,
    StreetEdge,
    CrimeIncident,
    PoiKind,
    PointOfInterest,
    RawWay,
    StreetNetworkData,
    SafetyBreakdown,
    RouteSegment,
    RoadNameChange,
    RouteMarker,
    RouteStats,
    Route,
    RouteSet,
)
from .distance_utils import haversine_distance, offset_coords
from .polyline import encode_polyline, decode_polyline
from .data_loader import load_crime_incidents

__all__ = [
    'GeoPoint',
    'BoundingBox',
    'HighwayClass',
    'LitFlag',
    'SurfaceFlag',
    'StreetNode',
    'StreetEdge',
    'CrimeIncident',
    'PoiKind',
    'PointOfInterest',
    'RawWay',
    'StreetNetworkData',
    'SafetyBreakdown',
    'RouteSegment',
    'RoadNameChange',
    'RouteMarker',
    'RouteStats',
    'Route',
    'RouteSet',
    'haversine_distance',
    'offset_coords',
    'encode_polyline',
    'decode_polyline',
    'load_crime_incidents',
]
