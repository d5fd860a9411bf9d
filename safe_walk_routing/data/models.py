"""
Core data types shared by the routing pipeline.

All value types are immutable dataclasses. Graph-owned objects (StreetNode,
StreetEdge) are created by the graph builder and never mutated afterwards;
derived objects (SafetyBreakdown, Route, RouteSet) are rebuilt with
``dataclasses.replace`` instead of being modified in place.
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from shapely.geometry import LineString, Polygon, box

from ..errors import InvalidCoordinatesError
from .distance_utils import haversine_distance, meters_to_degrees


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 coordinate in decimal degrees."""
    latitude: float
    longitude: float

    def validate(self, name: str = "point") -> 'GeoPoint':
        """
        Check the coordinate is finite and in range.

        Raises:
            InvalidCoordinatesError: If latitude/longitude are malformed
        """
        lat, lon = self.latitude, self.longitude
        if not (isinstance(lat, (int, float)) and isinstance(lon, (int, float))):
            raise InvalidCoordinatesError(f"{name} coordinates must be numbers",
                                          {"which": name})
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidCoordinatesError(f"{name} coordinates must be finite",
                                          {"which": name})
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise InvalidCoordinatesError(
                f"{name} coordinates out of range: ({lat}, {lon})",
                {"which": name, "latitude": lat, "longitude": lon})
        return self

    def distance_to(self, other: 'GeoPoint') -> float:
        """Haversine distance in meters."""
        return haversine_distance(self.latitude, self.longitude,
                                  other.latitude, other.longitude)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, points: Iterable[GeoPoint], margin_m: float = 0.0) -> 'BoundingBox':
        """Smallest box containing ``points``, padded by ``margin_m`` on every side."""
        points = list(points)
        if not points:
            raise ValueError("BoundingBox.around requires at least one point")
        lats = [p.latitude for p in points]
        lons = [p.longitude for p in points]
        mid_lat = (min(lats) + max(lats)) / 2
        lat_pad, lon_pad = meters_to_degrees(margin_m, mid_lat)
        return cls(
            south=max(-90.0, min(lats) - lat_pad),
            west=max(-180.0, min(lons) - lon_pad),
            north=min(90.0, max(lats) + lat_pad),
            east=min(180.0, max(lons) + lon_pad),
        )

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.south + self.north) / 2, (self.west + self.east) / 2)

    @property
    def half_diagonal_m(self) -> float:
        return haversine_distance(self.south, self.west, self.north, self.east) / 2

    def contains(self, point: GeoPoint) -> bool:
        return (self.south <= point.latitude <= self.north and
                self.west <= point.longitude <= self.east)

    def to_polygon(self) -> Polygon:
        """Shapely polygon in (lon, lat) order."""
        return box(self.west, self.south, self.east, self.north)


class HighwayClass(Enum):
    """Walkable OSM highway classes."""
    TRUNK = "trunk"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"
    RESIDENTIAL = "residential"
    LIVING_STREET = "living_street"
    PEDESTRIAN = "pedestrian"
    UNCLASSIFIED = "unclassified"
    SERVICE = "service"
    CYCLEWAY = "cycleway"
    FOOTWAY = "footway"
    PATH = "path"
    STEPS = "steps"
    TRACK = "track"

    @classmethod
    def parse(cls, tag: Optional[str]) -> 'HighwayClass':
        """Map a raw highway tag to a class; link roads collapse onto their parent."""
        if not tag:
            return cls.UNCLASSIFIED
        value = str(tag).strip().lower()
        if value.endswith('_link'):
            value = value[:-len('_link')]
        if value in ('road', 'bridleway', 'corridor'):
            value = {'road': 'unclassified', 'bridleway': 'path', 'corridor': 'footway'}[value]
        try:
            return cls(value)
        except ValueError:
            return cls.UNCLASSIFIED


class LitFlag(Enum):
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, tag: Optional[str]) -> 'LitFlag':
        if tag is None:
            return cls.UNKNOWN
        value = str(tag).strip().lower()
        if value in ('yes', '24/7', 'automatic', 'limited', 'interval', 'sunset-sunrise', 'dusk-dawn'):
            return cls.YES
        if value in ('no', 'disused'):
            return cls.NO
        return cls.UNKNOWN


class SurfaceFlag(Enum):
    PAVED = "paved"
    UNPAVED = "unpaved"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StreetNode:
    id: Any
    point: GeoPoint


@dataclass(frozen=True)
class StreetEdge:
    """One walkable segment between two consecutive way nodes."""
    id: str
    way_id: Any
    u: Any
    v: Any
    geometry: Tuple[GeoPoint, ...]
    length_m: float
    highway: HighwayClass = HighwayClass.UNCLASSIFIED
    lit: LitFlag = LitFlag.UNKNOWN
    surface: SurfaceFlag = SurfaceFlag.UNKNOWN
    name: Optional[str] = None
    has_sidewalk: bool = False

    @property
    def midpoint(self) -> GeoPoint:
        """Point halfway along the geometry."""
        if len(self.geometry) == 1:
            return self.geometry[0]
        line = LineString([(p.longitude, p.latitude) for p in self.geometry])
        mid = line.interpolate(0.5, normalized=True)
        return GeoPoint(mid.y, mid.x)

    def oriented_coords(self, start_node: Any) -> List[Tuple[float, float]]:
        """Geometry as (lat, lon) pairs, running from ``start_node`` to the other end."""
        coords = [p.as_tuple() for p in self.geometry]
        return coords if start_node == self.u else coords[::-1]


@dataclass(frozen=True)
class CrimeIncident:
    point: GeoPoint
    category: str = "unknown"
    severity: float = 0.4
    period: Optional[str] = None  # reporting month, "YYYY-MM"


class PoiKind(Enum):
    ACTIVITY = "activity"
    CCTV = "cctv"
    STREET_LAMP = "street_lamp"
    TRANSIT = "transit"


@dataclass(frozen=True)
class PointOfInterest:
    """
    A point feature near the route.

    Activity places (shops, restaurants, leisure) carry ``open_now``, which
    stays ``None`` unless a real-time source confirms opening hours.
    """
    point: GeoPoint
    kind: PoiKind
    category: str = ""
    open_now: Optional[bool] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class RawWay:
    id: Any
    node_ids: Tuple[Any, ...]
    tags: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StreetNetworkData:
    """Raw street network as returned by a street-network provider."""
    nodes: Mapping[Any, GeoPoint] = field(default_factory=dict)
    ways: Tuple[RawWay, ...] = ()

    def is_empty(self) -> bool:
        return not self.ways


@dataclass(frozen=True)
class SafetyBreakdown:
    """
    Route safety sub-scores, all integers in [0, 100].

    ``overall`` is derived only from the persisted integer inputs returned by
    ``composite_inputs()``, so ``recompute_overall`` reproduces it exactly.
    """
    road_type: int
    lighting: int
    crime: int
    cctv: int
    open_places: int
    traffic: int
    main_road: int
    transit: int
    lit_road: int
    overall: int
    road_type_pct: Dict[str, int] = field(default_factory=dict)

    def composite_inputs(self) -> Dict[str, int]:
        return {
            'crime': self.crime,
            'lighting': self.lighting,
            'main_road': self.main_road,
            'activity': self.open_places,
            'transit': self.transit,
            'lit_road': self.lit_road,
        }

    @staticmethod
    def compose(inputs: Mapping[str, int], weights: Mapping[str, float]) -> int:
        """Weighted composite of 0-100 inputs, clamped to [1, 100]."""
        raw = sum(weights[name] * inputs[name] for name in weights)
        return int(round(min(100.0, max(1.0, raw))))

    def recompute_overall(self, weights: Mapping[str, float]) -> int:
        return self.compose(self.composite_inputs(), weights)


@dataclass(frozen=True)
class RouteSegment:
    """Run of consecutive edges sharing the same safety color."""
    edge_ids: Tuple[str, ...]
    score: int
    color: str
    polyline: str


@dataclass(frozen=True)
class RoadNameChange:
    """Point along a route where the street name changes."""
    segment_index: int  # index of the first edge on the new street
    name: str
    distance_m: float  # distance walked before reaching it


@dataclass(frozen=True)
class RouteMarker:
    """Map marker for a feature along a route."""
    latitude: float
    longitude: float
    category: Optional[str] = None


@dataclass(frozen=True)
class RouteStats:
    dead_ends: int = 0
    sidewalk_pct: int = 0
    unpaved_pct: int = 0
    transit_stops_nearby: int = 0
    cctv_nearby: int = 0
    road_name_changes: Tuple[RoadNameChange, ...] = ()


@dataclass(frozen=True)
class Route:
    node_ids: Tuple[Any, ...]
    edge_ids: Tuple[str, ...]
    distance_m: float
    duration_s: float
    polyline: str
    breakdown: SafetyBreakdown
    pathfinding_score: int
    confidence: float
    label: str
    color: str
    safety_variance: float = 0.0
    segments: Tuple[RouteSegment, ...] = ()
    poi_counts: Dict[str, int] = field(default_factory=dict)
    markers: Dict[str, Tuple[RouteMarker, ...]] = field(default_factory=dict)
    stats: RouteStats = field(default_factory=RouteStats)
    route_index: int = 0
    is_selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['node_ids'] = list(self.node_ids)
        data['edge_ids'] = list(self.edge_ids)
        data['segments'] = [asdict(s) | {'edge_ids': list(s.edge_ids)} for s in self.segments]
        data['markers'] = {kind: [asdict(m) for m in items] for kind, items in self.markers.items()}
        data['stats']['road_name_changes'] = [asdict(c) for c in self.stats.road_name_changes]
        return data


@dataclass(frozen=True)
class RouteSet:
    """Ranked routes for one origin/destination pair; the first is the selected one."""
    routes: Tuple[Route, ...]
    selection_mode: str  # "safety" or "shortest"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def selected(self) -> Route:
        return self.routes[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'routes': [route.to_dict() for route in self.routes],
            'selection_mode': self.selection_mode,
            'metadata': self.metadata,
        }
