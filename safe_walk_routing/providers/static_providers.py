"""
In-memory providers for offline runs and tests.
"""

from typing import List, Sequence

from ..data.models import BoundingBox, GeoPoint, PointOfInterest, StreetNetworkData
from .base import PointsOfInterestProvider, StreetNetworkProvider, TransitProvider


class StaticStreetNetworkProvider(StreetNetworkProvider):
    """Serves a fixed network, clipped to ways with at least one node in the box."""

    def __init__(self, data: StreetNetworkData):
        self.data = data
        self.call_count = 0

    def ways_in_bbox(self, bbox: BoundingBox) -> StreetNetworkData:
        self.call_count += 1
        ways = tuple(
            way for way in self.data.ways
            if any(n in self.data.nodes and bbox.contains(self.data.nodes[n]) for n in way.node_ids)
        )
        node_ids = {n for way in ways for n in way.node_ids}
        nodes = {n: p for n, p in self.data.nodes.items() if n in node_ids}
        return StreetNetworkData(nodes=nodes, ways=ways)


def _within(items: Sequence[PointOfInterest], point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
    return [item for item in items if item.point.distance_to(point) <= radius_m]


class StaticPointsOfInterestProvider(PointsOfInterestProvider):
    def __init__(self, pois: Sequence[PointOfInterest] = ()):
        self.pois = list(pois)
        self.call_count = 0

    def points_of_interest_near(self, point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
        self.call_count += 1
        return _within(self.pois, point, radius_m)


class StaticTransitProvider(TransitProvider):
    def __init__(self, stops: Sequence[PointOfInterest] = ()):
        self.stops = list(stops)
        self.call_count = 0

    def transit_stops_near(self, point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
        self.call_count += 1
        return _within(self.stops, point, radius_m)
