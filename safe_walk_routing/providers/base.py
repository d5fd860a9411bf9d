"""
Provider interfaces for upstream geodata.

Concrete providers return typed results or raise ProviderNetworkError /
ProviderParseError. They are synchronous; the fetch coordinator runs them
in worker threads.
"""

from abc import ABC, abstractmethod
from typing import List

from shapely.geometry import Polygon

from ..data.models import BoundingBox, CrimeIncident, GeoPoint, PointOfInterest, StreetNetworkData


class StreetNetworkProvider(ABC):
    """Source of raw walkable ways and their nodes."""

    name = "street_network"

    @abstractmethod
    def ways_in_bbox(self, bbox: BoundingBox) -> StreetNetworkData:
        """
        Fetch ways and nodes inside a bounding box.

        Args:
            bbox: Area to fetch

        Returns:
            StreetNetworkData, empty when the area has no streets
        """
        pass


class PointsOfInterestProvider(ABC):
    """Source of activity places, CCTV cameras and street lamps."""

    name = "points_of_interest"

    @abstractmethod
    def points_of_interest_near(self, point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
        pass


class CrimeProvider(ABC):
    """Source of historical crime incidents."""

    name = "crime"

    @abstractmethod
    def crime_incidents_in_polygon(self, polygon: Polygon) -> List[CrimeIncident]:
        """
        Incidents inside a polygon.

        Args:
            polygon: Shapely polygon in (lon, lat) order
        """
        pass


class TransitProvider(ABC):
    """Source of public transit stops."""

    name = "transit"

    @abstractmethod
    def transit_stops_near(self, point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
        pass
