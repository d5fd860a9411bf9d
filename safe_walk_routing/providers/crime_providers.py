"""
Crime incident providers.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pyogrio.errors import DataSourceError
from shapely.geometry import Point, Polygon
from shapely.prepared import prep

from ..data.data_loader import load_crime_incidents
from ..data.models import CrimeIncident
from ..errors import ProviderParseError
from .base import CrimeProvider

logger = logging.getLogger(__name__)


def _in_polygon(incidents: Sequence[CrimeIncident], polygon: Polygon) -> List[CrimeIncident]:
    area = prep(polygon)
    return [c for c in incidents
            if area.covers(Point(c.point.longitude, c.point.latitude))]


class GeoJSONCrimeProvider(CrimeProvider):
    """
    Crime incidents from a local GeoJSON file, loaded lazily and kept in memory.
    """

    def __init__(self, data_path: Union[str, Path]):
        self.data_path = Path(data_path)
        self._incidents: Optional[List[CrimeIncident]] = None

    @property
    def incidents(self) -> List[CrimeIncident]:
        if self._incidents is None:
            try:
                self._incidents = load_crime_incidents(self.data_path)
            except (OSError, ValueError, DataSourceError) as e:
                raise ProviderParseError(self.name, f"cannot read {self.data_path}: {e}") from e
        return self._incidents

    def crime_incidents_in_polygon(self, polygon: Polygon) -> List[CrimeIncident]:
        found = _in_polygon(self.incidents, polygon)
        logger.info(f"{len(found)} crime incidents in query area")
        return found


class StaticCrimeProvider(CrimeProvider):
    """In-memory crime provider."""

    def __init__(self, incidents: Sequence[CrimeIncident] = ()):
        self.incidents = list(incidents)
        self.call_count = 0

    def crime_incidents_in_polygon(self, polygon: Polygon) -> List[CrimeIncident]:
        self.call_count += 1
        return _in_polygon(self.incidents, polygon)
