"""
Uniform lat/lon grid for fast radius queries over point features.

Replaces pairwise distance scans: features are bucketed into square cells of
``cell_size_m`` at the reference latitude; a radius query visits the
containing cell plus its neighbors and filters by haversine distance.
"""

import math
from collections import defaultdict
from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from ...data.distance_utils import haversine_distance, meters_to_degrees
from ...data.models import GeoPoint

T = TypeVar('T')


class SpatialGridIndex(Generic[T]):
    """
    Grid-bucketed point index.

    Built once per request and read-only afterwards, so no locking is done.
    """

    def __init__(self, reference_latitude: float, cell_size_m: float = 100.0):
        """
        Initialize an empty index.

        Args:
            reference_latitude: Latitude at which cells are square
            cell_size_m: Cell edge length in meters
        """
        if cell_size_m <= 0:
            raise ValueError("cell_size_m must be positive")
        self.cell_size_m = cell_size_m
        self._lat_step, self._lon_step = meters_to_degrees(cell_size_m, reference_latitude)
        self._cells: Dict[Tuple[int, int], List[Tuple[int, T, GeoPoint]]] = defaultdict(list)
        self._count = 0

    def _cell_of(self, point: GeoPoint) -> Tuple[int, int]:
        return (math.floor(point.latitude / self._lat_step),
                math.floor(point.longitude / self._lon_step))

    def insert(self, item: T, point: GeoPoint) -> None:
        self._cells[self._cell_of(point)].append((self._count, item, point))
        self._count += 1

    def query_near_with_distance(self, point: GeoPoint, radius_m: float) -> List[Tuple[T, float]]:
        """
        Items within ``radius_m`` of ``point`` with their distances.

        The containing cell and its 8 neighbors are visited; radii larger
        than one cell widen the search ring so nothing inside the radius is
        missed.

        Returns:
            (item, distance_m) pairs, nearest first, insertion order on ties
        """
        if radius_m < 0 or not self._count:
            return []
        rings = max(1, math.ceil(radius_m / self.cell_size_m))
        row, col = self._cell_of(point)

        hits = []
        for d_row in range(-rings, rings + 1):
            for d_col in range(-rings, rings + 1):
                bucket = self._cells.get((row + d_row, col + d_col))
                if not bucket:
                    continue
                for seq, item, item_point in bucket:
                    distance = haversine_distance(point.latitude, point.longitude,
                                                  item_point.latitude, item_point.longitude)
                    if distance <= radius_m:
                        hits.append((distance, seq, item))

        hits.sort(key=lambda hit: (hit[0], hit[1]))
        return [(item, distance) for distance, _, item in hits]

    def query_near(self, point: GeoPoint, radius_m: float) -> List[T]:
        return [item for item, _ in self.query_near_with_distance(point, radius_m)]

    def nearest(self, point: GeoPoint, max_radius_m: float) -> Optional[Tuple[T, float]]:
        """Closest item within ``max_radius_m``, or None."""
        hits = self.query_near_with_distance(point, max_radius_m)
        return hits[0] if hits else None

    def __len__(self) -> int:
        return self._count


def build_point_index(items: Iterable[Any], reference_latitude: float,
                      cell_size_m: float = 100.0) -> SpatialGridIndex:
    """Index objects exposing a ``point`` attribute."""
    index = SpatialGridIndex(reference_latitude, cell_size_m)
    for item in items:
        index.insert(item, item.point)
    return index
