"""
Geodata cache keyed by geohash cells.

Upstream provider responses are memoized per quantized geographic cell plus
query parameters, so overlapping requests reuse the same upstream data.
"""

import time
from typing import Any, Callable

import geohash

from ...data.models import BoundingBox, GeoPoint
from .ttl_cache import TTLCache


class GeodataCache(TTLCache):
    """TTL cache for provider results with geohash-based keys."""

    def __init__(self, ttl_s: float = 1800.0, max_entries: int = 100, precision: int = 7,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_s: Default TTL for provider results
            max_entries: Maximum cached provider results
            precision: Geohash precision (7 = ~150m cells)
            clock: Time source
        """
        super().__init__(ttl_s, max_entries, clock=clock, name="geodata")
        self.precision = precision

    def cell(self, point: GeoPoint) -> str:
        return geohash.encode(point.latitude, point.longitude, self.precision)

    def bbox_key(self, provider: str, bbox: BoundingBox, **params: Any) -> str:
        """Key for a bounding-box query: geohash of both corners plus parameters."""
        south_west = geohash.encode(bbox.south, bbox.west, self.precision)
        north_east = geohash.encode(bbox.north, bbox.east, self.precision)
        return self._join(provider, f"{south_west}-{north_east}", params)

    def point_key(self, provider: str, point: GeoPoint, radius_m: float, **params: Any) -> str:
        """Key for a point-radius query, radius rounded to 50m buckets."""
        radius_bucket = int(round(radius_m / 50.0)) * 50
        return self._join(provider, f"{self.cell(point)}-r{radius_bucket}", params)

    @staticmethod
    def _join(provider: str, cell: str, params: dict) -> str:
        suffix = ','.join(f"{k}={params[k]}" for k in sorted(params))
        return f"{provider}:{cell}:{suffix}" if suffix else f"{provider}:{cell}"
