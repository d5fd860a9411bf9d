"""
Short-lived cache of computed RouteSets per origin/destination pair.
"""

import time
from typing import Callable, Hashable, Optional, Tuple

from ...data.models import GeoPoint, RouteSet
from .ttl_cache import TTLCache


class ResultCache(TTLCache):
    """
    Route sets keyed by rounded origin and destination coordinates.

    ``variant`` separates results computed under different scoring weights
    for the same trip.
    """

    def __init__(self, ttl_s: float = 300.0, max_entries: int = 50, decimals: int = 3,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl_s, max_entries, clock=clock, name="results")
        self.decimals = decimals

    def key_for(self, origin: GeoPoint, destination: GeoPoint,
                variant: Optional[Hashable] = None) -> Tuple[Hashable, ...]:
        d = self.decimals
        return (round(origin.latitude, d), round(origin.longitude, d),
                round(destination.latitude, d), round(destination.longitude, d), variant)

    def get_routes(self, origin: GeoPoint, destination: GeoPoint,
                   variant: Optional[Hashable] = None) -> Optional[RouteSet]:
        return self.get(self.key_for(origin, destination, variant))

    def put_routes(self, origin: GeoPoint, destination: GeoPoint, route_set: RouteSet,
                   variant: Optional[Hashable] = None) -> None:
        self.put(self.key_for(origin, destination, variant), route_set)
