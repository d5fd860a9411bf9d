"""
Concurrent upstream fetches for one request area.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config.routing_config import RoutingConfig
from ..data.models import BoundingBox, CrimeIncident, PointOfInterest, StreetNetworkData
from ..errors import ProviderError
from ..mapping.cache.geodata_cache import GeodataCache
from ..providers.base import (
    CrimeProvider, PointsOfInterestProvider, StreetNetworkProvider, TransitProvider,
)
from .epoch import RequestToken
from .provider_gate import ProviderGate

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"
STATUS_TIMEOUT = "timeout"


@dataclass
class ProviderSet:
    street_network: StreetNetworkProvider
    points_of_interest: PointsOfInterestProvider
    crime: CrimeProvider
    transit: TransitProvider


@dataclass
class AreaData:
    """Whatever arrived before the fetch deadline; missing sources are empty."""
    network: StreetNetworkData = field(default_factory=StreetNetworkData)
    points_of_interest: List[PointOfInterest] = field(default_factory=list)
    crimes: List[CrimeIncident] = field(default_factory=list)
    transit_stops: List[PointOfInterest] = field(default_factory=list)
    source_status: Dict[str, str] = field(default_factory=dict)
    cache_hits: List[str] = field(default_factory=list)


def _is_empty(result: Any) -> bool:
    if isinstance(result, StreetNetworkData):
        return result.is_empty()
    return not result


class AreaFetcher:
    """
    Fetch street network, POIs, crime and transit for an area concurrently.

    All four calls start together and are joined with a single deadline.
    Sources that fail or miss the deadline degrade to empty data instead of
    failing the request; the caller decides whether that is fatal.
    """

    def __init__(self, providers: ProviderSet, cache: GeodataCache,
                 gates: Dict[str, ProviderGate], config: Optional[RoutingConfig] = None):
        self.providers = providers
        self.cache = cache
        self.gates = gates
        self.config = config or RoutingConfig()

    def _plan(self, bbox: BoundingBox) -> Dict[str, Tuple[str, Callable[..., Any], tuple, float]]:
        cfg = self.config
        center = bbox.center
        radius = bbox.half_diagonal_m
        return {
            'street_network': (self.cache.bbox_key('street_network', bbox),
                               self.providers.street_network.ways_in_bbox, (bbox,), cfg.geodata_ttl_s),
            'points_of_interest': (self.cache.point_key('points_of_interest', center, radius),
                                   self.providers.points_of_interest.points_of_interest_near,
                                   (center, radius), cfg.geodata_ttl_s),
            'crime': (self.cache.bbox_key('crime', bbox),
                      self.providers.crime.crime_incidents_in_polygon,
                      (bbox.to_polygon(),), cfg.crime_ttl_s),
            'transit': (self.cache.point_key('transit', center, radius),
                        self.providers.transit.transit_stops_near, (center, radius), cfg.geodata_ttl_s),
        }

    async def _fetch_one(self, source: str, key: str, func: Callable[..., Any], args: tuple,
                         ttl_s: float, token: Optional[RequestToken]) -> Tuple[Any, bool]:
        cached = self.cache.get(key)
        if cached is not None:
            return cached, True
        result = await self.gates[source].run(key, func, *args)
        if token is not None:
            token.check(f"{source} cache write")
        self.cache.put(key, result, ttl_s)
        return result, False

    async def fetch(self, bbox: BoundingBox, token: Optional[RequestToken] = None) -> AreaData:
        """
        Fetch every source for ``bbox`` with one shared deadline.

        Args:
            bbox: Request area
            token: Request token checked before cache writes

        Returns:
            AreaData with per-source status

        Raises:
            RequestSupersededError: If the token went stale during the fetch
        """
        plan = self._plan(bbox)
        tasks = {
            source: asyncio.ensure_future(self._fetch_one(source, key, func, args, ttl, token))
            for source, (key, func, args, ttl) in plan.items()
        }
        done, pending = await asyncio.wait(tasks.values(), timeout=self.config.fetch_timeout_s)
        for task in pending:
            task.cancel()

        area = AreaData()
        for source, task in tasks.items():
            if task in pending:
                logger.warning(f"{source} missed the {self.config.fetch_timeout_s:.0f}s fetch deadline")
                area.source_status[source] = STATUS_TIMEOUT
                continue
            error = task.exception()
            if isinstance(error, ProviderError):
                logger.warning(f"{source} unavailable: {error}")
                area.source_status[source] = STATUS_FAILED
                continue
            if error is not None:
                raise error

            result, from_cache = task.result()
            if from_cache:
                area.cache_hits.append(source)
            area.source_status[source] = STATUS_EMPTY if _is_empty(result) else STATUS_OK
            if source == 'street_network':
                area.network = result
            elif source == 'points_of_interest':
                area.points_of_interest = list(result)
            elif source == 'crime':
                area.crimes = list(result)
            else:
                area.transit_stops = list(result)

        logger.info(f"Area fetch completed: {area.source_status} (cached: {area.cache_hits or 'none'})")
        return area
