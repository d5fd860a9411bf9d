"""
End-to-end safe route computation.

Pipeline: validate -> range check -> result cache -> join identical in-flight
request -> concurrent fetch -> graph build -> feature indexes & edge scoring ->
snapping -> diversified search -> route scoring -> confidence-gated selection -> cache & return.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from ...config.routing_config import RoutingConfig
from ...config.scoring_tables import time_period_for_hour
from ...context import EngineContext
from ...data.models import BoundingBox, GeoPoint, Route, RouteSet
from ...errors import DestinationOutOfRangeError, GraphEmptyError, RequestSupersededError, RoutingError
from ...fetch.area_fetcher import STATUS_FAILED, STATUS_TIMEOUT, AreaData, AreaFetcher, ProviderSet
from ...fetch.epoch import RequestToken
from ...mapping.network.graph_builder import build_street_graph
from ...mapping.network.network_builder import build_node_index, find_nearest_nodes, request_bbox
from ..routing.path_search import DiversifiedPathSearch
from ..scoring.edge_scorer import EdgeScorer
from ..scoring.feature_context import FeatureContext
from ..scoring.route_scorer import RouteScorer
from .confidence_selector import ConfidenceGatedSelector

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


class SafeRouteEngine:
    """
    Safety-scored walking route engine.
    """

    def __init__(self, providers: ProviderSet, config: Optional[RoutingConfig] = None,
                 context: Optional[EngineContext] = None):
        """
        Initialize the engine.

        Args:
            providers: Upstream data providers
            config: Routing configuration
            context: Shared caches/gates; a private one is created if omitted
        """
        self.config = config or RoutingConfig()
        self.config.validate()
        self.providers = providers
        self.context = context or EngineContext.create(self.config)
        self.fetcher = AreaFetcher(providers, self.context.geodata_cache, self.context.gates, self.config)
        self.edge_scorer = EdgeScorer(self.config)
        self.route_scorer = RouteScorer(self.config)
        self.selector = ConfidenceGatedSelector(self.config)
        self._inflight: Dict[Tuple, asyncio.Task] = {}

        logger.info(f"SafeRouteEngine initialized (max {self.config.max_routes} routes, "
                    f"{self.config.max_distance_m / 1000:.0f}km range)")

    @classmethod
    def with_openstreetmap(cls, crime_data_path: Optional[str] = None,
                           config: Optional[RoutingConfig] = None,
                           context: Optional[EngineContext] = None) -> 'SafeRouteEngine':
        """
        Engine wired to OSMnx providers, with crimes from a GeoJSON file if given.
        """
        from ...providers.crime_providers import GeoJSONCrimeProvider, StaticCrimeProvider
        from ...providers.osm_providers import (
            OsmnxPointsOfInterestProvider, OsmnxStreetNetworkProvider, OsmnxTransitProvider,
        )

        crime = GeoJSONCrimeProvider(crime_data_path) if crime_data_path else StaticCrimeProvider()
        providers = ProviderSet(
            street_network=OsmnxStreetNetworkProvider(),
            points_of_interest=OsmnxPointsOfInterestProvider(),
            crime=crime,
            transit=OsmnxTransitProvider(),
        )
        return cls(providers, config, context)

    def check_range(self, origin: GeoPoint, destination: GeoPoint) -> float:
        """
        Validate inputs and enforce the straight-line distance ceiling.

        Returns:
            Straight-line distance in meters

        Raises:
            InvalidCoordinatesError: For malformed coordinates
            DestinationOutOfRangeError: If the trip is longer than the ceiling
        """
        origin.validate('origin')
        destination.validate('destination')
        distance = origin.distance_to(destination)
        if distance > self.config.max_distance_m:
            raise DestinationOutOfRangeError(
                f"Destination is {distance / 1000:.1f}km away; walking routes are limited to "
                f"{self.config.max_distance_m / 1000:.1f}km",
                {"distance_m": round(distance, 1), "max_distance_m": self.config.max_distance_m},
            )
        return distance

    async def find_safe_routes(self, origin: GeoPoint, destination: GeoPoint,
                               token: Optional[RequestToken] = None,
                               departure_hour: Optional[int] = None) -> RouteSet:
        """
        Compute ranked safe walking routes.

        Identical trips requested while one is already being computed share
        that computation instead of starting another.

        Args:
            origin: Start point
            destination: End point
            token: Optional request token; a stale token aborts before any commit
            departure_hour: Local hour (0-23) selecting time-of-day edge weights;
                the configured weights are used when omitted

        Returns:
            RouteSet, selected route first

        Raises:
            RoutingError: Any of the typed routing failures
            ValueError: If ``departure_hour`` is outside 0-23
        """
        try:
            return await self._find_safe_routes(origin, destination, token, departure_hour)
        except RoutingError as e:
            e.details.setdefault('origin', [origin.latitude, origin.longitude])
            e.details.setdefault('destination', [destination.latitude, destination.longitude])
            logger.warning(f"Route request failed with {e.code}: {e.message}")
            raise

    def find_safe_routes_sync(self, origin: GeoPoint, destination: GeoPoint,
                              token: Optional[RequestToken] = None,
                              departure_hour: Optional[int] = None) -> RouteSet:
        """Blocking wrapper around ``find_safe_routes``."""
        return asyncio.run(self.find_safe_routes(origin, destination, token, departure_hour))

    def _config_for_hour(self, departure_hour: Optional[int]) -> Tuple[Optional[str], RoutingConfig]:
        if departure_hour is None:
            return None, self.config
        return time_period_for_hour(departure_hour), self.config.for_departure_hour(departure_hour)

    async def _find_safe_routes(self, origin: GeoPoint, destination: GeoPoint,
                                token: Optional[RequestToken],
                                departure_hour: Optional[int]) -> RouteSet:
        total_start = time.perf_counter()
        straight_line = self.check_range(origin, destination)
        period, config = self._config_for_hour(departure_hour)
        logger.info(f"Finding safe routes from {origin.as_tuple()} to {destination.as_tuple()} "
                    f"({straight_line:.0f}m straight line, weights: {period or 'configured'})")

        results = self.context.result_cache
        key = results.key_for(origin, destination, period)
        loop = asyncio.get_running_loop()
        while True:
            cached = results.get_routes(origin, destination, period)
            if cached is not None:
                logger.info("Returning cached route set")
                return cached

            shared = self._inflight.get(key)
            if shared is None or shared.get_loop() is not loop:
                break
            logger.info("Joining in-flight computation for the same trip")
            try:
                route_set = await asyncio.shield(shared)
            except RequestSupersededError:
                # the request that started it was superseded before committing
                if self._inflight.get(key) is shared:
                    del self._inflight[key]
                continue
            if token is not None:
                token.check("shared result")
            return route_set

        task = asyncio.ensure_future(self._compute_route_set(
            origin, destination, token, departure_hour, period, config, total_start))
        self._inflight[key] = task
        task.add_done_callback(lambda done, key=key: self._forget(key, done))
        # shield so a caller that goes away does not cancel work others joined
        return await asyncio.shield(task)

    def _forget(self, key: Tuple, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            task.exception()  # mark retrieved; waiters re-raise it themselves

    async def _compute_route_set(self, origin: GeoPoint, destination: GeoPoint,
                                 token: Optional[RequestToken], departure_hour: Optional[int],
                                 period: Optional[str], config: RoutingConfig,
                                 total_start: float) -> RouteSet:
        # Step 1: Fetch upstream data for the area
        bbox = request_bbox(origin, destination)
        fetch_start = time.perf_counter()
        area = await self.fetcher.fetch(bbox, token)
        data_fetch_ms = _elapsed_ms(fetch_start)

        if area.source_status.get('street_network') in (STATUS_FAILED, STATUS_TIMEOUT):
            raise GraphEmptyError(
                "Street network data is unavailable for this area right now",
                {"street_network": area.source_status['street_network']},
            )

        # Steps 2-5 are CPU bound; keep the event loop free for other requests
        routes, timings, counts = await asyncio.to_thread(
            self._compute_routes, origin, destination, bbox, area, config)

        # Step 6: Rank routes
        ranked, mode = self.selector.select(routes)

        timings.update({'data_fetch_ms': data_fetch_ms, 'total_ms': _elapsed_ms(total_start)})
        metadata: Dict[str, Any] = {
            'data_quality': dict(counts, sources=dict(area.source_status), cached_sources=list(area.cache_hits)),
            'timing': timings,
            'bbox': [bbox.south, bbox.west, bbox.north, bbox.east],
            'weights': {'departure_hour': departure_hour, 'period': period or 'configured'},
        }
        route_set = RouteSet(routes=tuple(ranked), selection_mode=mode, metadata=metadata)

        if token is not None:
            token.check("result commit")
        self.context.result_cache.put_routes(origin, destination, route_set, period)

        logger.info(f"Route computation completed in {timings['total_ms']:.0f}ms: "
                    f"{len(ranked)} routes, mode {mode}")
        return route_set

    def _compute_routes(self, origin: GeoPoint, destination: GeoPoint, bbox: BoundingBox,
                        area: AreaData, cfg: RoutingConfig):
        timings: Dict[str, float] = {}
        edge_scorer = self.edge_scorer if cfg is self.config else EdgeScorer(cfg)

        # Step 2: Build the pedestrian graph
        start = time.perf_counter()
        graph = build_street_graph(area.network, cfg)
        timings['graph_build_ms'] = _elapsed_ms(start)

        # Step 3: Index features and score edges
        start = time.perf_counter()
        reference_latitude = bbox.center.latitude
        context = FeatureContext.build(graph, area.crimes, area.points_of_interest, area.transit_stops,
                                       reference_latitude, cfg.grid_cell_size_m)
        edge_scorer.enhance_graph(graph, context)
        timings['scoring_ms'] = _elapsed_ms(start)

        # Step 4: Snap endpoints and search
        start = time.perf_counter()
        node_index = build_node_index(graph, reference_latitude, cfg.grid_cell_size_m)
        source, target = find_nearest_nodes(node_index, origin, destination, cfg.snap_tolerance_m)
        candidates = DiversifiedPathSearch(graph, cfg).find_routes(source, target)
        timings['pathfind_ms'] = _elapsed_ms(start)

        # Step 5: Score routes, dropping any polyline duplicates
        routes: List[Route] = []
        seen_polylines = set()
        for candidate in candidates:
            route = self.route_scorer.score_route(graph, candidate, context)
            if route.polyline in seen_polylines:
                continue
            seen_polylines.add(route.polyline)
            routes.append(route)

        return routes, timings, context.counts()

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.context.get_cache_stats()

    def clear_cache(self) -> None:
        self.context.geodata_cache.clear()
        self.context.result_cache.clear()
        logger.info("Caches cleared")
