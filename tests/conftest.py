"""
Shared fixtures: synthetic street networks, static providers and a manual clock.
"""

from typing import Dict, Optional, Sequence

import pytest

from safe_walk_routing.config import RoutingConfig
from safe_walk_routing.context import EngineContext
from safe_walk_routing.algorithms import SafeRouteEngine
from safe_walk_routing.data import GeoPoint, PoiKind, PointOfInterest, RawWay, StreetNetworkData, offset_coords
from safe_walk_routing.fetch import ProviderSet
from safe_walk_routing.providers import (
    StaticCrimeProvider,
    StaticPointsOfInterestProvider,
    StaticStreetNetworkProvider,
    StaticTransitProvider,
)

BASE_LAT = 51.5000
BASE_LON = -0.1200


def point_at(north_m: float = 0.0, east_m: float = 0.0) -> GeoPoint:
    """Point offset from the test origin by meters north/east."""
    return GeoPoint(*offset_coords(BASE_LAT, BASE_LON, north_m, east_m))


def line_network(n_edges: int = 10, edge_m: float = 120.0,
                 tags: Optional[Dict[str, str]] = None) -> StreetNetworkData:
    """A single straight way running east, ``n_edges`` segments long."""
    nodes = {i: point_at(east_m=i * edge_m) for i in range(n_edges + 1)}
    way_tags = {'highway': 'residential', 'lit': 'yes', 'name': 'Test Street'}
    if tags is not None:
        way_tags = tags
    return StreetNetworkData(nodes=nodes, ways=(RawWay('line', tuple(range(n_edges + 1)), way_tags),))


def lattice_network(rows: int = 4, cols: int = 4, spacing_m: float = 150.0,
                    tags: Optional[Dict[str, str]] = None) -> StreetNetworkData:
    """Square street grid; node ``r * cols + c`` sits ``r`` blocks north and ``c`` blocks east."""
    way_tags = tags if tags is not None else {'highway': 'residential'}
    nodes = {r * cols + c: point_at(north_m=r * spacing_m, east_m=c * spacing_m)
             for r in range(rows) for c in range(cols)}
    ways = []
    for r in range(rows):
        ways.append(RawWay(f"row{r}", tuple(r * cols + c for c in range(cols)),
                           dict(way_tags, name=f"Row {r}")))
    for c in range(cols):
        ways.append(RawWay(f"col{c}", tuple(r * cols + c for r in range(rows)),
                           dict(way_tags, name=f"Column {c}")))
    return StreetNetworkData(nodes=nodes, ways=tuple(ways))


def shop(point: GeoPoint, name: str = "Corner Shop") -> PointOfInterest:
    return PointOfInterest(point=point, kind=PoiKind.ACTIVITY, category='shop', name=name)


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_providers(network: StreetNetworkData, pois: Sequence[PointOfInterest] = (),
                   crimes=(), transit: Sequence[PointOfInterest] = ()) -> ProviderSet:
    return ProviderSet(
        street_network=StaticStreetNetworkProvider(network),
        points_of_interest=StaticPointsOfInterestProvider(pois),
        crime=StaticCrimeProvider(crimes),
        transit=StaticTransitProvider(transit),
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def config():
    """Default configuration without real waits between provider calls."""
    return RoutingConfig(provider_min_interval_s=0.0, retry_backoff_s=0.0, fetch_timeout_s=5.0)


@pytest.fixture
def make_engine(config, clock):
    """Factory for engines over static providers with an isolated context."""
    def factory(network: StreetNetworkData, pois=(), crimes=(), transit=(),
                engine_config: Optional[RoutingConfig] = None) -> SafeRouteEngine:
        cfg = engine_config or config
        providers = make_providers(network, pois, crimes, transit)
        return SafeRouteEngine(providers, cfg, EngineContext.create(cfg, clock=clock))
    return factory
