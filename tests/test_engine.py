"""
End-to-end tests for the safe route engine over synthetic networks.
"""

import asyncio
import threading

import pytest

from safe_walk_routing import (
    DestinationOutOfRangeError, GraphEmptyError, InvalidCoordinatesError, NoNearbyRoadError,
    RequestSupersededError, RoutingConfig, SafeRouteEngine,
)
from safe_walk_routing.context import EngineContext
from safe_walk_routing.data import GeoPoint, StreetNetworkData, decode_polyline
from safe_walk_routing.errors import ProviderNetworkError
from safe_walk_routing.providers import StaticStreetNetworkProvider

from conftest import lattice_network, line_network, make_providers, point_at, shop

LATTICE_ORIGIN = point_at()
LATTICE_DESTINATION = point_at(north_m=450, east_m=450)


def test_lit_residential_walk_scenario(make_engine):
    shops = [shop(point_at(north_m=20, east_m=i * 120 + 60)) for i in (2, 5, 8)]
    engine = make_engine(line_network(n_edges=10, edge_m=120), pois=shops)

    route_set = engine.find_safe_routes_sync(point_at(), point_at(east_m=1200))
    selected = route_set.selected

    assert route_set.selection_mode == 'safety'
    assert selected.breakdown.overall >= 70
    assert selected.confidence >= 0.6
    assert selected.label == 'Very Safe'
    assert selected.distance_m == pytest.approx(1200, rel=0.01)


def test_routes_are_connected_distinct_and_bounded(make_engine, config):
    engine = make_engine(lattice_network())
    route_set = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)

    assert 1 <= len(route_set.routes) <= 5
    assert len({r.polyline for r in route_set.routes}) == len(route_set.routes)
    assert [r.route_index for r in route_set.routes] == list(range(len(route_set.routes)))
    assert route_set.routes[0].is_selected
    for route in route_set.routes:
        coords = decode_polyline(route.polyline)
        assert GeoPoint(*coords[0]).distance_to(LATTICE_ORIGIN) <= config.snap_tolerance_m
        assert GeoPoint(*coords[-1]).distance_to(LATTICE_DESTINATION) <= config.snap_tolerance_m
        assert len(route.node_ids) == len(route.edge_ids) + 1
        assert route.breakdown.recompute_overall(config.composite_weights) == route.breakdown.overall


def test_sparse_data_falls_back_to_shortest(make_engine):
    # no lit tags, POIs, crimes or transit: only the road source has data
    engine = make_engine(lattice_network())
    route_set = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)

    assert route_set.selection_mode == 'shortest'
    distances = [r.distance_m for r in route_set.routes]
    assert distances[0] == min(distances)
    assert distances == sorted(distances)
    assert all(r.label == 'Insufficient Data' for r in route_set.routes)


def test_lit_lattice_uses_safety_selection(make_engine):
    engine = make_engine(lattice_network(tags={'highway': 'residential', 'lit': 'yes'}))
    route_set = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)
    assert route_set.selection_mode == 'safety'


def test_repeated_request_served_from_result_cache(make_engine):
    engine = make_engine(lattice_network())
    first = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)
    again = engine.find_safe_routes_sync(GeoPoint(LATTICE_ORIGIN.latitude + 0.00001, LATTICE_ORIGIN.longitude),
                                         LATTICE_DESTINATION)

    assert again is first
    assert engine.providers.street_network.call_count == 1


def test_results_are_deterministic_across_engines(make_engine):
    first = make_engine(lattice_network()).find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)
    second = make_engine(lattice_network()).find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)

    assert [r.polyline for r in first.routes] == [r.polyline for r in second.routes]
    assert [r.breakdown for r in first.routes] == [r.breakdown for r in second.routes]


def test_range_ceiling_boundary(make_engine):
    origin = point_at()
    destination = point_at(east_m=2000)
    exact = origin.distance_to(destination)
    engine = make_engine(line_network(), engine_config=RoutingConfig(max_distance_m=exact))

    assert engine.check_range(origin, destination) == exact

    tight = make_engine(line_network(), engine_config=RoutingConfig(max_distance_m=exact - 0.01))
    with pytest.raises(DestinationOutOfRangeError) as excinfo:
        tight.find_safe_routes_sync(origin, destination)
    assert excinfo.value.http_status == 400
    assert excinfo.value.details['origin'] == [origin.latitude, origin.longitude]
    assert tight.providers.street_network.call_count == 0


@pytest.mark.parametrize("bad", [GeoPoint(91.0, 0.0), GeoPoint(0.0, -181.0), GeoPoint(float('nan'), 0.0)])
def test_invalid_coordinates_rejected_before_fetch(make_engine, bad):
    engine = make_engine(line_network())
    with pytest.raises(InvalidCoordinatesError) as excinfo:
        engine.find_safe_routes_sync(bad, point_at())
    assert excinfo.value.code == 'INVALID_COORDINATES'
    assert engine.providers.street_network.call_count == 0


def test_empty_network_is_graph_empty(make_engine):
    engine = make_engine(StreetNetworkData())
    with pytest.raises(GraphEmptyError) as excinfo:
        engine.find_safe_routes_sync(point_at(), point_at(east_m=500))
    assert excinfo.value.code == 'GRAPH_EMPTY'


def test_street_network_outage_is_graph_empty(config, clock):
    class Down:
        def ways_in_bbox(self, bbox):
            raise ProviderNetworkError('street_network', 'service unavailable')

    providers = make_providers(StreetNetworkData())
    providers.street_network = Down()
    engine = SafeRouteEngine(providers, config, EngineContext.create(config, clock=clock))

    with pytest.raises(GraphEmptyError) as excinfo:
        engine.find_safe_routes_sync(point_at(), point_at(east_m=500))
    assert excinfo.value.details['street_network'] == 'failed'


def test_endpoint_far_from_roads(make_engine):
    engine = make_engine(line_network(n_edges=2))
    with pytest.raises(NoNearbyRoadError) as excinfo:
        engine.find_safe_routes_sync(point_at(), point_at(north_m=3000))
    assert excinfo.value.details['which'] == 'destination'


def test_same_snapped_node_gives_zero_length_route(make_engine):
    engine = make_engine(lattice_network())
    route_set = engine.find_safe_routes_sync(point_at(), point_at(north_m=10))

    assert len(route_set.routes) == 1
    assert route_set.selected.distance_m == 0
    assert route_set.selected.edge_ids == ()


def test_superseded_request_does_not_commit(make_engine):
    engine = make_engine(lattice_network())
    stale = engine.context.epochs.token_for('phone-1')
    engine.context.epochs.token_for('phone-1')

    with pytest.raises(RequestSupersededError):
        asyncio.run(engine.find_safe_routes(LATTICE_ORIGIN, LATTICE_DESTINATION, stale))
    assert engine.context.result_cache.get_routes(LATTICE_ORIGIN, LATTICE_DESTINATION) is None


def test_metadata_reports_quality_and_timings(make_engine):
    engine = make_engine(lattice_network())
    route_set = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)
    metadata = route_set.metadata

    assert metadata['data_quality']['sources']['street_network'] == 'ok'
    assert metadata['data_quality']['crimes'] == 0
    assert set(metadata['timing']) == {'graph_build_ms', 'scoring_ms', 'pathfind_ms',
                                       'data_fetch_ms', 'total_ms'}
    assert len(metadata['bbox']) == 4
    assert route_set.to_dict()['selection_mode'] == route_set.selection_mode


def test_clear_cache(make_engine):
    engine = make_engine(lattice_network())
    engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)
    engine.clear_cache()
    engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION)

    assert engine.providers.street_network.call_count == 2
    assert engine.get_cache_stats()['results']['entries'] == 1


def test_departure_hour_selects_weights_and_cache_entry(make_engine):
    engine = make_engine(lattice_network(tags={'highway': 'residential', 'lit': 'yes'}))

    night = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION, departure_hour=2)
    day = engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION, departure_hour=12)

    assert night is not day
    assert night.metadata['weights'] == {'departure_hour': 2, 'period': 'late_night'}
    assert day.metadata['weights'] == {'departure_hour': 12, 'period': 'day'}
    assert engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION, departure_hour=4) is night
    assert engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION).metadata['weights']['period'] == 'configured'


def test_invalid_departure_hour(make_engine):
    engine = make_engine(lattice_network())
    with pytest.raises(ValueError):
        engine.find_safe_routes_sync(LATTICE_ORIGIN, LATTICE_DESTINATION, departure_hour=24)
    assert engine.providers.street_network.call_count == 0


def test_identical_concurrent_requests_share_one_computation(make_engine):
    engine = make_engine(lattice_network())
    compute = engine._compute_routes
    calls = []

    def counting_compute(*args):
        calls.append(args)
        return compute(*args)
    engine._compute_routes = counting_compute

    async def both():
        return await asyncio.gather(engine.find_safe_routes(LATTICE_ORIGIN, LATTICE_DESTINATION),
                                    engine.find_safe_routes(LATTICE_ORIGIN, LATTICE_DESTINATION))

    first, second = asyncio.run(both())

    assert first is second
    assert len(calls) == 1


class HeldStreetNetwork(StaticStreetNetworkProvider):
    """Street provider that blocks until released."""

    def __init__(self, data):
        super().__init__(data)
        self.release = threading.Event()

    def ways_in_bbox(self, bbox):
        self.release.wait(5)
        return super().ways_in_bbox(bbox)


def test_joined_request_recomputes_when_first_caller_is_superseded(config, clock):
    providers = make_providers(lattice_network())
    street = HeldStreetNetwork(lattice_network())
    providers.street_network = street
    engine = SafeRouteEngine(providers, config, EngineContext.create(config, clock=clock))
    first_token = engine.context.epochs.token_for('phone-1')
    second_token = engine.context.epochs.token_for('phone-2')

    async def scenario():
        first = asyncio.ensure_future(engine.find_safe_routes(LATTICE_ORIGIN, LATTICE_DESTINATION, first_token))
        second = asyncio.ensure_future(engine.find_safe_routes(LATTICE_ORIGIN, LATTICE_DESTINATION, second_token))
        await asyncio.sleep(0.05)
        engine.context.epochs.token_for('phone-1')
        street.release.set()
        return await asyncio.gather(first, second, return_exceptions=True)

    first_result, second_result = asyncio.run(scenario())

    assert isinstance(first_result, RequestSupersededError)
    assert second_result.routes
    assert engine.context.result_cache.get_routes(LATTICE_ORIGIN, LATTICE_DESTINATION) is second_result
    assert street.call_count == 2
