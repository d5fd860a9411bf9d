"""
Tests for upstream provider error mapping and partial-data degradation.
"""

import pytest
from osmnx._errors import ResponseStatusCodeError

from safe_walk_routing import SafeRouteEngine
from safe_walk_routing.context import EngineContext
from safe_walk_routing.data import BoundingBox
from safe_walk_routing.errors import ProviderNetworkError, ProviderParseError
from safe_walk_routing.providers import GeoJSONCrimeProvider
from safe_walk_routing.providers import osm_providers
from safe_walk_routing.providers.osm_providers import (
    OsmnxPointsOfInterestProvider,
    OsmnxStreetNetworkProvider,
    OsmnxTransitProvider,
)

from conftest import lattice_network, make_providers, point_at

LIT_LATTICE = {'highway': 'residential', 'lit': 'yes'}
ORIGIN = point_at()
DESTINATION = point_at(north_m=450, east_m=450)


def _raising(error):
    calls = []

    def fail(*args, **kwargs):
        calls.append(args)
        raise error
    fail.calls = calls
    return fail


def _engine(providers, config, clock):
    return SafeRouteEngine(providers, config, EngineContext.create(config, clock=clock))


def test_overpass_status_error_is_a_network_error(monkeypatch):
    monkeypatch.setattr(osm_providers.ox, 'features_from_point',
                        _raising(ResponseStatusCodeError("503 Service Unavailable")))

    with pytest.raises(ProviderNetworkError):
        OsmnxPointsOfInterestProvider().points_of_interest_near(point_at(), 300)
    with pytest.raises(ProviderNetworkError):
        OsmnxTransitProvider().transit_stops_near(point_at(), 300)


def test_street_network_status_error_is_retryable(monkeypatch):
    monkeypatch.setattr(osm_providers.ox, 'graph_from_bbox',
                        _raising(ResponseStatusCodeError("503 Service Unavailable")))

    with pytest.raises(ProviderNetworkError):
        OsmnxStreetNetworkProvider().ways_in_bbox(BoundingBox.around([point_at()], 500))


def test_street_network_without_nodes_is_empty(monkeypatch):
    monkeypatch.setattr(osm_providers.ox, 'graph_from_bbox',
                        _raising(ValueError("Found no graph nodes within the requested polygon.")))

    data = OsmnxStreetNetworkProvider().ways_in_bbox(BoundingBox.around([point_at()], 500))
    assert data.is_empty()


def test_street_network_unexpected_value_error_is_parse_error(monkeypatch):
    monkeypatch.setattr(osm_providers.ox, 'graph_from_bbox', _raising(ValueError("bad bbox")))

    with pytest.raises(ProviderParseError):
        OsmnxStreetNetworkProvider().ways_in_bbox(BoundingBox.around([point_at()], 500))


def test_points_of_interest_outage_degrades_one_source(monkeypatch, config, clock):
    fail = _raising(ResponseStatusCodeError("503 Service Unavailable"))
    monkeypatch.setattr(osm_providers.ox, 'features_from_point', fail)
    providers = make_providers(lattice_network(tags=LIT_LATTICE))
    providers.points_of_interest = OsmnxPointsOfInterestProvider()

    route_set = _engine(providers, config, clock).find_safe_routes_sync(ORIGIN, DESTINATION)

    assert route_set.routes
    assert route_set.metadata['data_quality']['sources']['points_of_interest'] == 'failed'
    assert len(fail.calls) == config.retry_attempts


def _truncated_crime_file(tmp_path):
    path = tmp_path / 'crimes.geojson'
    path.write_text('{"type": "FeatureCollection", "features": [')
    return path


def test_truncated_crime_file_is_parse_error(tmp_path):
    provider = GeoJSONCrimeProvider(_truncated_crime_file(tmp_path))
    with pytest.raises(ProviderParseError):
        provider.crime_incidents_in_polygon(BoundingBox.around([point_at()], 500).to_polygon())


def test_crime_file_removed_after_startup_is_parse_error(tmp_path):
    provider = GeoJSONCrimeProvider(tmp_path / 'gone.geojson')
    with pytest.raises(ProviderParseError):
        provider.crime_incidents_in_polygon(BoundingBox.around([point_at()], 500).to_polygon())


def test_unreadable_crime_file_degrades_one_source(tmp_path, config, clock):
    providers = make_providers(lattice_network(tags=LIT_LATTICE))
    providers.crime = GeoJSONCrimeProvider(_truncated_crime_file(tmp_path))

    route_set = _engine(providers, config, clock).find_safe_routes_sync(ORIGIN, DESTINATION)

    assert route_set.routes
    assert route_set.metadata['data_quality']['sources']['crime'] == 'failed'
