"""
Tests for the FastAPI surface.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.services.routing_service import routing_service
from safe_walk_routing.data import StreetNetworkData

from conftest import lattice_network, make_providers, point_at

ORIGIN = point_at()
DESTINATION = point_at(north_m=450, east_m=450)


def _body(origin=ORIGIN, destination=DESTINATION, **extra):
    body = {
        "origin": {"latitude": origin.latitude, "longitude": origin.longitude},
        "destination": {"latitude": destination.latitude, "longitude": destination.longitude},
    }
    body.update(extra)
    return body


@pytest.fixture
def client(make_engine):
    previous = routing_service._engine
    routing_service.set_engine(make_engine(lattice_network(tags={'highway': 'residential', 'lit': 'yes'})))
    yield TestClient(app)
    routing_service._engine = previous


def test_calculate_routes(client):
    response = client.post("/api/routing/routes", json=_body(session_id="web-1"))

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["selection_mode"] == "safety"
    assert 1 <= len(data["routes"]) <= 5
    assert data["routes"][0]["is_selected"] is True
    assert 1 <= data["routes"][0]["breakdown"]["overall"] <= 100
    assert data["geojson"] is None
    assert "timing" in data["metadata"]


def test_geojson_export(client):
    response = client.post("/api/routing/routes", json=_body(include_geojson=True))

    collection = response.json()["geojson"]
    assert collection["type"] == "FeatureCollection"
    lines = [f for f in collection["features"] if f["geometry"]["type"] == "LineString"]
    points = [f for f in collection["features"] if f["geometry"]["type"] == "Point"]
    assert len(lines) == len(response.json()["routes"])
    assert [p["properties"]["type"] for p in points] == ["start", "end"]
    assert lines[0]["properties"]["is_selected"] is True


def test_invalid_coordinates(client):
    body = _body()
    body["origin"] = {"latitude": 95.0, "longitude": 0.0}
    response = client.post("/api/routing/routes", json=body)

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "INVALID_COORDINATES"
    assert data["details"]["endpoint"] == "/api/routing/routes"


def test_destination_out_of_range(client):
    response = client.post("/api/routing/routes", json=_body(destination=point_at(north_m=20000)))

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "DESTINATION_OUT_OF_RANGE"
    assert data["details"]["max_distance_m"] == 10000
    assert data["details"]["origin"] == [ORIGIN.latitude, ORIGIN.longitude]


def test_no_nearby_road(client):
    response = client.post("/api/routing/routes", json=_body(origin=point_at(north_m=-3000)))

    assert response.status_code == 404
    assert response.json()["error"] == "NO_NEARBY_ROAD"


def test_graph_empty(make_engine):
    previous = routing_service._engine
    routing_service.set_engine(make_engine(StreetNetworkData()))
    try:
        response = TestClient(app).post("/api/routing/routes", json=_body())
    finally:
        routing_service._engine = previous

    assert response.status_code == 404
    assert response.json()["error"] == "GRAPH_EMPTY"


def test_validation_error(client):
    response = client.post("/api/routing/routes", json={"origin": {"latitude": 51.5}})

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "validation_error"
    assert isinstance(data["details"], list)


def test_unexpected_errors_do_not_leak(config, clock):
    from safe_walk_routing import SafeRouteEngine
    from safe_walk_routing.context import EngineContext

    class Exploding:
        def ways_in_bbox(self, bbox):
            raise RuntimeError("secret internals")

    providers = make_providers(lattice_network())
    providers.street_network = Exploding()
    previous = routing_service._engine
    routing_service.set_engine(SafeRouteEngine(providers, config, EngineContext.create(config, clock=clock)))
    try:
        response = TestClient(app, raise_server_exceptions=False).post("/api/routing/routes", json=_body())
    finally:
        routing_service._engine = previous

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "internal_error"
    assert "secret" not in response.text


def test_health_and_info(client):
    health = client.get("/api/routing/health")
    assert health.status_code == 200
    assert health.json()["status"] in ("healthy", "degraded")
    assert "results" in health.json()["cache"]

    info = client.get("/api/routing/")
    assert info.json()["max_distance_m"] == 10000
    assert "POST /api/routing/routes" in info.json()["endpoints"]

    assert client.get("/").json()["status"] == "operational"
    assert client.get("/health").json()["api_status"] == "healthy"


def test_departure_hour(client):
    response = client.post("/api/routing/routes", json=_body(departure_hour=22))
    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["weights"]["period"] == "evening"
    route = data["routes"][0]
    assert set(route["markers"]) >= {"dead_ends", "crimes", "cctv", "street_lamps"}
    assert isinstance(route["stats"]["road_name_changes"], list)

    assert client.post("/api/routing/routes", json=_body(departure_hour=25)).status_code == 422
