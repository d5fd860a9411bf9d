"""
Safe Walk Routing

Walking routes ranked by estimated personal safety rather than distance
alone. Several distinct candidate paths are computed over the pedestrian
street network, each carries a multi-factor safety breakdown, and the
safest is selected by default - unless data coverage is too thin to trust
a safety ranking, in which case routes are ordered by distance.

## Quick Start

```python
from safe_walk_routing import SafeRouteEngine, RoutingConfig, GeoPoint

engine = SafeRouteEngine.with_openstreetmap(
    crime_data_path="path/to/crimes.geojson",
    config=RoutingConfig.create_balanced_config(),
)

route_set = engine.find_safe_routes_sync(
    GeoPoint(51.5079, -0.1281),  # Trafalgar Square
    GeoPoint(51.5138, -0.0984),  # St Paul's
)
print(route_set.selected.label, route_set.selected.distance_m)
```

## Architecture

- `algorithms/`: edge/route scoring, path search, selection, engine
- `mapping/`: graph building, spatial grid index, caches
- `fetch/`: concurrent rate-limited provider calls, request epochs
- `providers/`: upstream data interfaces and adapters
- `data/`: data model, distances, polylines, crime loading
- `config/`: configuration and scoring tables
"""

from .algorithms import SafeRouteEngine, EdgeScorer, RouteScorer, DiversifiedPathSearch, ConfidenceGatedSelector
from .config import RoutingConfig
from .context import EngineContext
from .data import GeoPoint, Route, RouteSet, SafetyBreakdown, load_crime_incidents
from .fetch import ProviderSet
from .errors import (
    RoutingError,
    InvalidCoordinatesError,
    DestinationOutOfRangeError,
    NoNearbyRoadError,
    NoRouteFoundError,
    GraphEmptyError,
    RequestSupersededError,
)

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    'SafeRouteEngine',
    'RoutingConfig',
    'EngineContext',
    'ProviderSet',

    # Components
    'EdgeScorer',
    'RouteScorer',
    'DiversifiedPathSearch',
    'ConfidenceGatedSelector',

    # Data
    'GeoPoint',
    'Route',
    'RouteSet',
    'SafetyBreakdown',
    'load_crime_incidents',

    # Errors
    'RoutingError',
    'InvalidCoordinatesError',
    'DestinationOutOfRangeError',
    'NoNearbyRoadError',
    'NoRouteFoundError',
    'GraphEmptyError',
    'RequestSupersededError',

    '__version__',
]
