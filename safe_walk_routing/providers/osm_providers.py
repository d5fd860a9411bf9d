"""
OpenStreetMap providers backed by OSMnx.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import osmnx as ox
import requests
from osmnx._errors import InsufficientResponseError, ResponseStatusCodeError

from ..data.models import BoundingBox, GeoPoint, PoiKind, PointOfInterest, RawWay, StreetNetworkData
from ..errors import ProviderNetworkError, ProviderParseError
from .base import PointsOfInterestProvider, StreetNetworkProvider, TransitProvider

logger = logging.getLogger(__name__)

WAY_TAGS = [
    'highway', 'lit', 'surface', 'name', 'sidewalk', 'sidewalk:both', 'sidewalk:left',
    'sidewalk:right', 'footway', 'foot', 'access',
]

ACTIVITY_TAGS: Dict[str, Any] = {
    'amenity': ['restaurant', 'cafe', 'bar', 'pub', 'fast_food', 'pharmacy', 'cinema',
                'theatre', 'nightclub', 'fuel', 'bank', 'hospital', 'police', 'library'],
    'shop': True,
    'leisure': ['fitness_centre', 'sports_centre'],
}
SAFETY_FEATURE_TAGS: Dict[str, Any] = {
    'man_made': 'surveillance',
    'highway': 'street_lamp',
}
TRANSIT_TAGS: Dict[str, Any] = {
    'highway': 'bus_stop',
    'public_transport': ['platform', 'stop_position', 'station'],
    'railway': ['station', 'halt', 'tram_stop'],
}


def _clean(value: Any) -> Optional[str]:
    """Strip GeoDataFrame NaNs and list-valued tags down to a string or None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (list, tuple)):
        return _clean(value[0]) if value else None
    return str(value)


def _features_near(provider: str, point: GeoPoint, radius_m: float, tags: Dict[str, Any]):
    """Run an OSMnx feature query, mapping failures onto provider errors."""
    try:
        return ox.features_from_point((point.latitude, point.longitude), tags=tags, dist=radius_m)
    except InsufficientResponseError:
        return None
    except (requests.RequestException, ResponseStatusCodeError) as e:
        raise ProviderNetworkError(provider, f"features query failed: {e}") from e
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderParseError(provider, f"unexpected features response: {e}") from e


def _feature_point(geometry) -> Optional[GeoPoint]:
    if geometry is None or geometry.is_empty:
        return None
    centroid = geometry if geometry.geom_type == 'Point' else geometry.centroid
    return GeoPoint(float(centroid.y), float(centroid.x))


class OsmnxStreetNetworkProvider(StreetNetworkProvider):
    """Street network via ``ox.graph_from_bbox`` with walking configuration."""

    def __init__(self, network_type: str = 'walk'):
        self.network_type = network_type
        ox.settings.useful_tags_way = sorted(set(ox.settings.useful_tags_way) | set(WAY_TAGS))

    def ways_in_bbox(self, bbox: BoundingBox) -> StreetNetworkData:
        try:
            graph = ox.graph_from_bbox(
                (bbox.west, bbox.south, bbox.east, bbox.north),
                network_type=self.network_type,
                simplify=False,
                retain_all=True,
            )
        except InsufficientResponseError:
            logger.warning(f"No street data returned for {bbox}")
            return StreetNetworkData()
        except (requests.RequestException, ResponseStatusCodeError) as e:
            raise ProviderNetworkError(self.name, f"street network request failed: {e}") from e
        except ValueError as e:
            # OSMnx raises ValueError when truncation leaves no graph nodes
            if 'no graph nodes' not in str(e).lower():
                raise ProviderParseError(self.name, f"unexpected street network response: {e}") from e
            logger.warning(f"Street network empty for {bbox}: {e}")
            return StreetNetworkData()

        nodes = {int(n): GeoPoint(float(d['y']), float(d['x'])) for n, d in graph.nodes(data=True)}

        ways: List[RawWay] = []
        seen = set()
        per_way_count: Dict[str, int] = {}
        for u, v, data in sorted(graph.edges(data=True), key=lambda e: (str(e[2].get('osmid')), e[0], e[1])):
            osmid = _clean(data.get('osmid'))
            if osmid is None:
                raise ProviderParseError(self.name, f"edge {u}-{v} has no osmid")
            pair = (osmid, min(u, v), max(u, v))
            if pair in seen:
                continue
            seen.add(pair)
            segment = per_way_count.get(osmid, 0)
            per_way_count[osmid] = segment + 1
            tags = {key: _clean(data.get(key)) for key in WAY_TAGS if _clean(data.get(key)) is not None}
            ways.append(RawWay(id=f"{osmid}/{segment}", node_ids=(int(u), int(v)), tags=tags))

        logger.info(f"Street network fetched: {len(nodes)} nodes, {len(ways)} segments")
        return StreetNetworkData(nodes=nodes, ways=tuple(ways))


class OsmnxPointsOfInterestProvider(PointsOfInterestProvider):
    """Activity places, surveillance cameras and street lamps from OSM features."""

    def points_of_interest_near(self, point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
        tags = dict(ACTIVITY_TAGS)
        tags.update(SAFETY_FEATURE_TAGS)
        gdf = _features_near(self.name, point, radius_m, tags)
        if gdf is None:
            return []

        pois = []
        for _, row in gdf.iterrows():
            location = _feature_point(row.geometry)
            if location is None:
                continue
            if _clean(row.get('man_made')) == 'surveillance':
                kind, category = PoiKind.CCTV, 'surveillance'
            elif _clean(row.get('highway')) == 'street_lamp':
                kind, category = PoiKind.STREET_LAMP, 'street_lamp'
            else:
                kind = PoiKind.ACTIVITY
                category = (_clean(row.get('amenity')) or _clean(row.get('shop')) or
                            _clean(row.get('leisure')) or 'place')
            pois.append(PointOfInterest(point=location, kind=kind, category=category,
                                        name=_clean(row.get('name'))))

        logger.info(f"Fetched {len(pois)} points of interest within {radius_m:.0f}m")
        return pois


class OsmnxTransitProvider(TransitProvider):
    """Bus stops, platforms and stations from OSM features."""

    def transit_stops_near(self, point: GeoPoint, radius_m: float) -> List[PointOfInterest]:
        gdf = _features_near(self.name, point, radius_m, TRANSIT_TAGS)
        if gdf is None:
            return []

        stops = []
        for _, row in gdf.iterrows():
            location = _feature_point(row.geometry)
            if location is None:
                continue
            category = (_clean(row.get('highway')) or _clean(row.get('railway')) or
                        _clean(row.get('public_transport')) or 'stop')
            stops.append(PointOfInterest(point=location, kind=PoiKind.TRANSIT, category=category,
                                         name=_clean(row.get('name'))))

        logger.info(f"Fetched {len(stops)} transit stops within {radius_m:.0f}m")
        return stops
