"""
Route-level safety breakdown, pathfinding score, data confidence and
diagnostics.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx
import numpy as np

from ...config.routing_config import RoutingConfig
from ...config.scoring_tables import (
    INSUFFICIENT_DATA_LABEL, MAIN_ROAD_CLASSES, label_for_score,
)
from ...data.models import (
    BoundingBox, GeoPoint, LitFlag, RoadNameChange, Route, RouteMarker, RouteSegment, RouteStats,
    SafetyBreakdown, SurfaceFlag,
)
from ...data.polyline import encode_polyline
from ..routing.path_search import PathCandidate
from .edge_scorer import density_score
from .feature_context import FeatureContext

logger = logging.getLogger(__name__)

NEARBY_COUNT_CAP = 50


def to_percent(value: float) -> int:
    """Clamp a [0, 1] factor onto an integer 0-100 score."""
    return int(round(min(100.0, max(0.0, value * 100.0))))


def data_confidence(sources: Dict[str, bool], step: float = 0.2) -> float:
    """Confidence grows by ``step`` for each source that returned data."""
    return round(min(1.0, step * sum(1 for has_data in sources.values() if has_data)), 2)


class RouteScorer:
    """
    Turn a path candidate into a scored Route.
    """

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    @staticmethod
    def route_coords(graph: nx.MultiGraph, candidate: PathCandidate) -> List[Tuple[float, float]]:
        """(lat, lon) polyline following the candidate's nodes."""
        if not candidate.edges:
            node = graph.nodes[candidate.nodes[0]]
            return [(node['y'], node['x'])]
        coords: List[Tuple[float, float]] = []
        for start_node, edge in zip(candidate.nodes, candidate.edges):
            segment = edge.oriented_coords(start_node)
            coords.extend(segment if not coords else segment[1:])
        return coords

    def _nearby(self, index, sample_points: List[GeoPoint], radius_m: float) -> List[Any]:
        """Unique items within ``radius_m`` of any sample point, in first-seen order."""
        seen = {}
        for sample in sample_points:
            for item in index.query_near(sample, radius_m):
                seen.setdefault(id(item), item)
        return list(seen.values())

    def _segments(self, graph: nx.MultiGraph, candidate: PathCandidate,
                  edge_safety: List[float]) -> Tuple[RouteSegment, ...]:
        segments = []
        run_edges: List[int] = []
        run_color = None
        for i, safety in enumerate(edge_safety):
            _, color = label_for_score(safety * 100)
            if run_edges and color != run_color:
                segments.append(self._make_segment(candidate, run_edges, edge_safety, run_color))
                run_edges = []
            run_edges.append(i)
            run_color = color
        if run_edges:
            segments.append(self._make_segment(candidate, run_edges, edge_safety, run_color))
        return tuple(segments)

    @staticmethod
    def _make_segment(candidate: PathCandidate, indices: List[int],
                      edge_safety: List[float], color: str) -> RouteSegment:
        coords: List[Tuple[float, float]] = []
        for i in indices:
            part = candidate.edges[i].oriented_coords(candidate.nodes[i])
            coords.extend(part if not coords else part[1:])
        return RouteSegment(
            edge_ids=tuple(candidate.edges[i].id for i in indices),
            score=to_percent(float(np.mean([edge_safety[i] for i in indices]))),
            color=color,
            polyline=encode_polyline(coords),
        )

    def score_route(self, graph: nx.MultiGraph, candidate: PathCandidate,
                    context: FeatureContext) -> Route:
        """
        Score one candidate path.

        Args:
            graph: Scored street graph
            candidate: Path returned by the path search
            context: Feature indexes for the request

        Returns:
            Route with breakdown, pathfinding score, confidence and label
        """
        cfg = self.config
        edges = candidate.edges
        lengths = np.array([edge.length_m for edge in edges], dtype=float)
        distance = float(lengths.sum()) if len(edges) else 0.0
        coords = self.route_coords(graph, candidate)

        edge_attrs = []
        for start_node, end_node, edge in zip(candidate.nodes, candidate.nodes[1:], edges):
            edge_attrs.append(graph[start_node][end_node][edge.id])
        edge_scores = [attrs['scores'] for attrs in edge_attrs]
        edge_safety = [attrs['safety'] for attrs in edge_attrs]

        def length_weighted(values: List[float]) -> float:
            if distance <= 0:
                return 0.0
            return float(np.dot(lengths, np.array(values, dtype=float)) / distance)

        # Nearby features, deduplicated across sample points
        sample_points = [GeoPoint(lat, lon) for lat, lon in coords] + [edge.midpoint for edge in edges]
        crimes = self._nearby(context.crimes, sample_points, cfg.crime_radius_m)
        places = [p for p in self._nearby(context.activity, sample_points, cfg.activity_radius_m)
                  if p.open_now is not False]
        cctv = self._nearby(context.cctv, sample_points, cfg.cctv_radius_m)
        lamps = self._nearby(context.street_lamps, sample_points, cfg.lighting_radius_m)
        transit = self._nearby(context.transit, sample_points, cfg.transit_radius_m)

        km = max(distance / 1000.0, cfg.min_density_km)
        crime_factor = max(0.0, 1.0 - sum(c.severity for c in crimes) / km / cfg.crime_saturation_per_km)
        lighting_factor = length_weighted([s.lighting for s in edge_scores])
        main_road = length_weighted([1.0 if e.highway.value in MAIN_ROAD_CLASSES else 0.0 for e in edges])
        activity = density_score(len(places), distance, cfg.activity_saturation_per_km, cfg.min_density_km)
        transit_factor = density_score(len(transit), distance, cfg.transit_saturation_per_km, cfg.min_density_km)
        cctv_factor = density_score(len(cctv), distance, cfg.cctv_saturation_per_km, cfg.min_density_km)
        lit = sum(1 for e in edges if e.lit is LitFlag.YES)
        unlit = sum(1 for e in edges if e.lit is LitFlag.NO)
        lit_road = lit / (lit + unlit) if (lit + unlit) else 0.5

        road_type_pct: Dict[str, int] = {}
        if distance > 0:
            shares: Dict[str, float] = {}
            for edge in edges:
                shares[edge.highway.value] = shares.get(edge.highway.value, 0.0) + edge.length_m
            road_type_pct = {name: int(round(100 * share / distance))
                             for name, share in sorted(shares.items(), key=lambda kv: -kv[1])}

        inputs = {
            'crime': to_percent(crime_factor),
            'lighting': to_percent(lighting_factor),
            'main_road': to_percent(main_road),
            'activity': to_percent(activity),
            'transit': to_percent(transit_factor),
            'lit_road': to_percent(lit_road),
        }
        breakdown = SafetyBreakdown(
            road_type=to_percent(length_weighted([s.road_type for s in edge_scores])),
            lighting=inputs['lighting'],
            crime=inputs['crime'],
            cctv=to_percent(cctv_factor),
            open_places=inputs['activity'],
            traffic=to_percent(length_weighted([s.traffic for s in edge_scores])),
            main_road=inputs['main_road'],
            transit=inputs['transit'],
            lit_road=inputs['lit_road'],
            overall=SafetyBreakdown.compose(inputs, cfg.composite_weights),
            road_type_pct=road_type_pct,
        )

        weights = cfg.pathfinding_weights
        pathfinding_raw = (weights['main_road'] * main_road +
                           weights['lighting'] * lighting_factor +
                           weights['lit_road'] * lit_road)
        pathfinding_score = int(round(min(100.0, max(1.0, pathfinding_raw * 100))))

        route_points = [GeoPoint(lat, lon) for lat, lon in coords]
        area = BoundingBox.around(route_points, cfg.transit_radius_m)
        sources = context.sources_with_data(area, has_roads=graph.number_of_edges() > 0)
        confidence = data_confidence(sources, cfg.source_confidence_step)

        if confidence < cfg.min_confidence:
            label, color = INSUFFICIENT_DATA_LABEL
        else:
            label, color = label_for_score(breakdown.overall)

        stats = self._route_stats(graph, candidate, distance, transit, cctv)

        return Route(
            node_ids=tuple(candidate.nodes),
            edge_ids=candidate.edge_ids,
            distance_m=round(distance, 1),
            duration_s=round(distance / cfg.walking_speed_mps, 1),
            polyline=encode_polyline(coords),
            breakdown=breakdown,
            pathfinding_score=pathfinding_score,
            confidence=confidence,
            label=label,
            color=color,
            safety_variance=round(candidate.safety_variance, 6),
            segments=self._segments(graph, candidate, edge_safety),
            poi_counts={
                'crimes': len(crimes),
                'activity_places': len(places),
                'cctv': len(cctv),
                'street_lamps': len(lamps),
                'transit_stops': len(transit),
            },
            markers=self._markers(graph, candidate, {
                'crimes': crimes,
                'activity_places': places,
                'cctv': cctv,
                'street_lamps': lamps,
                'transit_stops': transit,
            }),
            stats=stats,
        )

    @staticmethod
    def _markers(graph: nx.MultiGraph, candidate: PathCandidate,
                 features: Dict[str, List[Any]]) -> Dict[str, Tuple[RouteMarker, ...]]:
        """Marker positions per feature kind, one per distinct 5-decimal location."""
        dead_ends = [GeoPoint(graph.nodes[n]['y'], graph.nodes[n]['x'])
                     for n in candidate.nodes if graph.degree(n) <= 1]
        markers: Dict[str, Tuple[RouteMarker, ...]] = {}
        for kind, items in [('dead_ends', dead_ends)] + list(features.items()):
            seen = set()
            kind_markers = []
            for item in items:
                point = item if isinstance(item, GeoPoint) else item.point
                key = (round(point.latitude, 5), round(point.longitude, 5))
                if key in seen:
                    continue
                seen.add(key)
                category = item.category if kind == 'crimes' else None
                kind_markers.append(RouteMarker(point.latitude, point.longitude, category))
            markers[kind] = tuple(kind_markers)
        return markers

    @staticmethod
    def _route_stats(graph: nx.MultiGraph, candidate: PathCandidate, distance: float,
                     transit: List[Any], cctv: List[Any]) -> RouteStats:
        edges = candidate.edges
        dead_ends = sum(1 for node in candidate.nodes if graph.degree(node) <= 1)

        def length_pct(predicate) -> int:
            if distance <= 0:
                return 0
            return int(round(100 * sum(e.length_m for e in edges if predicate(e)) / distance))

        name_changes = []
        previous_name = None
        walked = 0.0
        for i, edge in enumerate(edges):
            if edge.name and edge.name != previous_name:
                name_changes.append(RoadNameChange(i, edge.name, round(walked, 1)))
                previous_name = edge.name
            walked += edge.length_m

        return RouteStats(
            dead_ends=dead_ends,
            sidewalk_pct=length_pct(lambda e: e.has_sidewalk),
            unpaved_pct=length_pct(lambda e: e.surface is SurfaceFlag.UNPAVED),
            transit_stops_nearby=min(NEARBY_COUNT_CAP, len(transit)),
            cctv_nearby=min(NEARBY_COUNT_CAP, len(cctv)),
            road_name_changes=tuple(name_changes),
        )
