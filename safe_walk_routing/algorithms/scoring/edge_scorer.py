"""
Per-edge safety factors and the scores derived from them.

Each edge gets six factor scores in [0, 1] (road type, lighting, crime,
CCTV, open places, foot traffic), a composite edge safety score used for
segment colouring and tie-breaking, and a pathfinding score that steers
the search. The pathfinding score has no crime term: historical reports
are sparse and clustered and would destabilize route choice.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import networkx as nx
import numpy as np

from ...config.routing_config import RoutingConfig
from ...config.scoring_tables import (
    DEFAULT_LIGHTING_LIKELIHOOD, LIGHTING_LIKELIHOOD, ROAD_TYPE_SCORES,
)
from ...data.models import LitFlag, StreetEdge, SurfaceFlag
from .feature_context import FeatureContext

logger = logging.getLogger(__name__)

LIT_FLAG_FACTOR = {LitFlag.YES: 1.0, LitFlag.NO: 0.0, LitFlag.UNKNOWN: 0.5}


@dataclass(frozen=True)
class EdgeScores:
    road_type: float
    lighting: float
    lighting_source: str  # "explicit", "blended" or "inferred"
    crime: float
    cctv: float
    open_places: float
    traffic: float
    safety: float
    pathfinding: float
    dead_end: bool = False

    def factors(self) -> Dict[str, float]:
        return {
            'road_type': self.road_type,
            'lighting': self.lighting,
            'crime': self.crime,
            'cctv': self.cctv,
            'open_places': self.open_places,
            'traffic': self.traffic,
        }


def road_type_score(edge: StreetEdge) -> float:
    return ROAD_TYPE_SCORES.get(edge.highway.value, ROAD_TYPE_SCORES['unclassified'])


def inferred_lighting(edge: StreetEdge) -> float:
    return LIGHTING_LIKELIHOOD.get(edge.highway.value, DEFAULT_LIGHTING_LIKELIHOOD)


def lighting_score(edge: StreetEdge, explicit_evidence: Iterable[float],
                   explicit_weight: float = 0.8) -> Tuple[float, str]:
    """
    Lighting likelihood for an edge.

    The edge's own lit tag wins outright. Otherwise nearby explicit evidence
    (street lamps, tagged neighbouring ways) is blended with the class
    heuristic, explicit dominant.

    Args:
        edge: Edge to score
        explicit_evidence: 0/1 observations from nearby lamps and tagged ways
        explicit_weight: Share given to explicit evidence when blending

    Returns:
        (score in [0, 1], source label)
    """
    if edge.lit is LitFlag.YES:
        return 1.0, 'explicit'
    if edge.lit is LitFlag.NO:
        return 0.0, 'explicit'

    inferred = inferred_lighting(edge)
    evidence = list(explicit_evidence)
    if evidence:
        explicit = float(np.mean(evidence))
        return explicit_weight * explicit + (1 - explicit_weight) * inferred, 'blended'
    return inferred, 'inferred'


def density_score(count: float, length_m: float, saturation_per_km: float,
                  min_km: float = 0.3) -> float:
    """Features per km of length, divided by the saturation point and capped at 1."""
    per_km = count / max(length_m / 1000.0, min_km)
    return min(1.0, per_km / saturation_per_km)


def crime_score(weighted_count: float, length_m: float, saturation_per_km: float = 20.0,
                min_km: float = 0.3) -> float:
    """1.0 with no incidents, 0.0 at or above the saturation rate, linear in between."""
    per_km = weighted_count / max(length_m / 1000.0, min_km)
    return max(0.0, 1.0 - per_km / saturation_per_km)


class EdgeScorer:
    """
    Annotate every graph edge with safety factors, edge safety and a
    pathfinding score.
    """

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    def score_edge(self, edge: StreetEdge, context: FeatureContext,
                   dead_end: bool = False) -> EdgeScores:
        """
        Compute all scores for a single edge.

        Args:
            edge: Edge to score
            context: Feature indexes for the request
            dead_end: Whether either endpoint has degree <= 1

        Returns:
            EdgeScores
        """
        cfg = self.config
        midpoint = edge.midpoint
        length = edge.length_m

        road = road_type_score(edge)

        evidence = [1.0] * len(context.street_lamps.query_near(midpoint, cfg.lighting_radius_m))
        for other in context.lit_edges.query_near(midpoint, cfg.lighting_radius_m):
            if other.id != edge.id:
                evidence.append(1.0 if other.lit is LitFlag.YES else 0.0)
        lighting, lighting_source = lighting_score(edge, evidence, cfg.explicit_lighting_weight)

        crimes = context.crimes.query_near(midpoint, cfg.crime_radius_m)
        crime = crime_score(sum(c.severity for c in crimes), length,
                            cfg.crime_saturation_per_km, cfg.min_density_km)

        cctv_count = len(context.cctv.query_near(midpoint, cfg.cctv_radius_m))
        cctv = density_score(cctv_count, length, cfg.cctv_saturation_per_km, cfg.min_density_km)

        open_count = sum(1 for place in context.activity.query_near(midpoint, cfg.activity_radius_m)
                         if place.open_now is not False)
        open_places = density_score(open_count, length, cfg.activity_saturation_per_km,
                                    cfg.min_density_km)

        transit_count = len(context.transit.query_near(midpoint, cfg.transit_radius_m))
        transit = density_score(transit_count, length, cfg.transit_saturation_per_km,
                                cfg.min_density_km)
        traffic = 0.6 * road + 0.3 * transit
        if edge.has_sidewalk:
            traffic += cfg.sidewalk_traffic_bonus
        traffic = min(1.0, traffic)

        factors = {
            'road_type': road,
            'lighting': lighting,
            'crime': crime,
            'cctv': cctv,
            'open_places': open_places,
            'traffic': traffic,
        }
        safety = sum(cfg.edge_factor_weights[name] * value for name, value in factors.items())
        if edge.surface is SurfaceFlag.UNPAVED:
            safety -= cfg.unpaved_penalty
        if dead_end:
            safety -= cfg.dead_end_penalty
        safety = min(1.0, max(0.01, safety))

        weights = cfg.pathfinding_weights
        pathfinding = (weights['main_road'] * road +
                       weights['lighting'] * lighting +
                       weights['lit_road'] * LIT_FLAG_FACTOR[edge.lit])
        pathfinding = min(1.0, max(cfg.min_pathfinding_score, pathfinding))

        return EdgeScores(
            road_type=road,
            lighting=lighting,
            lighting_source=lighting_source,
            crime=crime,
            cctv=cctv,
            open_places=open_places,
            traffic=traffic,
            safety=safety,
            pathfinding=pathfinding,
            dead_end=dead_end,
        )

    def enhance_graph(self, graph: nx.MultiGraph, context: FeatureContext) -> Dict[str, float]:
        """
        Score every edge in place.

        Sets ``scores``, ``safety`` and ``pathfinding_score`` on each edge's
        attribute dict. The StreetEdge itself is left untouched.

        Returns:
            Enhancement statistics
        """
        degrees = dict(graph.degree())
        sources = {'explicit': 0, 'blended': 0, 'inferred': 0}
        safety_values = []

        for u, v, key, data in graph.edges(keys=True, data=True):
            edge: StreetEdge = data['edge']
            dead_end = degrees.get(u, 0) <= 1 or degrees.get(v, 0) <= 1
            scores = self.score_edge(edge, context, dead_end=dead_end)
            data['scores'] = scores
            data['safety'] = scores.safety
            data['pathfinding_score'] = scores.pathfinding
            sources[scores.lighting_source] += 1
            safety_values.append(scores.safety)

        stats = {
            'edges_scored': len(safety_values),
            'mean_safety': round(float(np.mean(safety_values)), 4) if safety_values else 0.0,
            'lighting_explicit': sources['explicit'],
            'lighting_blended': sources['blended'],
            'lighting_inferred': sources['inferred'],
        }
        logger.info(f"Edge scoring completed: {stats}")
        return stats
