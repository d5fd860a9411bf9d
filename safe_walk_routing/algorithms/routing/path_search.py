"""
Safety-weighted shortest paths with diversification.

The primary route minimizes ``length / pathfinding_score`` over the scored
graph. Alternates come from re-running the search over a penalty overlay
(edge id -> cost multiplier) that grows every time an edge is used, so each
new path is pushed away from the ones already found.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx
import numpy as np

from ...config.routing_config import RoutingConfig
from ...data.models import StreetEdge
from ...errors import NoRouteFoundError

logger = logging.getLogger(__name__)


@dataclass
class PathCandidate:
    """One path through the graph, with the edges actually chosen between nodes."""
    nodes: List[Any]
    edges: List[StreetEdge]
    length_m: float
    cost: float
    safety_variance: float
    kind: str = "safety"  # "safety" or "shortest"
    calculation_time: Optional[float] = field(default=None, compare=False)

    @property
    def edge_ids(self) -> Tuple[str, ...]:
        return tuple(edge.id for edge in self.edges)

    def overlap_with(self, other: 'PathCandidate') -> float:
        """Share of this path's edges also used by ``other``."""
        if not self.edges:
            return 1.0 if not other.edges else 0.0
        mine = set(self.edge_ids)
        return len(mine & set(other.edge_ids)) / len(mine)


class LengthWeight:
    """Edge weight callable for networkx: physical length."""

    def edge_cost(self, attrs: Dict) -> float:
        return attrs['length']

    def __call__(self, u: Any, v: Any, keyed: Dict) -> float:
        # MultiGraph adjacency hands over {key: attrs} for every parallel edge
        return min(self.edge_cost(attrs) for attrs in keyed.values())


class SafetyWeight(LengthWeight):
    """Edge weight callable: length / pathfinding score x penalty overlay."""

    def __init__(self, penalties: Dict[str, float], floor: float):
        self.penalties = penalties
        self.floor = floor

    def edge_cost(self, attrs: Dict) -> float:
        score = max(attrs.get('pathfinding_score', self.floor), self.floor)
        return attrs['length'] / score * self.penalties.get(attrs['edge'].id, 1.0)


class DiversifiedPathSearch:
    """
    Dijkstra search over scored edges that returns several distinct routes.
    """

    def __init__(self, graph: nx.MultiGraph, config: Optional[RoutingConfig] = None):
        """
        Args:
            graph: Street graph already annotated by the edge scorer
            config: Routing configuration
        """
        self.graph = graph
        self.config = config or RoutingConfig()

    def _safety_weight(self, penalties: Dict[str, float]) -> SafetyWeight:
        return SafetyWeight(penalties, self.config.min_pathfinding_score)

    def _length_weight(self) -> LengthWeight:
        return LengthWeight()

    def _to_candidate(self, nodes: List[Any], weight: LengthWeight, kind: str) -> PathCandidate:
        edges = []
        safeties = []
        cost = 0.0
        length = 0.0
        for u, v in zip(nodes, nodes[1:]):
            keyed = self.graph[u][v]
            key = min(keyed, key=lambda k: (weight.edge_cost(keyed[k]), str(k)))
            attrs = keyed[key]
            edges.append(attrs['edge'])
            safeties.append(attrs.get('safety', 0.0))
            cost += weight.edge_cost(attrs)
            length += attrs['length']
        variance = float(np.var(safeties)) if safeties else 0.0
        return PathCandidate(nodes=list(nodes), edges=edges, length_m=length,
                             cost=cost, safety_variance=variance, kind=kind)

    def _best_path(self, source: Any, target: Any, weight: LengthWeight, kind: str) -> PathCandidate:
        """
        Lowest-cost path, ties broken by length then by safety variance.

        Raises:
            NoRouteFoundError: If source and target are not connected
        """
        start = time.time()
        try:
            tied = list(itertools.islice(
                nx.all_shortest_paths(self.graph, source, target, weight=weight, method='dijkstra'),
                self.config.tie_break_budget,
            ))
        except (nx.NetworkXNoPath, nx.NodeNotFound) as e:
            raise NoRouteFoundError(
                "No walkable connection exists between origin and destination",
                {"source_node": str(source), "target_node": str(target)},
            ) from e

        candidates = [self._to_candidate(nodes, weight, kind) for nodes in tied]
        best = min(candidates, key=lambda c: (round(c.length_m, 6), c.safety_variance, c.edge_ids))
        best.calculation_time = time.time() - start
        return best

    def shortest_path(self, source: Any, target: Any) -> PathCandidate:
        """Shortest path by physical length only."""
        return self._best_path(source, target, self._length_weight(), kind="shortest")

    def _rejection_reason(self, candidate: PathCandidate, accepted: List[PathCandidate],
                          shortest: PathCandidate) -> Optional[str]:
        for existing in accepted:
            if candidate.edge_ids == existing.edge_ids:
                return "duplicate"
            overlap = candidate.overlap_with(existing)
            if overlap > self.config.max_overlap_ratio:
                return f"overlap {overlap:.0%}"
        limit = shortest.length_m * self.config.max_detour_ratio
        if candidate.length_m > limit:
            return f"detour {candidate.length_m:.0f}m > {limit:.0f}m"
        return None

    def find_routes(self, source: Any, target: Any) -> List[PathCandidate]:
        """
        Primary safety-weighted route plus diversified alternates.

        Args:
            source: Origin node id
            target: Destination node id

        Returns:
            1 to ``max_routes`` distinct candidates, primary first

        Raises:
            NoRouteFoundError: If source and target are not connected
        """
        cfg = self.config
        penalties: Dict[str, float] = {}

        primary = self._best_path(source, target, self._safety_weight(penalties), kind="safety")
        if not primary.edges:
            return [primary]
        shortest = self.shortest_path(source, target)

        accepted = [primary]
        attempts = 1
        max_attempts = cfg.max_routes + cfg.extra_search_attempts
        last = primary

        while len(accepted) < cfg.max_routes and attempts < max_attempts:
            for edge_id in last.edge_ids:
                penalties[edge_id] = penalties.get(edge_id, 1.0) * cfg.diversity_penalty
            attempts += 1

            candidate = self._best_path(source, target, self._safety_weight(penalties), kind="safety")
            last = candidate
            reason = self._rejection_reason(candidate, accepted, shortest)
            if reason:
                logger.debug(f"Alternate rejected on attempt {attempts}: {reason}")
                continue
            accepted.append(candidate)

        # The distance fallback needs the true minimum-length path among the options
        if self._rejection_reason(shortest, accepted, shortest) is None:
            if len(accepted) < cfg.max_routes:
                accepted.append(shortest)
            elif len(accepted) > 1:
                accepted[-1] = shortest

        logger.info(f"Path search found {len(accepted)} routes in {attempts} attempts "
                    f"(shortest {shortest.length_m:.0f}m)")
        return accepted
