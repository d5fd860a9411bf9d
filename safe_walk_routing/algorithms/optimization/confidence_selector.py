"""
Confidence-gated route selection.

Safety ranking is only trusted when enough independent sources returned
data. When every route falls below the confidence floor, routes are ranked
by distance instead and labelled as having insufficient data.
"""

import logging
import math
from dataclasses import replace
from typing import List, Optional, Tuple

from ...config.routing_config import RoutingConfig
from ...config.scoring_tables import INSUFFICIENT_DATA_LABEL
from ...data.models import Route

logger = logging.getLogger(__name__)

SELECTION_SAFETY = "safety"
SELECTION_SHORTEST = "shortest"


class ConfidenceGatedSelector:
    """Order scored routes and mark the selected one."""

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    def effective_score(self, route: Route, shortest_distance: float) -> float:
        """
        Pathfinding score plus a brevity bonus.

        Routes under the confidence floor are disqualified with -inf.
        """
        if route.confidence < self.config.min_confidence:
            return -math.inf
        brevity = shortest_distance / route.distance_m if route.distance_m > 0 else 1.0
        return route.pathfinding_score + brevity * self.config.brevity_bonus

    def select(self, routes: List[Route]) -> Tuple[List[Route], str]:
        """
        Rank routes and flag the first as selected.

        Args:
            routes: Scored routes in search order

        Returns:
            (ranked routes with route_index/is_selected set, selection mode)
        """
        if not routes:
            return [], SELECTION_SAFETY

        indexed = list(enumerate(routes))
        if all(route.confidence < self.config.min_confidence for route in routes):
            logger.warning("All routes below confidence floor - ranking by distance")
            ordered = sorted(indexed, key=lambda item: (item[1].distance_m, item[0]))
            label, color = INSUFFICIENT_DATA_LABEL
            ranked = [replace(route, label=label, color=color) for _, route in ordered]
            mode = SELECTION_SHORTEST
        else:
            shortest = min(route.distance_m for route in routes)
            ordered = sorted(
                indexed,
                key=lambda item: (-self.effective_score(item[1], shortest), item[1].distance_m, item[0]),
            )
            ranked = [route for _, route in ordered]
            mode = SELECTION_SAFETY

        ranked = [replace(route, route_index=i, is_selected=(i == 0)) for i, route in enumerate(ranked)]
        selected = ranked[0]
        logger.info(f"Selected route: {selected.distance_m:.0f}m, score {selected.breakdown.overall} "
                    f"({selected.label}), confidence {selected.confidence:.2f}, mode {mode}")
        return ranked, mode
