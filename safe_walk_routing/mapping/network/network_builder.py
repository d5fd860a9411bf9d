"""
Request-area sizing and endpoint snapping for street networks.
"""

import logging
from typing import Any, Tuple

import networkx as nx

from ...data.distance_utils import bbox_margin_m
from ...data.models import BoundingBox, GeoPoint
from ...errors import NoNearbyRoadError
from ..index.spatial_grid import SpatialGridIndex

logger = logging.getLogger(__name__)


def request_bbox(origin: GeoPoint, destination: GeoPoint) -> BoundingBox:
    """
    Bounding box that encompasses the trip with a distance-dependent margin.

    Args:
        origin: Start point
        destination: End point

    Returns:
        BoundingBox around both points
    """
    route_distance = origin.distance_to(destination)
    margin = bbox_margin_m(route_distance)
    bbox = BoundingBox.around([origin, destination], margin)
    logger.info(f"Request area: {route_distance:.0f}m trip, {margin:.0f}m margin")
    return bbox


def build_node_index(graph: nx.MultiGraph, reference_latitude: float,
                     cell_size_m: float = 100.0) -> SpatialGridIndex:
    """Grid index over graph nodes, used for snapping endpoints."""
    index = SpatialGridIndex(reference_latitude, cell_size_m)
    for node_id, data in graph.nodes(data=True):
        index.insert(node_id, GeoPoint(data['y'], data['x']))
    return index


def find_nearest_nodes(node_index: SpatialGridIndex, origin: GeoPoint, destination: GeoPoint,
                       tolerance_m: float) -> Tuple[Any, Any]:
    """
    Snap origin and destination to their nearest graph nodes.

    Returns:
        Tuple of (origin_node_id, destination_node_id)

    Raises:
        NoNearbyRoadError: If an endpoint has no node within ``tolerance_m``
    """
    snapped = []
    for which, point in (('origin', origin), ('destination', destination)):
        hit = node_index.nearest(point, tolerance_m)
        if hit is None:
            raise NoNearbyRoadError(
                f"No walkable road within {tolerance_m:.0f}m of the {which}",
                {"which": which, "latitude": point.latitude, "longitude": point.longitude},
            )
        node_id, distance = hit
        logger.debug(f"Snapped {which} to node {node_id} ({distance:.1f}m away)")
        snapped.append(node_id)
    return snapped[0], snapped[1]
