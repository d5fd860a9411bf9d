"""
Mapping functionality for safe walk routing.

This module contains:
- Street graph construction and endpoint snapping
- Grid spatial index for point features
- Geodata and result caches
"""

from .network import build_street_graph, request_bbox, build_node_index, find_nearest_nodes
from .index import SpatialGridIndex, build_point_index
from .cache import TTLCache, GeodataCache, ResultCache

__all__ = [
    'build_street_graph',
    'request_bbox',
    'build_node_index',
    'find_nearest_nodes',
    'SpatialGridIndex',
    'build_point_index',
    'TTLCache',
    'GeodataCache',
    'ResultCache'
]
