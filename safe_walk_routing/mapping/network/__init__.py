"""
Street network construction and endpoint snapping.
"""

from .graph_builder import build_street_graph, is_walkable
from .network_builder import request_bbox, build_node_index, find_nearest_nodes

__all__ = [
    'build_street_graph',
    'is_walkable',
    'request_bbox',
    'build_node_index',
    'find_nearest_nodes'
]
