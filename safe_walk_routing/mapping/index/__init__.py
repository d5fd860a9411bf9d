"""
Spatial indexing for point features.
"""

from .spatial_grid import SpatialGridIndex, build_point_index

__all__ = [
    'SpatialGridIndex',
    'build_point_index'
]
