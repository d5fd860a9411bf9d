"""
Edge and route safety scoring.
"""

from .feature_context import FeatureContext
from .edge_scorer import EdgeScorer, EdgeScores, lighting_score, crime_score, density_score
from .route_scorer import RouteScorer, data_confidence

__all__ = [
    'FeatureContext',
    'EdgeScorer',
    'EdgeScores',
    'lighting_score',
    'crime_score',
    'density_score',
    'RouteScorer',
    'data_confidence'
]
