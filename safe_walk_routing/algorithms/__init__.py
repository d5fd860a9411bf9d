"""
Routing algorithms and optimization functionality.

This module contains:
- Edge and route safety scoring
- Diversified safety-weighted path search
- Confidence-gated selection and the end-to-end engine
"""

from .scoring import EdgeScorer, RouteScorer, FeatureContext
from .routing import DiversifiedPathSearch, PathCandidate
from .optimization import ConfidenceGatedSelector, SafeRouteEngine

__all__ = [
    'EdgeScorer',
    'RouteScorer',
    'FeatureContext',
    'DiversifiedPathSearch',
    'PathCandidate',
    'ConfidenceGatedSelector',
    'SafeRouteEngine'
]
