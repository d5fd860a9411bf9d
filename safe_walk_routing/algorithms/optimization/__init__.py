"""
Route selection and end-to-end orchestration.
"""

from .confidence_selector import ConfidenceGatedSelector, SELECTION_SAFETY, SELECTION_SHORTEST
from .safe_route_engine import SafeRouteEngine

__all__ = [
    'ConfidenceGatedSelector',
    'SELECTION_SAFETY',
    'SELECTION_SHORTEST',
    'SafeRouteEngine'
]
