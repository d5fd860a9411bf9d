"""
Core routing algorithms.
"""

from .path_search import DiversifiedPathSearch, PathCandidate, SafetyWeight, LengthWeight

__all__ = [
    'DiversifiedPathSearch',
    'PathCandidate',
    'SafetyWeight',
    'LengthWeight'
]
