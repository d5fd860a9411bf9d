"""
Configuration management for safe walk routing.
"""

from .routing_config import RoutingConfig
from .scoring_tables import (
    ROAD_TYPE_SCORES,
    LIGHTING_LIKELIHOOD,
    MAIN_ROAD_CLASSES,
    CRIME_SEVERITY,
    TIME_OF_DAY_EDGE_WEIGHTS,
    label_for_score,
    severity_for_category,
    time_period_for_hour,
)

__all__ = [
    'RoutingConfig',
    'ROAD_TYPE_SCORES',
    'LIGHTING_LIKELIHOOD',
    'MAIN_ROAD_CLASSES',
    'CRIME_SEVERITY',
    'TIME_OF_DAY_EDGE_WEIGHTS',
    'label_for_score',
    'severity_for_category',
    'time_period_for_hour',
]
