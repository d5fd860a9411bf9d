"""
Lookup tables used by the edge and route scorers.

Plain data only, so the scoring functions stay pure.
"""

from typing import Dict, List, Tuple

# Factor score for the road class itself
ROAD_TYPE_SCORES: Dict[str, float] = {
    'primary': 1.0,
    'secondary': 1.0,
    'tertiary': 1.0,
    'residential': 1.0,
    'living_street': 1.0,
    'trunk': 0.9,
    'pedestrian': 0.7,
    'unclassified': 0.55,
    'service': 0.45,
    'cycleway': 0.4,
    'footway': 0.3,
    'path': 0.2,
    'track': 0.15,
    'steps': 0.1,
}

# Probability that a road of this class is lit when there is no lit tag
LIGHTING_LIKELIHOOD: Dict[str, float] = {
    'trunk': 0.95,
    'primary': 0.95,
    'secondary': 0.85,
    'tertiary': 0.85,
    'residential': 0.6,
    'living_street': 0.5,
    'unclassified': 0.5,
    'service': 0.5,
    'cycleway': 0.3,
    'pedestrian': 0.2,
    'footway': 0.2,
    'path': 0.2,
    'steps': 0.1,
    'track': 0.1,
}
DEFAULT_LIGHTING_LIKELIHOOD = 0.5

MAIN_ROAD_CLASSES = frozenset({
    'primary', 'secondary', 'tertiary', 'residential', 'living_street',
})

UNPAVED_SURFACES = frozenset({
    'gravel', 'fine_gravel', 'dirt', 'grass', 'mud', 'sand', 'earth',
    'ground', 'unpaved', 'compacted',
})

PAVED_SURFACES = frozenset({
    'paved', 'asphalt', 'concrete', 'paving_stones', 'sett', 'cobblestone',
    'concrete:plates', 'concrete:lanes', 'metal', 'wood',
})

# Police category -> severity weight
CRIME_SEVERITY: Dict[str, float] = {
    'violent-crime': 1.0,
    'robbery': 1.0,
    'sexual-offences': 1.0,
    'possession-of-weapons': 0.9,
    'theft-from-the-person': 0.8,
    'public-order': 0.7,
    'criminal-damage-arson': 0.6,
    'burglary': 0.5,
    'vehicle-crime': 0.4,
    'drugs': 0.4,
    'other-crime': 0.4,
    'bicycle-theft': 0.3,
    'other-theft': 0.3,
    'anti-social-behaviour': 0.3,
    'shoplifting': 0.2,
}
DEFAULT_CRIME_SEVERITY = 0.4

# (minimum score, label, color), checked top down
SAFETY_LABELS: List[Tuple[int, str, str]] = [
    (70, 'Very Safe', '#22c55e'),
    (60, 'Safe', '#84cc16'),
    (40, 'Moderate', '#f59e0b'),
    (0, 'Use Caution', '#ef4444'),
]
INSUFFICIENT_DATA_LABEL = ('Insufficient Data', '#94a3b8')


def label_for_score(score: float) -> Tuple[str, str]:
    """Return (label, color) for a 0-100 safety score."""
    for threshold, label, color in SAFETY_LABELS:
        if score >= threshold:
            return label, color
    return SAFETY_LABELS[-1][1], SAFETY_LABELS[-1][2]


def severity_for_category(category: str) -> float:
    """Severity weight for a crime category, unknown categories get the default."""
    return CRIME_SEVERITY.get((category or '').strip().lower(), DEFAULT_CRIME_SEVERITY)


# Edge factor weights by time of day; crime and lighting dominate late at night
TIME_OF_DAY_EDGE_WEIGHTS: Dict[str, Dict[str, float]] = {
    'late_night': {
        'road_type': 0.22,
        'lighting': 0.28,
        'crime': 0.25,
        'cctv': 0.08,
        'open_places': 0.07,
        'traffic': 0.10,
    },
    'evening': {
        'road_type': 0.23,
        'lighting': 0.25,
        'crime': 0.22,
        'cctv': 0.07,
        'open_places': 0.12,
        'traffic': 0.11,
    },
    'day': {
        'road_type': 0.25,
        'lighting': 0.15,
        'crime': 0.20,
        'cctv': 0.05,
        'open_places': 0.15,
        'traffic': 0.20,
    },
}


def time_period_for_hour(hour: int) -> str:
    """
    Map a local hour onto a weight period.

    00:00-04:59 is late night, 18:00-23:59 is evening, everything else is day.

    Raises:
        ValueError: If ``hour`` is not in 0-23
    """
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        raise ValueError(f"hour must be an integer between 0 and 23, got {hour!r}")
    if hour < 5:
        return 'late_night'
    if hour >= 18:
        return 'evening'
    return 'day'
