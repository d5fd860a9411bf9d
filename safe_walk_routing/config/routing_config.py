"""
Configuration management for safety-scored walking routes.
"""

from dataclasses import dataclass, field, replace
from typing import Dict

from .scoring_tables import TIME_OF_DAY_EDGE_WEIGHTS, time_period_for_hour


@dataclass
class RoutingConfig:
    """Tunable parameters for scoring, search, caching and fetching."""

    # Range & geometry
    max_distance_m: float = 10000.0  # straight-line ceiling, checked before any fetch
    snap_tolerance_m: float = 500.0  # max distance from an endpoint to its graph node
    walking_speed_mps: float = 1.35
    min_segment_length_m: float = 0.5

    # Path search & diversification
    max_routes: int = 5
    max_detour_ratio: float = 1.6  # alternates longer than this x shortest are dropped
    diversity_penalty: float = 1.6  # cost multiplier applied to edges of accepted routes
    max_overlap_ratio: float = 0.85
    extra_search_attempts: int = 3
    tie_break_budget: int = 16  # equal-cost paths examined for tie-breaking
    min_pathfinding_score: float = 0.05

    # Scoring radii (meters)
    crime_radius_m: float = 30.0
    lighting_radius_m: float = 30.0
    cctv_radius_m: float = 80.0
    activity_radius_m: float = 50.0
    transit_radius_m: float = 150.0

    # Density normalization (per km)
    min_density_km: float = 0.3
    crime_saturation_per_km: float = 20.0
    cctv_saturation_per_km: float = 10.0
    activity_saturation_per_km: float = 8.0
    transit_saturation_per_km: float = 4.0

    # Edge adjustments
    explicit_lighting_weight: float = 0.8
    unpaved_penalty: float = 0.1
    dead_end_penalty: float = 0.08
    sidewalk_traffic_bonus: float = 0.1

    # Edge factor weights used when a request gives no departure hour
    edge_factor_weights: Dict[str, float] = field(
        default_factory=lambda: dict(TIME_OF_DAY_EDGE_WEIGHTS['late_night']))
    composite_weights: Dict[str, float] = field(default_factory=lambda: {
        'crime': 0.30,
        'lighting': 0.22,
        'main_road': 0.15,
        'activity': 0.13,
        'transit': 0.10,
        'lit_road': 0.10,
    })
    pathfinding_weights: Dict[str, float] = field(default_factory=lambda: {
        'main_road': 0.45,
        'lighting': 0.30,
        'lit_road': 0.25,
    })

    # Confidence gate
    source_confidence_step: float = 0.20
    min_confidence: float = 0.3
    brevity_bonus: float = 10.0

    # Spatial indexing
    grid_cell_size_m: float = 100.0
    geohash_precision: int = 7

    # Caching
    geodata_ttl_s: float = 1800.0
    crime_ttl_s: float = 86400.0
    geodata_max_entries: int = 100
    result_ttl_s: float = 300.0
    result_max_entries: int = 50
    result_key_decimals: int = 3

    # Upstream fetching
    fetch_timeout_s: float = 25.0
    provider_max_concurrent: int = 3
    provider_min_interval_s: float = 0.08
    retry_attempts: int = 3
    retry_backoff_s: float = 0.2

    def validate(self) -> None:
        """Validate configuration parameters."""
        for name in ('edge_factor_weights', 'composite_weights', 'pathfinding_weights'):
            weights = getattr(self, name)
            if any(w < 0 for w in weights.values()):
                raise ValueError(f"{name} must not contain negative weights")
            if abs(sum(weights.values()) - 1.0) > 1e-6:
                raise ValueError(f"{name} must sum to 1.0")
        if self.max_distance_m <= 0:
            raise ValueError("max_distance_m must be positive")
        if not 1 <= self.max_routes <= 5:
            raise ValueError("max_routes must be between 1 and 5")
        if self.max_detour_ratio < 1.0:
            raise ValueError("max_detour_ratio must be >= 1.0")
        if self.diversity_penalty <= 1.0:
            raise ValueError("diversity_penalty must be > 1.0")
        if not 0 < self.max_overlap_ratio <= 1:
            raise ValueError("max_overlap_ratio must be in (0, 1]")
        if not 0 <= self.explicit_lighting_weight <= 1:
            raise ValueError("explicit_lighting_weight must be between 0 and 1")
        if not 0 < self.min_pathfinding_score <= 1:
            raise ValueError("min_pathfinding_score must be in (0, 1]")
        if self.grid_cell_size_m <= 0:
            raise ValueError("grid_cell_size_m must be positive")
        if self.provider_max_concurrent < 1:
            raise ValueError("provider_max_concurrent must be >= 1")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        if self.tie_break_budget < 1:
            raise ValueError("tie_break_budget must be >= 1")

    @classmethod
    def create_balanced_config(cls) -> 'RoutingConfig':
        """Create balanced configuration (default)."""
        return cls()

    @classmethod
    def create_safety_first_config(cls) -> 'RoutingConfig':
        """
        Create configuration that tolerates longer detours for better lit,
        busier streets.
        """
        return cls(
            max_detour_ratio=2.0,
            diversity_penalty=2.0,
            brevity_bonus=5.0,
            pathfinding_weights={
                'main_road': 0.35,
                'lighting': 0.40,
                'lit_road': 0.25,
            },
        )

    @classmethod
    def create_low_latency_config(cls) -> 'RoutingConfig':
        """Create configuration for tight latency budgets: fewer routes, shorter timeouts."""
        return cls(
            max_routes=3,
            extra_search_attempts=1,
            tie_break_budget=4,
            fetch_timeout_s=10.0,
            retry_attempts=2,
        )

    def for_departure_hour(self, hour: int) -> 'RoutingConfig':
        """
        Copy of this configuration with edge weights for the given local hour.

        Args:
            hour: Local departure hour, 0-23

        Raises:
            ValueError: If the hour is out of range
        """
        period = time_period_for_hour(hour)
        return replace(self, edge_factor_weights=dict(TIME_OF_DAY_EDGE_WEIGHTS[period]))

    @classmethod
    def from_preset(cls, name: str) -> 'RoutingConfig':
        """
        Build a configuration from a preset name.

        Raises:
            ValueError: If the preset is unknown
        """
        presets = {
            'balanced': cls.create_balanced_config,
            'safety_first': cls.create_safety_first_config,
            'low_latency': cls.create_low_latency_config,
        }
        if name not in presets:
            raise ValueError(f"Unknown config preset '{name}'. Available: {sorted(presets)}")
        return presets[name]()
