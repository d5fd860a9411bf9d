"""
Upstream geodata providers.

This module contains:
- Provider interfaces (street network, POIs, crime, transit)
- OSMnx-backed OpenStreetMap providers
- GeoJSON and in-memory crime providers
- In-memory providers for offline use
"""

from .base import StreetNetworkProvider, PointsOfInterestProvider, CrimeProvider, TransitProvider
from .crime_providers import GeoJSONCrimeProvider, StaticCrimeProvider
from .static_providers import (
    StaticStreetNetworkProvider,
    StaticPointsOfInterestProvider,
    StaticTransitProvider,
)

__all__ = [
    'StreetNetworkProvider',
    'PointsOfInterestProvider',
    'CrimeProvider',
    'TransitProvider',
    'GeoJSONCrimeProvider',
    'StaticCrimeProvider',
    'StaticStreetNetworkProvider',
    'StaticPointsOfInterestProvider',
    'StaticTransitProvider',
]
