"""
Concurrent, rate-limited upstream fetching with cooperative cancellation.
"""

from .epoch import RequestEpoch, RequestToken, EpochRegistry
from .provider_gate import ProviderGate
from .area_fetcher import AreaFetcher, AreaData, ProviderSet

__all__ = [
    'RequestEpoch',
    'RequestToken',
    'EpochRegistry',
    'ProviderGate',
    'AreaFetcher',
    'AreaData',
    'ProviderSet'
]
