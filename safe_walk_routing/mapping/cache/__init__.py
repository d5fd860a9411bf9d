"""
In-memory caches for upstream geodata and computed route sets.
"""

from .ttl_cache import TTLCache
from .geodata_cache import GeodataCache
from .result_cache import ResultCache

__all__ = [
    'TTLCache',
    'GeodataCache',
    'ResultCache'
]
