"""
Per-process shared state: caches, provider gates and session epochs.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config.routing_config import RoutingConfig
from .fetch.epoch import EpochRegistry
from .fetch.provider_gate import ProviderGate
from .mapping.cache.geodata_cache import GeodataCache
from .mapping.cache.result_cache import ResultCache

PROVIDER_NAMES = ('street_network', 'points_of_interest', 'crime', 'transit')


@dataclass
class EngineContext:
    """
    Explicit owner of everything shared between requests.

    Tests build their own context with a fake clock to get isolated,
    deterministic caches.
    """
    geodata_cache: GeodataCache
    result_cache: ResultCache
    gates: Dict[str, ProviderGate] = field(default_factory=dict)
    epochs: EpochRegistry = field(default_factory=EpochRegistry)

    @classmethod
    def create(cls, config: Optional[RoutingConfig] = None,
               clock: Callable[[], float] = time.monotonic) -> 'EngineContext':
        config = config or RoutingConfig()
        gates = {
            name: ProviderGate(
                name,
                max_concurrent=config.provider_max_concurrent,
                min_interval_s=config.provider_min_interval_s,
                retry_attempts=config.retry_attempts,
                retry_backoff_s=config.retry_backoff_s,
            )
            for name in PROVIDER_NAMES
        }
        return cls(
            geodata_cache=GeodataCache(config.geodata_ttl_s, config.geodata_max_entries,
                                       config.geohash_precision, clock=clock),
            result_cache=ResultCache(config.result_ttl_s, config.result_max_entries,
                                     config.result_key_decimals, clock=clock),
            gates=gates,
            epochs=EpochRegistry(clock=clock),
        )

    def get_cache_stats(self) -> Dict[str, Dict]:
        stats = {
            'geodata': self.geodata_cache.get_stats(),
            'results': self.result_cache.get_stats(),
        }
        stats['gates'] = {name: {'dispatched': gate.dispatched, 'deduplicated': gate.deduplicated}
                          for name, gate in self.gates.items()}
        return stats
