"""
Tests for provider gates, concurrent area fetching and request epochs.
"""

import asyncio
import threading
import time

import pytest

from safe_walk_routing.config import RoutingConfig
from safe_walk_routing.context import EngineContext
from safe_walk_routing.data import BoundingBox
from safe_walk_routing.errors import ProviderNetworkError, ProviderParseError, RequestSupersededError
from safe_walk_routing.fetch import AreaFetcher, EpochRegistry, ProviderGate, RequestEpoch
from safe_walk_routing.providers import StaticPointsOfInterestProvider

from conftest import ManualClock, lattice_network, make_providers, point_at


class ConcurrencyRecorder:
    """Blocking provider call that records how many calls overlap."""

    def __init__(self, delay=0.05):
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, value):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return value


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def test_gate_caps_concurrent_calls():
    recorder = ConcurrencyRecorder()
    gate = ProviderGate('test', max_concurrent=2, min_interval_s=0.0)

    async def run_all():
        return await asyncio.gather(*(gate.run(f"key{i}", recorder, i) for i in range(6)))

    results = asyncio.run(run_all())

    assert results == list(range(6))
    assert recorder.max_active <= 2
    assert gate.dispatched == 6


def test_gate_deduplicates_identical_inflight_requests():
    recorder = ConcurrencyRecorder()
    gate = ProviderGate('test', max_concurrent=3, min_interval_s=0.0)

    async def run_all():
        return await asyncio.gather(gate.run('same', recorder, 'a'), gate.run('same', recorder, 'a'))

    assert asyncio.run(run_all()) == ['a', 'a']
    assert recorder.calls == 1
    assert gate.deduplicated == 1


def test_gate_spaces_dispatches():
    sleep = RecordingSleep()
    gate = ProviderGate('test', min_interval_s=10.0, sleep=sleep)

    async def run_twice():
        await gate.run('a', lambda: 1)
        await gate.run('b', lambda: 2)

    asyncio.run(run_twice())
    assert len(sleep.delays) == 1
    assert 9.0 < sleep.delays[0] <= 10.0


def test_gate_retries_network_errors_with_backoff():
    sleep = RecordingSleep()
    gate = ProviderGate('test', min_interval_s=0.0, retry_attempts=3, retry_backoff_s=0.2, sleep=sleep)
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ProviderNetworkError('test', 'connection reset')
        return 'ok'

    assert asyncio.run(gate.run('k', flaky)) == 'ok'
    assert len(attempts) == 3
    assert sleep.delays == [pytest.approx(0.2), pytest.approx(0.4)]


def test_gate_gives_up_after_attempts_and_never_retries_parse_errors():
    gate = ProviderGate('test', min_interval_s=0.0, retry_attempts=2, sleep=RecordingSleep())
    network_calls = []
    parse_calls = []

    def down():
        network_calls.append(1)
        raise ProviderNetworkError('test', 'timeout')

    def garbage():
        parse_calls.append(1)
        raise ProviderParseError('test', 'bad payload')

    with pytest.raises(ProviderNetworkError):
        asyncio.run(gate.run('down', down))
    with pytest.raises(ProviderParseError):
        asyncio.run(gate.run('garbage', garbage))
    assert len(network_calls) == 2
    assert len(parse_calls) == 1


def _fetcher(providers, config=None, clock=None):
    config = config or RoutingConfig(provider_min_interval_s=0.0, retry_backoff_s=0.0)
    context = EngineContext.create(config, clock=clock or ManualClock())
    return AreaFetcher(providers, context.geodata_cache, context.gates, config), context


def _bbox():
    return BoundingBox.around([point_at(), point_at(north_m=450, east_m=450)], 200)


def test_fetch_collects_every_source_and_caches_results():
    providers = make_providers(lattice_network())
    fetcher, context = _fetcher(providers)

    first = asyncio.run(fetcher.fetch(_bbox()))
    second = asyncio.run(fetcher.fetch(_bbox()))

    assert first.source_status == {'street_network': 'ok', 'points_of_interest': 'empty',
                                   'crime': 'empty', 'transit': 'empty'}
    assert len(first.network.ways) == 8
    assert first.cache_hits == []
    assert sorted(second.cache_hits) == ['crime', 'points_of_interest', 'street_network', 'transit']
    assert providers.street_network.call_count == 1


def test_cached_geodata_expires():
    clock = ManualClock()
    providers = make_providers(lattice_network())
    fetcher, _ = _fetcher(providers, clock=clock)

    asyncio.run(fetcher.fetch(_bbox()))
    clock.advance(RoutingConfig().geodata_ttl_s + 1)
    asyncio.run(fetcher.fetch(_bbox()))

    assert providers.street_network.call_count == 2
    # crime data lives longer
    assert providers.crime.call_count == 1


def test_slow_source_times_out_without_failing_the_fetch():
    class SlowPois(StaticPointsOfInterestProvider):
        def points_of_interest_near(self, point, radius_m):
            time.sleep(0.5)
            return super().points_of_interest_near(point, radius_m)

    providers = make_providers(lattice_network())
    providers.points_of_interest = SlowPois()
    config = RoutingConfig(provider_min_interval_s=0.0, fetch_timeout_s=0.1)
    fetcher, _ = _fetcher(providers, config)

    area = asyncio.run(fetcher.fetch(_bbox()))

    assert area.source_status['points_of_interest'] == 'timeout'
    assert area.source_status['street_network'] == 'ok'
    assert area.points_of_interest == []


def test_failed_source_degrades_to_empty():
    class BrokenCrime:
        def crime_incidents_in_polygon(self, polygon):
            raise ProviderParseError('crime', 'unreadable file')

    providers = make_providers(lattice_network())
    providers.crime = BrokenCrime()
    fetcher, _ = _fetcher(providers)

    area = asyncio.run(fetcher.fetch(_bbox()))
    assert area.source_status['crime'] == 'failed'
    assert area.crimes == []


def test_stale_token_blocks_cache_writes():
    providers = make_providers(lattice_network())
    fetcher, context = _fetcher(providers)
    registry = EpochRegistry(clock=ManualClock())
    stale = registry.token_for('session-1')
    registry.token_for('session-1')

    with pytest.raises(RequestSupersededError):
        asyncio.run(fetcher.fetch(_bbox(), stale))
    assert len(context.geodata_cache) == 0


def test_epoch_tokens():
    epoch = RequestEpoch('s')
    first = epoch.next_token()
    assert first.is_current
    second = epoch.next_token()
    assert not first.is_current
    assert second.is_current
    second.check('commit')
    with pytest.raises(RequestSupersededError) as excinfo:
        first.check('commit')
    assert excinfo.value.http_status == 409
    assert excinfo.value.details['stage'] == 'commit'


def test_anonymous_requests_never_supersede_each_other():
    registry = EpochRegistry()
    a = registry.token_for(None)
    b = registry.token_for(None)
    assert a.is_current and b.is_current
