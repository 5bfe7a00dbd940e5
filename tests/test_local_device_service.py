"""
Tests for the consumer-side service: relay first, then direct scan and control, then cache.
"""

from unittest.mock import AsyncMock

import pytest

from cache.scan_cache import ScanResultCache
from discovery.models import Device
from exceptions import DiscoveryUnavailableError, RelayUnavailableError
from protocols.registry import ProtocolHandlerRegistry
from services.adoption import AdoptionService
from services.local_device_service import LocalDeviceService, build_direct_discovery
from services.relay_client import BackendRelayClient


RELAY = "http://relay.local:3001/api"
CONFIG = {
    'relay': {'scan_retry_attempts': 2, 'scan_retry_delay_seconds': 0,
              'fallback_ip_ranges': ["192.168.1.1-192.168.1.100"]},
    'control': {'retry_attempts': 2, 'retry_delay_seconds': 0},
}


def lamp(**changes):
    base = Device(id="philips-wiz-192-168-1-8", name="Bedside", type="light",
                  address="192.168.1.8", protocol="philips-wiz", last_seen=0)
    return base.updated(**changes)


class FakeDirectDiscovery:
    def __init__(self, devices=None, error=None):
        self.devices = devices or []
        self.error = error
        self.calls = 0

    async def discover(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.devices)


@pytest.fixture
def cache(clock):
    return ScanResultCache(clock=clock)


def build_service(network, cache, direct=None, adoption=None):
    relay = BackendRelayClient(RELAY, session_factory=network.session_factory)
    registry = ProtocolHandlerRegistry(session_factory=network.session_factory)
    return LocalDeviceService(CONFIG, cache, registry, relay=relay,
                              direct_discovery=direct or FakeDirectDiscovery(), adoption=adoption)


class TestDiscoverDevices:

    @pytest.mark.asyncio
    async def test_relay_result_is_cached(self, network, cache):
        network.add("GET", f"{RELAY}/scan-network", [lamp().to_dict()])
        direct = FakeDirectDiscovery()
        service = build_service(network, cache, direct)

        devices = await service.discover_devices()

        assert [d.id for d in devices] == ["philips-wiz-192-168-1-8"]
        assert cache.has_recent_scan()
        assert direct.calls == 0

    @pytest.mark.asyncio
    async def test_recent_cache_skips_relay(self, network, cache):
        cache.put([lamp()])
        service = build_service(network, cache)

        assert await service.discover_devices() == [lamp()]
        assert network.calls == []

    @pytest.mark.asyncio
    async def test_relay_down_falls_back_to_direct_scan(self, network, cache):
        direct = FakeDirectDiscovery([lamp(name="Direct")])
        service = build_service(network, cache, direct)

        devices = await service.discover_devices()

        assert [d.name for d in devices] == ["Direct"]
        assert len(network.calls_to("GET", f"{RELAY}/scan-network")) == 2
        # a direct scan does not count as a relay scan
        assert cache.has_recent_scan() is False

    @pytest.mark.asyncio
    async def test_relay_http_error_counts_as_unavailable(self, network, cache):
        network.add("GET", f"{RELAY}/scan-network", {"error": "boom"}, status=500)
        direct = FakeDirectDiscovery([])
        service = build_service(network, cache, direct)

        assert await service.discover_devices() == []
        assert direct.calls == 1

    @pytest.mark.asyncio
    async def test_stale_cache_returned_when_everything_fails(self, network, cache, clock):
        cache.put([lamp()])
        clock.advance(600)
        service = build_service(network, cache, FakeDirectDiscovery(error=RuntimeError("no sockets")))

        assert await service.discover_devices() == [lamp()]

    @pytest.mark.asyncio
    async def test_total_failure_raises(self, network, cache):
        service = build_service(network, cache, FakeDirectDiscovery(error=RuntimeError("no sockets")))

        with pytest.raises(DiscoveryUnavailableError):
            await service.discover_devices()


class TestControl:

    @pytest.mark.asyncio
    async def test_toggle_through_relay(self, network, cache):
        cache.put([lamp()])
        network.add("POST", f"{RELAY}/device/control", {"success": True, "data": {"state": True}})
        service = build_service(network, cache)

        assert await service.toggle_device(lamp(), True) is True

        sent = network.calls_to("POST", f"{RELAY}/device/control")[0]["json"]
        assert sent["action"] == "setState"
        assert sent["address"] == "192.168.1.8"
        assert cache.get(lamp().id).power_state is True

    @pytest.mark.asyncio
    async def test_toggle_falls_back_to_direct_control(self, network, cache):
        network.add("POST", "http://192.168.1.8/api/setState", {"success": True})
        service = build_service(network, cache)

        assert await service.toggle_device(lamp(), False) is True
        assert network.calls_to("POST", "http://192.168.1.8/api/setState")[0]["json"] == {"state": "off"}

    @pytest.mark.asyncio
    async def test_relay_rejection_is_a_failure(self, network, cache):
        network.add("POST", f"{RELAY}/device/control", {"success": False, "error": "Could not reach"})
        service = build_service(network, cache)

        assert await service.toggle_device(lamp(), True) is False
        assert network.calls_to("POST", "http://192.168.1.8") == []

    @pytest.mark.asyncio
    async def test_device_without_protocol(self, network, cache):
        service = build_service(network, cache)
        assert await service.toggle_device(lamp(protocol=None), True) is False

    @pytest.mark.asyncio
    async def test_update_fan_value_maps_to_speed(self, network, cache):
        fan = Device(id="bajaj-192-168-1-9", name="Fan", type="fan", address="192.168.1.9",
                     protocol="bajaj", last_seen=0)
        cache.put([fan])
        network.add("POST", f"{RELAY}/device/control", {"success": True})
        service = build_service(network, cache)

        assert await service.update_device_state(fan, {"value": 9}) is True

        sent = network.calls_to("POST", f"{RELAY}/device/control")[0]["json"]
        assert sent["action"] == "setSpeed"
        assert cache.get(fan.id).scalar_value == 5

    @pytest.mark.asyncio
    async def test_update_falls_back_to_direct(self, network, cache):
        network.add("POST", "http://192.168.1.8/api/dimming", {})
        service = build_service(network, cache)

        assert await service.update_device_state(lamp(), {"value": 150}) is True
        assert network.calls_to("POST", "http://192.168.1.8/api/dimming")[0]["json"] == {"brightness": 100}


class TestAdoption:

    @pytest.mark.asyncio
    async def test_adopt_links_cached_device(self, network, cache):
        cache.put([lamp()])
        store = AsyncMock()
        store.adopt_device.return_value = "rec-42"
        service = build_service(network, cache, adoption=AdoptionService(store, cache))

        assert await service.adopt_device("owner-1", lamp()) == "rec-42"
        assert cache.get(lamp().id).cloud_link_id == "rec-42"

    @pytest.mark.asyncio
    async def test_adopt_failure_returns_none(self, network, cache):
        store = AsyncMock()
        store.adopt_device.return_value = None
        service = build_service(network, cache, adoption=AdoptionService(store, cache))

        assert await service.adopt_device("owner-1", lamp()) is None

    @pytest.mark.asyncio
    async def test_adopt_without_store(self, network, cache):
        assert await build_service(network, cache).adopt_device("owner-1", lamp()) is None


class TestRelayClient:

    @pytest.mark.asyncio
    async def test_unexpected_body_is_unavailable(self, network):
        network.add("GET", f"{RELAY}/scan-network", {"not": "a list"})
        client = BackendRelayClient(RELAY, session_factory=network.session_factory)

        with pytest.raises(RelayUnavailableError):
            await client.scan_network()

    @pytest.mark.asyncio
    async def test_refresh_is_forwarded(self, network):
        network.add("GET", f"{RELAY}/scan-network", [], params={"refresh": "true"})
        client = BackendRelayClient(RELAY, session_factory=network.session_factory)

        assert await client.scan_network(refresh=True) == []


def test_direct_discovery_is_restricted():
    discovery = build_direct_discovery(CONFIG)

    assert discovery.ip_ranges == ["192.168.1.1-192.168.1.100"]
    assert discovery.enable_announcements is False
    assert discovery.revalidate_passive is False
    assert discovery.max_scan_addresses == 150
