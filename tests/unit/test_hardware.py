"""Tests for the ESP32 HTTP client against a fake monitor."""
import json

import httpx
import pytest
import pytest_asyncio

from powergym.hardware import HardwareError, HardwareMonitor

STATUS = {"system": "PowerGym Monitor", "uptime": 93784000, "version": "1.0"}
ENERGY = {"total_energy": 260.5, "energy_data": [{"power": 250}, {"power": 0}]}
EQUIPMENT = {
    "equipment": [
        {"name": "Treadmill", "power": 250, "energy": 125.5, "rpm": 140,
         "weight": 0, "voltage": 12.1, "current": 20.66, "active": True},
        {"name": "Stationary_Bike", "power": None, "energy": 135.0, "active": False},
    ]
}


class FakeMonitor:
    """Routes requests to a single fake ESP32 at a given host."""

    def __init__(self, host: str = "192.168.0.101") -> None:
        self.host = host
        self.requests: list[httpx.Request] = []
        self.fail_energy = False
        self.calibrate_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host != self.host:
            raise httpx.ConnectError("unreachable", request=request)

        path = request.url.path
        if path == "/api/status":
            return httpx.Response(200, json=STATUS)
        if path == "/api/energy":
            if self.fail_energy:
                return httpx.Response(500, text="sensor bus error")
            return httpx.Response(200, json=ENERGY)
        if path == "/api/equipment":
            return httpx.Response(200, json=EQUIPMENT)
        if path == "/api/calibrate":
            return httpx.Response(self.calibrate_status, json={"ok": True})
        return httpx.Response(404)


@pytest.fixture(name="fake")
def fake_fixture():
    return FakeMonitor()


@pytest_asyncio.fixture(name="monitor")
async def monitor_fixture(fake):
    monitor = HardwareMonitor(transport=httpx.MockTransport(fake))
    yield monitor
    await monitor.aclose()


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_probe_found(self, monitor):
        assert await monitor.probe("192.168.0.101") == STATUS

    @pytest.mark.asyncio
    async def test_probe_unreachable(self, monitor):
        assert await monitor.probe("10.0.0.100") is None

    @pytest.mark.asyncio
    async def test_probe_wrong_system(self):
        def handler(request):
            return httpx.Response(200, json={"system": "Coffee Machine"})

        monitor = HardwareMonitor(transport=httpx.MockTransport(handler))
        assert await monitor.probe("192.168.1.100") is None
        await monitor.aclose()

    @pytest.mark.asyncio
    async def test_probe_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>router</html>")

        monitor = HardwareMonitor(transport=httpx.MockTransport(handler))
        assert await monitor.probe("192.168.1.100") is None
        await monitor.aclose()

    @pytest.mark.asyncio
    async def test_discover_probes_in_order(self, monitor, fake):
        assert await monitor.discover()
        assert monitor.address == "192.168.0.101"
        probed = [r.url.host for r in fake.requests]
        assert probed == [
            "192.168.1.100",
            "192.168.1.101",
            "192.168.1.102",
            "192.168.0.100",
            "192.168.0.101",
        ]

    @pytest.mark.asyncio
    async def test_discover_not_found(self):
        fake = FakeMonitor(host="172.16.0.1")
        monitor = HardwareMonitor(transport=httpx.MockTransport(fake))
        assert not await monitor.discover()
        assert monitor.address is None
        assert len(fake.requests) == len(monitor.candidates)
        await monitor.aclose()


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_caches_address(self, monitor, isolated_cache):
        assert await monitor.connect()
        assert monitor.is_connected
        assert monitor.uptime_ms == 93784000

        cache_file = isolated_cache / "powergym" / "esp32_address.json"
        assert json.loads(cache_file.read_text()) == {"address": "192.168.0.101"}

    @pytest.mark.asyncio
    async def test_connect_tries_cached_address_first(self, fake, isolated_cache):
        cache_dir = isolated_cache / "powergym"
        cache_dir.mkdir(parents=True)
        (cache_dir / "esp32_address.json").write_text(json.dumps({"address": "192.168.0.101"}))

        monitor = HardwareMonitor(transport=httpx.MockTransport(fake))
        assert await monitor.connect()
        assert [r.url.host for r in fake.requests] == ["192.168.0.101"]
        await monitor.aclose()

    @pytest.mark.asyncio
    async def test_connect_uses_environment_address(self, monkeypatch):
        monkeypatch.setenv("POWERGYM_ESP32_IP", "10.1.2.3")
        fake = FakeMonitor(host="10.1.2.3")
        monitor = HardwareMonitor(transport=httpx.MockTransport(fake))
        assert await monitor.connect()
        assert monitor.address == "10.1.2.3"
        await monitor.aclose()

    @pytest.mark.asyncio
    async def test_clear_cache(self, monitor, isolated_cache):
        await monitor.connect()
        monitor.clear_address_cache()
        assert not (isolated_cache / "powergym" / "esp32_address.json").exists()

    @pytest.mark.asyncio
    async def test_mark_lost_and_disconnect(self, monitor):
        await monitor.connect()
        monitor.mark_lost()
        assert not monitor.is_connected

        await monitor.connect()
        await monitor.disconnect()
        assert not monitor.is_connected


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_builds_batch(self, monitor):
        await monitor.connect()
        batch = await monitor.fetch()

        assert batch.total_energy_wh == 260.5
        assert [r.name for r in batch.readings] == ["Treadmill", "Stationary_Bike"]
        assert batch.readings[0].power_watts == 250.0
        assert batch.readings[0].active
        assert batch.readings[1].power_watts == 0.0
        assert batch.total_power_watts == 250.0

    @pytest.mark.asyncio
    async def test_fetch_requires_connection(self, monitor):
        with pytest.raises(HardwareError):
            await monitor.fetch()

    @pytest.mark.asyncio
    async def test_fetch_http_error(self, monitor, fake):
        await monitor.connect()
        fake.fail_energy = True
        with pytest.raises(HardwareError):
            await monitor.fetch()

    @pytest.mark.asyncio
    async def test_fetch_tolerates_missing_fields(self):
        def handler(request):
            if request.url.path == "/api/status":
                return httpx.Response(200, json=STATUS)
            return httpx.Response(200, json={})

        monitor = HardwareMonitor(candidates=["192.168.1.100"], transport=httpx.MockTransport(handler))
        await monitor.connect()
        batch = await monitor.fetch()
        assert batch.readings == ()
        assert batch.total_energy_wh == 0.0
        await monitor.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"equipment": 5}, {"equipment": "Treadmill"}, {"equipment": {"name": "Bike"}}])
    async def test_fetch_rejects_malformed_equipment(self, body):
        def handler(request):
            if request.url.path == "/api/status":
                return httpx.Response(200, json=STATUS)
            if request.url.path == "/api/equipment":
                return httpx.Response(200, json=body)
            return httpx.Response(200, json=ENERGY)

        monitor = HardwareMonitor(candidates=["192.168.1.100"], transport=httpx.MockTransport(handler))
        await monitor.connect()
        with pytest.raises(HardwareError):
            await monitor.fetch()
        await monitor.aclose()

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self, monitor):
        await monitor.connect()
        await monitor.aclose()
        assert not monitor.is_connected
        assert monitor._client.is_closed


class TestCalibrate:
    @pytest.mark.asyncio
    async def test_calibrate_posts_command(self, monitor, fake):
        await monitor.connect()
        assert await monitor.calibrate()

        request = fake.requests[-1]
        assert request.method == "POST"
        assert request.url.path == "/api/calibrate"
        assert json.loads(request.content) == {"action": "calibrate_all"}

    @pytest.mark.asyncio
    async def test_calibrate_rejected(self, monitor, fake):
        await monitor.connect()
        fake.calibrate_status = 503
        assert not await monitor.calibrate()

    @pytest.mark.asyncio
    async def test_calibrate_requires_connection(self, monitor):
        assert not await monitor.calibrate()
