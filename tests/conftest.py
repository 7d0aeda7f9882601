"""Shared test fixtures."""
from datetime import datetime

import pytest

from powergym.models import EquipmentReading, TelemetryBatch


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    """Keep the cached ESP32 address out of the real user cache."""
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.delenv("POWERGYM_ESP32_IP", raising=False)
    monkeypatch.delenv("POWERGYM_UPDATE_INTERVAL", raising=False)
    return tmp_path / "cache"


@pytest.fixture(name="readings")
def readings_fixture():
    """A gym floor with one treadmill and one bike running."""
    return (
        EquipmentReading(
            name="Treadmill",
            power_watts=250.0,
            energy_wh=125.0,
            rpm=140,
            weight_kg=0.0,
            voltage=12.1,
            current=20.66,
            active=True,
        ),
        EquipmentReading(
            name="Stationary_Bike",
            power_watts=180.0,
            energy_wh=135.0,
            rpm=85,
            weight_kg=0.0,
            voltage=12.0,
            current=15.0,
            active=True,
        ),
        EquipmentReading(name="Elliptical", energy_wh=41.7),
    )


@pytest.fixture(name="batch")
def batch_fixture(readings):
    return TelemetryBatch(
        readings=readings,
        total_energy_wh=301.7,
        received_at=datetime(2025, 1, 15, 7, 30, 0),
    )
