"""
Simulated gym floor for demo mode.

Mirrors the hardware monitor's behaviour closely enough to drive the
dashboard without an ESP32: machines randomly switch between active and
idle, active machines drift their power output, and energy accumulates.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .core import SIMULATED_UPDATE_INTERVAL
from .models import EquipmentReading, TelemetryBatch

logger = logging.getLogger(__name__)

TOGGLE_PROBABILITY = 0.1
NOMINAL_VOLTAGE = 12.0


@dataclass
class SimulatedMachine:
    name: str
    power_watts: float
    energy_wh: float
    rpm: float
    weight_kg: float
    active: bool = False


def default_machines() -> list[SimulatedMachine]:
    """The demo gym: five machines, one in use."""
    return [
        SimulatedMachine("Treadmill", 250, 125.0, 140, 0.0),
        SimulatedMachine("Stationary_Bike", 180, 135.0, 85, 0.0, active=True),
        SimulatedMachine("Elliptical", 100, 41.7, 60, 0.0),
        SimulatedMachine("Rowing_Machine", 220, 73.3, 28, 0.0),
        SimulatedMachine("Pull_Up_Machine", 60, 15.0, 0, 40.0),
    ]


class EquipmentSimulator:
    """Telemetry source producing one simulated batch per tick."""

    def __init__(
        self,
        machines: Optional[list[SimulatedMachine]] = None,
        interval: float = SIMULATED_UPDATE_INTERVAL,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.machines = machines if machines is not None else default_machines()
        self.interval = interval
        self._rng = rng or random.Random()
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        self._connected = True
        logger.info(f"Simulating {len(self.machines)} machines")
        return True

    async def disconnect(self) -> None:
        self._connected = False

    def step(self) -> None:
        """Advance the simulation by one tick."""
        for machine in self.machines:
            if self._rng.random() < TOGGLE_PROBABILITY:
                machine.active = not machine.active
                logger.debug(
                    f"{machine.name} is now {'active' if machine.active else 'idle'}"
                )

            if machine.active:
                factor = 0.9 + self._rng.random() * 0.2
                machine.power_watts = float(int(machine.power_watts * factor))
                machine.energy_wh += machine.power_watts * self.interval / 3600

    def snapshot(self, now: Optional[datetime] = None) -> TelemetryBatch:
        """Current readings; idle machines report no power."""
        readings = []
        for machine in self.machines:
            power = machine.power_watts if machine.active else 0.0
            readings.append(
                EquipmentReading(
                    name=machine.name,
                    power_watts=power,
                    energy_wh=round(machine.energy_wh, 1),
                    rpm=machine.rpm if machine.active else 0.0,
                    weight_kg=machine.weight_kg,
                    voltage=NOMINAL_VOLTAGE if machine.active else 0.0,
                    current=round(power / NOMINAL_VOLTAGE, 2),
                    active=machine.active,
                )
            )
        return TelemetryBatch(
            readings=tuple(readings),
            total_energy_wh=round(sum(m.energy_wh for m in self.machines), 1),
            received_at=now or datetime.now(),
        )

    async def fetch(self) -> TelemetryBatch:
        self.step()
        return self.snapshot()
