"""
Dashboard controller: owns the session state and drives the refresh tick.

Each tick runs fetch -> timeline append -> metabolic estimates -> rewards,
in that order, and publishes a snapshot for the display. Only one refresh
is ever in flight and failed fetches leave the state untouched.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncGenerator, Callable, Optional, Protocol

from .core import (
    DISCOVERY_RETRY_DELAY,
    LIVE_TIMELINE_CAPACITY,
    LIVE_UPDATE_INTERVAL,
    RECONNECT_DELAY,
    SIMULATED_TIMELINE_CAPACITY,
    SIMULATED_UPDATE_INTERVAL,
    UPDATE_QUEUE_SIZE,
    env_update_interval,
)
from .hardware import HardwareError, HardwareMonitor
from .metabolic import CaloriePolicy, MetabolicSummary, max_of_estimates, summarize
from .models import (
    DEFAULT_PROFILE,
    FitnessState,
    TelemetryBatch,
    TimelinePoint,
    UserProfile,
)
from .rewards import Achievement, Reward, RewardsEngine, achievements, reward_catalog
from .simulator import EquipmentSimulator
from .timeline import TimelineAggregator

logger = logging.getLogger(__name__)


class TelemetrySource(Protocol):
    """Anything that can supply one TelemetryBatch per tick."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> bool: ...

    async def disconnect(self) -> None: ...

    async def fetch(self) -> TelemetryBatch: ...


@dataclass(frozen=True)
class DashboardSnapshot:
    """Everything the display needs after one tick."""

    batch: TelemetryBatch
    timeline: tuple[TimelinePoint, ...]
    metabolic: MetabolicSummary
    fitness: FitnessState


class DashboardController:
    """Runs the refresh loop and holds the timeline and fitness state."""

    def __init__(
        self,
        source: TelemetrySource,
        profile: UserProfile = DEFAULT_PROFILE,
        capacity: int = LIVE_TIMELINE_CAPACITY,
        interval: float = LIVE_UPDATE_INTERVAL,
        policy: CaloriePolicy = max_of_estimates,
    ) -> None:
        """Initialize controller with an empty session.

        Args:
            source: Telemetry source (hardware monitor or simulator)
            profile: User profile for metabolic estimates
            capacity: Timeline window size
            interval: Seconds between refresh ticks
            policy: Combines the calorie estimates
        """
        self.source = source
        self.profile = profile
        self.interval = interval
        self.policy = policy
        self.timeline = TimelineAggregator(capacity)
        self.rewards = RewardsEngine()

        self._last_snapshot: Optional[DashboardSnapshot] = None
        self._update_queue: asyncio.Queue = asyncio.Queue(maxsize=UPDATE_QUEUE_SIZE)
        self._is_running = False

        # Callbacks
        self._on_update: Optional[Callable] = None
        self._on_disconnect: Optional[Callable] = None

    @classmethod
    def live(cls, profile: UserProfile = DEFAULT_PROFILE, **kwargs: Any) -> "DashboardController":
        """Controller polling the ESP32 hardware monitor."""
        return cls(
            HardwareMonitor(kwargs.pop("candidates", None)),
            profile=profile,
            capacity=LIVE_TIMELINE_CAPACITY,
            interval=env_update_interval(LIVE_UPDATE_INTERVAL),
            **kwargs,
        )

    @classmethod
    def simulated(cls, profile: UserProfile = DEFAULT_PROFILE, **kwargs: Any) -> "DashboardController":
        """Controller driven by the built-in simulator."""
        interval = env_update_interval(SIMULATED_UPDATE_INTERVAL)
        return cls(
            EquipmentSimulator(interval=interval),
            profile=profile,
            capacity=SIMULATED_TIMELINE_CAPACITY,
            interval=interval,
            **kwargs,
        )

    @property
    def is_connected(self) -> bool:
        return self.source.is_connected

    @property
    def is_simulated(self) -> bool:
        return isinstance(self.source, EquipmentSimulator)

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def fitness_state(self) -> FitnessState:
        return self.rewards.state

    @property
    def last_snapshot(self) -> Optional[DashboardSnapshot]:
        return self._last_snapshot

    def set_on_update(self, callback: Callable) -> None:
        """Set callback for new snapshots.

        Args:
            callback: Function called with each DashboardSnapshot
        """
        self._on_update = callback

    def set_on_disconnect(self, callback: Callable) -> None:
        """Set callback for lost connections.

        Args:
            callback: Function called when a fetch fails
        """
        self._on_disconnect = callback

    async def connect(self) -> bool:
        try:
            return await self.source.connect()
        except Exception as e:
            logger.error(f"Connection failed: {e}")
            return False

    async def disconnect(self) -> None:
        self.stop()
        try:
            await self.source.disconnect()
        except Exception as e:
            logger.error(f"Disconnect failed: {e}")

    async def aclose(self) -> None:
        """Stop updates and release the source's HTTP client."""
        await self.disconnect()
        if isinstance(self.source, HardwareMonitor):
            await self.source.aclose()

    def apply(self, batch: TelemetryBatch, now: Optional[datetime] = None) -> DashboardSnapshot:
        """Run one tick's computations on a received batch.

        Args:
            batch: Readings received this tick
            now: Tick instant (defaults to the batch's receive time)

        Returns:
            The resulting snapshot
        """
        now = now or batch.received_at
        total_power = batch.total_power_watts

        self.timeline.append(total_power, now)
        active_minutes = self.rewards.record_activity(batch.readings, now)
        metabolic = summarize(
            self.profile,
            active_minutes,
            total_power,
            [r.name for r in batch.active_readings],
            self.policy,
        )
        fitness = self.rewards.update(active_minutes, batch.total_energy_wh)

        snapshot = DashboardSnapshot(
            batch=batch,
            timeline=self.timeline.samples(),
            metabolic=metabolic,
            fitness=fitness,
        )
        self._last_snapshot = snapshot
        return snapshot

    async def refresh(self) -> Optional[DashboardSnapshot]:
        """Fetch one batch and apply it.

        Returns:
            The new snapshot, or None if the fetch failed
        """
        try:
            batch = await self.source.fetch()
        except HardwareError as e:
            logger.warning(f"Failed to fetch sensor data: {e}")
            self._handle_connection_error()
            return None

        snapshot = self.apply(batch)
        self._publish(snapshot)
        return snapshot

    def _publish(self, snapshot: DashboardSnapshot) -> None:
        try:
            self._update_queue.put_nowait(snapshot)
        except asyncio.QueueFull:
            # Drop if backed up - live display can skip a frame
            pass

        if self._on_update:
            try:
                self._on_update(snapshot)
            except Exception as e:
                logger.error(f"Update callback error: {e}")

    def _handle_connection_error(self) -> None:
        if isinstance(self.source, HardwareMonitor):
            self.source.mark_lost()
        if self._on_disconnect:
            try:
                self._on_disconnect()
            except Exception as e:
                logger.error(f"Disconnect callback error: {e}")

    def reset(self, now: Optional[datetime] = None) -> FitnessState:
        """Start a new session: zero the counters and clear the chart."""
        state = self.rewards.reset(now)
        self.timeline.clear()
        self._last_snapshot = None
        while not self._update_queue.empty():
            self._update_queue.get_nowait()
        return state

    def reward_catalog(self) -> list[Reward]:
        return reward_catalog(self.fitness_state.total_points)

    def achievements(self) -> list[Achievement]:
        state = self.fitness_state
        snapshot = self._last_snapshot
        return achievements(
            total_energy_wh=snapshot.batch.total_energy_wh if snapshot else 0.0,
            total_points=state.total_points,
            calories=snapshot.metabolic.calories_burned if snapshot else 0,
            machines_used=len(state.machines_used),
        )

    async def run(self) -> None:
        """Refresh loop. Reconnects with a fixed delay after failures."""
        self._is_running = True
        logger.debug(f"Started data updates every {self.interval}s")
        try:
            while self._is_running:
                if not self.source.is_connected:
                    if not await self.connect():
                        await asyncio.sleep(DISCOVERY_RETRY_DELAY)
                        continue

                if await self.refresh() is None:
                    await asyncio.sleep(RECONNECT_DELAY)
                    continue

                await asyncio.sleep(self.interval)
        finally:
            self._is_running = False

    def stop(self) -> None:
        self._is_running = False

    async def get_updates(self) -> AsyncGenerator[DashboardSnapshot, None]:
        """Async generator that yields snapshots as ticks complete."""
        while self._is_running:
            try:
                snapshot = await asyncio.wait_for(
                    self._update_queue.get(),
                    timeout=0.5,
                )
                yield snapshot
            except asyncio.TimeoutError:
                # Continue - equipment may be idle
                continue
