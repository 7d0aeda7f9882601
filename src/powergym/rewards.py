"""
Points, levels and rewards for gym usage.

The engine owns the session's FitnessState and replaces it on every update.
It only reports state; gating actions on points (redemption) is left to the
caller.
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from .core import (
    CALORIE_CRUSHER_CALORIES,
    ENERGY_GENERATOR_WH,
    ENERGY_POINTS_PER_WH,
    EQUIPMENT_MASTER_MACHINES,
    FITNESS_POINTS_PER_MINUTE,
    GOLD_STATUS_POINTS,
    LEVEL_LADDER,
    REDEMPTION_MINIMUM_POINTS,
    REWARD_CATALOG,
)
from .models import EquipmentReading, FitnessState, Level, LevelStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reward:
    name: str
    points: int
    eligible: bool


@dataclass(frozen=True)
class Achievement:
    name: str
    description: str
    icon: str
    earned: bool


def fitness_points(active_minutes: int) -> int:
    return active_minutes * FITNESS_POINTS_PER_MINUTE


def energy_points(cumulative_energy_wh: float) -> int:
    return math.floor(cumulative_energy_wh * ENERGY_POINTS_PER_WH)


def level_for(total_points: int) -> LevelStatus:
    """Map total points to a level and the progress toward the next one.

    The ladder is evaluated top-down; the first threshold reached wins.
    """
    for minimum, level, next_level, next_threshold in LEVEL_LADDER:
        if total_points >= minimum:
            break
    progress = min(total_points / next_threshold * 100, 100.0)
    return LevelStatus(
        level=Level(level),
        next_level=Level(next_level),
        next_threshold=next_threshold,
        progress=progress,
    )


def can_redeem(total_points: int) -> bool:
    return total_points >= REDEMPTION_MINIMUM_POINTS


def reward_catalog(total_points: int) -> list[Reward]:
    """List every reward with whether the points cover it."""
    return [
        Reward(name=name, points=points, eligible=total_points >= points)
        for name, points in REWARD_CATALOG
    ]


def achievements(
    total_energy_wh: float,
    total_points: int,
    calories: int,
    machines_used: int,
) -> list[Achievement]:
    """Evaluate the session achievements."""
    return [
        Achievement(
            name="Energy Generator",
            description=f"Generated {ENERGY_GENERATOR_WH:.0f}+ Wh in a day",
            icon="⚡",
            earned=total_energy_wh >= ENERGY_GENERATOR_WH,
        ),
        Achievement(
            name="Gold Status",
            description=f"Reached {GOLD_STATUS_POINTS}+ reward points",
            icon="🏆",
            earned=total_points >= GOLD_STATUS_POINTS,
        ),
        Achievement(
            name="Calorie Crusher",
            description=f"Burned {CALORIE_CRUSHER_CALORIES}+ calories",
            icon="🔥",
            earned=calories >= CALORIE_CRUSHER_CALORIES,
        ),
        Achievement(
            name="Equipment Master",
            description=f"Used {EQUIPMENT_MASTER_MACHINES}+ different machines",
            icon="🏋️",
            earned=machines_used >= EQUIPMENT_MASTER_MACHINES,
        ),
    ]


class RewardsEngine:
    """Tracks active time and converts it, with generated energy, into points."""

    def __init__(self, session_start: Optional[datetime] = None) -> None:
        """Start a session.

        Args:
            session_start: Session start instant (defaults to now)
        """
        self._state = FitnessState(session_start=session_start or datetime.now())

    @property
    def state(self) -> FitnessState:
        return self._state

    def record_activity(
        self, readings: Iterable[EquipmentReading], now: datetime
    ) -> int:
        """Advance active minutes if any equipment is active.

        Active minutes are whole minutes since the session started, counted
        only while something is in use; they never go backwards.

        Returns:
            Active minutes after the update
        """
        active = {r.name for r in readings if r.active}
        if not active:
            return self._state.active_minutes

        elapsed = (now - self._state.session_start).total_seconds()
        minutes = max(self._state.active_minutes, math.floor(elapsed / 60))
        self._state = replace(
            self._state,
            active_minutes=minutes,
            machines_used=self._state.machines_used | active,
        )
        return minutes

    def update(self, active_minutes: int, cumulative_energy_wh: float) -> FitnessState:
        """Recompute points and level.

        Args:
            active_minutes: Active workout minutes in the session
            cumulative_energy_wh: Energy generated in the session

        Returns:
            The new FitnessState
        """
        fitness = fitness_points(active_minutes)
        energy = energy_points(cumulative_energy_wh)
        total = fitness + energy
        status = level_for(total)

        if status.level != self._state.level and total > self._state.total_points:
            logger.info(f"Level up: {self._state.level.value} -> {status.level.value}")

        self._state = replace(
            self._state,
            active_minutes=active_minutes,
            fitness_points=fitness,
            energy_points=energy,
            total_points=total,
            level=status.level,
            next_level=status.next_level,
            next_threshold=status.next_threshold,
            progress=status.progress,
        )
        return self._state

    def reset(self, now: Optional[datetime] = None) -> FitnessState:
        """Start a new session with all counters at zero."""
        self._state = FitnessState(session_start=now or datetime.now())
        logger.info("Fitness tracking reset")
        return self._state
