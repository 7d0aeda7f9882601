"""
Data model shared by the dashboard core and its collaborators.

Readings come from the hardware monitor (or the simulator) and are
normalized here; everything downstream trusts the normalized values.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Goal(str, Enum):
    WEIGHT_LOSS = "weight_loss"
    MAINTENANCE = "maintenance"


class HeartRateZone(str, Enum):
    """Effort zone estimated from instantaneous power."""

    REST = "Rest"
    LIGHT = "Light"
    MODERATE = "Moderate"
    VIGOROUS = "Vigorous"
    MAXIMUM = "Maximum"


class Level(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    DIAMOND = "Diamond"


def _number(value: Any) -> float:
    """Coerce a payload field to float, defaulting to zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _flag(value: Any) -> bool:
    """Only real booleans and numbers count as a flag; strings are ignored."""
    return isinstance(value, (bool, int, float)) and bool(value)


@dataclass(frozen=True)
class EquipmentReading:
    """One equipment's instantaneous reading."""

    name: str
    power_watts: float = 0.0
    energy_wh: float = 0.0  # cumulative for the session
    rpm: float = 0.0
    weight_kg: float = 0.0
    voltage: float = 0.0
    current: float = 0.0
    active: bool = False

    @classmethod
    def from_payload(cls, data: dict) -> "EquipmentReading":
        """Build a reading from the hardware monitor's JSON object.

        Missing or malformed numeric fields become zero, negative power is
        clamped to zero.

        Args:
            data: Equipment object as returned by /api/equipment

        Returns:
            Normalized EquipmentReading
        """
        return cls(
            name=str(data.get("name") or "Unknown"),
            power_watts=max(_number(data.get("power")), 0.0),
            energy_wh=max(_number(data.get("energy")), 0.0),
            rpm=max(_number(data.get("rpm")), 0.0),
            weight_kg=max(_number(data.get("weight")), 0.0),
            voltage=_number(data.get("voltage")),
            current=_number(data.get("current")),
            active=_flag(data.get("active")),
        )


@dataclass(frozen=True)
class TelemetryBatch:
    """All readings received during one tick."""

    readings: tuple[EquipmentReading, ...]
    total_energy_wh: float
    received_at: datetime

    @property
    def total_power_watts(self) -> float:
        return sum(r.power_watts for r in self.readings)

    @property
    def active_readings(self) -> list[EquipmentReading]:
        return [r for r in self.readings if r.active]


@dataclass(frozen=True)
class TimelinePoint:
    timestamp: datetime
    total_power_watts: float


@dataclass(frozen=True)
class UserProfile:
    """Physical profile used for metabolic estimates. Read-only for a session."""

    name: str
    age: int
    weight_kg: float
    height_cm: float
    gender: Gender
    goal: Goal = Goal.WEIGHT_LOSS

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        """Build a profile from a JSON mapping.

        Accepts both ``weight``/``height`` and ``weight_kg``/``height_cm``
        keys.

        Raises:
            ValueError: If a field is missing or out of range
        """
        try:
            profile = cls(
                name=str(data.get("name", "")),
                age=int(data["age"]),
                weight_kg=float(data.get("weight_kg", data.get("weight"))),
                height_cm=float(data.get("height_cm", data.get("height"))),
                gender=Gender(str(data["gender"]).lower()),
                goal=Goal(data.get("goal", data.get("fitness_goal", "weight_loss"))),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Incomplete user profile: {e}") from e

        if profile.age <= 0 or profile.weight_kg <= 0 or profile.height_cm <= 0:
            raise ValueError("Age, weight and height must be positive")
        return profile


DEFAULT_PROFILE = UserProfile(
    name="David Strong",
    age=28,
    weight_kg=75,
    height_cm=175,
    gender=Gender.MALE,
    goal=Goal.WEIGHT_LOSS,
)


@dataclass(frozen=True)
class LevelStatus:
    level: Level
    next_level: Level
    next_threshold: int
    progress: float  # percent, capped at 100


@dataclass(frozen=True)
class FitnessState:
    """Session counters and the points derived from them."""

    session_start: datetime
    active_minutes: int = 0
    fitness_points: int = 0
    energy_points: int = 0
    total_points: int = 0
    level: Level = Level.BRONZE
    next_level: Level = Level.SILVER
    next_threshold: int = 1000
    progress: float = 0.0
    machines_used: frozenset[str] = field(default_factory=frozenset)

    @property
    def level_status(self) -> LevelStatus:
        return LevelStatus(
            level=self.level,
            next_level=self.next_level,
            next_threshold=self.next_threshold,
            progress=self.progress,
        )
