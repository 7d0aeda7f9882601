"""
Metabolic estimates derived from equipment telemetry.

All figures are approximations: BMR follows the Mifflin-St Jeor constants
used by the gym's reference sheet, calorie burn combines a power-based and
a MET-based estimate.
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable

from .core import (
    ACTIVITY_MULTIPLIER,
    DEFAULT_METS,
    EQUIPMENT_METS,
    WATT_TO_CALORIES_PER_HOUR,
    WEIGHT_LOSS_DEFICIT,
    ZONE_THRESHOLDS,
)
from .models import Gender, Goal, HeartRateZone, UserProfile

# Combines (power_estimate, mets_estimate) into one figure
CaloriePolicy = Callable[[float, float], float]


def max_of_estimates(power_estimate: float, mets_estimate: float) -> float:
    """Default policy: keep whichever estimate is larger."""
    return max(power_estimate, mets_estimate)


@dataclass(frozen=True)
class MetabolicSummary:
    bmr: float
    target_calories: int
    calories_burned: int
    calorie_progress: float  # percent of target, capped at 100
    heart_rate_zone: HeartRateZone


def bmr(profile: UserProfile) -> float:
    """Basal metabolic rate in calories/day. Not clamped."""
    if profile.gender == Gender.MALE:
        return (
            66.47
            + 13.75 * profile.weight_kg
            + 5.003 * profile.height_cm
            - 6.755 * profile.age
        )
    return (
        655.1
        + 9.563 * profile.weight_kg
        + 1.850 * profile.height_cm
        - 4.676 * profile.age
    )


def tdee(profile: UserProfile) -> float:
    """Total daily energy expenditure for a moderately active user."""
    return bmr(profile) * ACTIVITY_MULTIPLIER


def target_calories(profile: UserProfile) -> int:
    """Daily calorie target for the profile's goal."""
    if profile.goal == Goal.WEIGHT_LOSS:
        return math.floor(tdee(profile) - WEIGHT_LOSS_DEFICIT)
    return math.floor(tdee(profile))


def equipment_mets(name: str) -> float:
    """MET coefficient for an equipment name; unknown names get the default."""
    return EQUIPMENT_METS.get(name, DEFAULT_METS)


def calories_burned(
    profile: UserProfile,
    active_minutes: int,
    instantaneous_power_watts: float,
    active_equipment: Iterable[str],
    policy: CaloriePolicy = max_of_estimates,
) -> int:
    """Estimate calories burned so far in the session.

    Args:
        profile: User profile (weight is used for the MET estimate)
        active_minutes: Active workout minutes
        instantaneous_power_watts: Current total power output
        active_equipment: Names of the equipment currently active
        policy: Combines the power and MET estimates

    Returns:
        Whole calories
    """
    hours = active_minutes / 60
    power_estimate = instantaneous_power_watts * WATT_TO_CALORIES_PER_HOUR * hours
    mets_estimate = sum(
        equipment_mets(name) * profile.weight_kg * hours for name in active_equipment
    )
    return math.floor(policy(power_estimate, mets_estimate))


def heart_rate_zone(instantaneous_power_watts: float) -> HeartRateZone:
    for upper, zone in ZONE_THRESHOLDS:
        if instantaneous_power_watts < upper:
            return HeartRateZone(zone)
    return HeartRateZone.MAXIMUM


def summarize(
    profile: UserProfile,
    active_minutes: int,
    instantaneous_power_watts: float,
    active_equipment: Iterable[str],
    policy: CaloriePolicy = max_of_estimates,
) -> MetabolicSummary:
    """Compute every metabolic figure the dashboard shows for one tick."""
    target = target_calories(profile)
    calories = calories_burned(
        profile, active_minutes, instantaneous_power_watts, active_equipment, policy
    )
    progress = min(calories / target * 100, 100.0) if target > 0 else 100.0
    return MetabolicSummary(
        bmr=bmr(profile),
        target_calories=target,
        calories_burned=calories,
        calorie_progress=progress,
        heart_rate_zone=heart_rate_zone(instantaneous_power_watts),
    )
