"""Tests for BMR, calorie burn and heart rate zone estimates."""
import pytest

from powergym.metabolic import (
    bmr,
    calories_burned,
    equipment_mets,
    heart_rate_zone,
    max_of_estimates,
    summarize,
    target_calories,
    tdee,
)
from powergym.models import DEFAULT_PROFILE, Gender, Goal, HeartRateZone, UserProfile

FEMALE = UserProfile(
    name="Ana", age=30, weight_kg=60, height_cm=165, gender=Gender.FEMALE
)


class TestBMR:
    def test_reference_male(self):
        assert bmr(DEFAULT_PROFILE) == pytest.approx(1784.105)
        assert round(bmr(DEFAULT_PROFILE)) == 1784

    def test_female_formula(self):
        expected = 655.1 + 9.563 * 60 + 1.850 * 165 - 4.676 * 30
        assert bmr(FEMALE) == pytest.approx(expected)

    def test_not_clamped(self):
        tiny = UserProfile(name="", age=120, weight_kg=1, height_cm=1, gender=Gender.MALE)
        assert bmr(tiny) < 0


class TestTargets:
    def test_tdee(self):
        assert tdee(DEFAULT_PROFILE) == pytest.approx(1784.105 * 1.55)
        assert round(tdee(DEFAULT_PROFILE)) == 2765

    def test_weight_loss_target(self):
        assert target_calories(DEFAULT_PROFILE) == 2265

    def test_maintenance_target(self):
        profile = UserProfile(
            name="", age=28, weight_kg=75, height_cm=175,
            gender=Gender.MALE, goal=Goal.MAINTENANCE,
        )
        assert target_calories(profile) == 2765


class TestEquipmentMets:
    @pytest.mark.parametrize("name,mets", [
        ("Treadmill", 8.5),
        ("Stationary_Bike", 7.0),
        ("Elliptical", 6.0),
        ("Rowing_Machine", 8.0),
    ])
    def test_known_equipment(self, name, mets):
        assert equipment_mets(name) == mets

    def test_unknown_defaults(self):
        assert equipment_mets("Pull_Up_Machine") == 5.0
        assert equipment_mets("") == 5.0


class TestCaloriesBurned:
    def test_mets_estimate_when_no_power(self):
        assert calories_burned(DEFAULT_PROFILE, 60, 0.0, ["Treadmill"]) == 637

    def test_power_estimate_wins_when_larger(self):
        # 1000 W * 0.86 * 2 h = 1720 vs 5.0 * 75 * 2 = 750
        assert calories_burned(DEFAULT_PROFILE, 120, 1000.0, ["Unknown"]) == 1720

    def test_sums_active_equipment(self):
        # (8.5 + 7.0) * 75 * 0.5 = 581.25
        result = calories_burned(
            DEFAULT_PROFILE, 30, 0.0, ["Treadmill", "Stationary_Bike"]
        )
        assert result == 581

    def test_nothing_active_no_power(self):
        assert calories_burned(DEFAULT_PROFILE, 45, 0.0, []) == 0

    def test_zero_minutes(self):
        assert calories_burned(DEFAULT_PROFILE, 0, 400.0, ["Treadmill"]) == 0

    @pytest.mark.parametrize("minutes", [0, 1, 17, 60, 135])
    @pytest.mark.parametrize("power", [0.0, 49.9, 250.0, 800.0])
    def test_never_below_either_estimate(self, minutes, power):
        result = calories_burned(DEFAULT_PROFILE, minutes, power, ["Elliptical"])
        power_estimate = power * 0.86 * (minutes / 60)
        mets_estimate = 6.0 * 75 * (minutes / 60)
        assert result >= int(power_estimate)
        assert result >= int(mets_estimate)

    def test_custom_policy(self):
        result = calories_burned(
            DEFAULT_PROFILE, 60, 1000.0, ["Treadmill"],
            policy=lambda power, mets: (power + mets) / 2,
        )
        assert result == int((860.0 + 637.5) / 2)

    def test_default_policy_is_max(self):
        assert max_of_estimates(1.0, 2.0) == 2.0
        assert max_of_estimates(3.0, 2.0) == 3.0


class TestHeartRateZone:
    @pytest.mark.parametrize("power,zone", [
        (0, HeartRateZone.REST),
        (49, HeartRateZone.REST),
        (49.99, HeartRateZone.REST),
        (50, HeartRateZone.LIGHT),
        (149, HeartRateZone.LIGHT),
        (150, HeartRateZone.MODERATE),
        (299, HeartRateZone.MODERATE),
        (300, HeartRateZone.VIGOROUS),
        (499, HeartRateZone.VIGOROUS),
        (500, HeartRateZone.MAXIMUM),
        (2000, HeartRateZone.MAXIMUM),
    ])
    def test_thresholds(self, power, zone):
        assert heart_rate_zone(power) == zone

    def test_zone_values_are_display_names(self):
        assert heart_rate_zone(200).value == "Moderate"


class TestSummarize:
    def test_reference_session(self):
        summary = summarize(DEFAULT_PROFILE, 60, 0.0, ["Treadmill"])
        assert summary.bmr == pytest.approx(1784.105)
        assert summary.target_calories == 2265
        assert summary.calories_burned == 637
        assert summary.calorie_progress == pytest.approx(637 / 2265 * 100)
        assert summary.heart_rate_zone == HeartRateZone.REST

    def test_progress_capped(self):
        summary = summarize(DEFAULT_PROFILE, 600, 1000.0, ["Treadmill"])
        assert summary.calorie_progress == 100.0
        assert summary.heart_rate_zone == HeartRateZone.MAXIMUM
