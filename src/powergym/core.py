"""
Core constants and environment overrides for the PowerGym dashboard.
"""

import os

# ESP32 hardware monitor
ESP32_SYSTEM_NAME = "PowerGym Monitor"
CANDIDATE_IPS = [
    "192.168.1.100",
    "192.168.1.101",
    "192.168.1.102",
    "192.168.0.100",
    "192.168.0.101",
    "192.168.0.102",
    "10.0.0.100",
    "10.0.0.101",
]
PROBE_TIMEOUT = 2.0
REQUEST_TIMEOUT = 5.0

# Tick intervals in seconds
LIVE_UPDATE_INTERVAL = 1.0
SIMULATED_UPDATE_INTERVAL = 5.0

# Retry delays in seconds
RECONNECT_DELAY = 3.0
DISCOVERY_RETRY_DELAY = 10.0

# Timeline window sizes
SIMULATED_TIMELINE_CAPACITY = 10
LIVE_TIMELINE_CAPACITY = 30

# Metabolic constants (approximations)
WATT_TO_CALORIES_PER_HOUR = 0.86
ACTIVITY_MULTIPLIER = 1.55  # moderately active
WEIGHT_LOSS_DEFICIT = 500
DEFAULT_METS = 5.0
EQUIPMENT_METS = {
    "Treadmill": 8.5,
    "Stationary_Bike": 7.0,
    "Elliptical": 6.0,
    "Rowing_Machine": 8.0,
}
GRAVITY = 9.81

# Upper bounds (exclusive) of each heart rate zone, in watts
ZONE_THRESHOLDS = [
    (50, "Rest"),
    (150, "Light"),
    (300, "Moderate"),
    (500, "Vigorous"),
]

# Rewards
FITNESS_POINTS_PER_MINUTE = 10
ENERGY_POINTS_PER_WH = 5
REDEMPTION_MINIMUM_POINTS = 100

# (minimum points, level, next level, next level threshold), highest first
LEVEL_LADDER = [
    (5000, "Platinum", "Diamond", 10000),
    (3000, "Gold", "Platinum", 5000),
    (1000, "Silver", "Gold", 3000),
    (0, "Bronze", "Silver", 1000),
]

REWARD_CATALOG = [
    ("Free Protein Shake", 100),
    ("Guest Day Pass", 500),
    ("Personal Training Session", 1000),
    ("Monthly Membership Discount", 2000),
    ("Fitness Equipment Rental", 3000),
]

# Achievement thresholds
ENERGY_GENERATOR_WH = 300.0
GOLD_STATUS_POINTS = 3000
CALORIE_CRUSHER_CALORIES = 1500
EQUIPMENT_MASTER_MACHINES = 5

# Snapshot queue between controller and display
UPDATE_QUEUE_SIZE = 10


def env_esp32_ip() -> str | None:
    """ESP32 address forced through the environment, if any."""
    return os.environ.get("POWERGYM_ESP32_IP") or None


def env_update_interval(default: float) -> float:
    """Tick interval override from the environment."""
    value = os.environ.get("POWERGYM_UPDATE_INTERVAL")
    if not value:
        return default
    try:
        interval = float(value)
    except ValueError:
        return default
    return interval if interval > 0 else default


# Application metadata
__version__ = "0.1.0"
__description__ = "Terminal dashboard for energy-generating gym equipment"
