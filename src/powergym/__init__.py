"""
PowerGym - Energy Dashboard for Gym Equipment

Turns power readings from energy-generating gym equipment into a live
terminal dashboard with calorie estimates, points and levels.
"""

__version__ = "0.1.0"
__description__ = "Terminal dashboard for energy-generating gym equipment"

from .controller import DashboardController
from .display import DisplayManager

__all__ = ["DashboardController", "DisplayManager"]
