"""
Rolling window of total-power samples that feeds the dashboard chart.
"""

from collections import deque
from datetime import datetime

from .models import TimelinePoint


class TimelineAggregator:
    """Bounded FIFO of TimelinePoint, oldest first.

    Points are kept in insertion order; timestamps are not re-sorted.
    """

    def __init__(self, capacity: int) -> None:
        """Initialize an empty timeline.

        Args:
            capacity: Maximum number of points retained

        Raises:
            ValueError: If capacity is less than 1
        """
        if capacity < 1:
            raise ValueError(f"Timeline capacity must be positive, got {capacity}")
        self._points: deque[TimelinePoint] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._points.maxlen  # type: ignore[return-value]

    def append(self, total_power_watts: float, timestamp: datetime) -> None:
        """Add a sample, evicting the oldest one once the window is full."""
        self._points.append(TimelinePoint(timestamp, total_power_watts))

    def samples(self) -> tuple[TimelinePoint, ...]:
        return tuple(self._points)

    def clear(self) -> None:
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)
