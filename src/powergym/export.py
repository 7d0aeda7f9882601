"""
CSV export of the latest equipment readings.

The layout is consumed by downstream spreadsheets and must not change:
comma-joined fields without quoting, newline-joined rows, no trailing
newline, ISO-8601 UTC timestamps with milliseconds.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .models import EquipmentReading

logger = logging.getLogger(__name__)

CSV_HEADER = ["Timestamp", "Equipment", "Power (W)", "Energy (Wh)", "RPM", "Weight (kg)"]


def iso_timestamp(moment: datetime) -> str:
    """Format as UTC ``YYYY-MM-DDTHH:MM:SS.mmmZ``; naive times are local."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_number(value: float) -> str:
    """Render integral values without a decimal point (250.0 -> "250")."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def readings_to_csv(
    readings: Iterable[EquipmentReading], moment: Optional[datetime] = None
) -> str:
    """Build the CSV text for a set of readings, all stamped with one instant."""
    stamp = iso_timestamp(moment or datetime.now(timezone.utc))
    rows = [CSV_HEADER]
    for reading in readings:
        rows.append(
            [
                stamp,
                reading.name,
                format_number(reading.power_watts),
                format_number(reading.energy_wh),
                format_number(reading.rpm),
                format_number(reading.weight_kg),
            ]
        )
    return "\n".join(",".join(row) for row in rows)


def default_filename(moment: Optional[datetime] = None) -> str:
    day = iso_timestamp(moment or datetime.now(timezone.utc)).split("T")[0]
    return f"powergym_data_{day}.csv"


def export_csv(
    readings: Iterable[EquipmentReading],
    directory: Path = Path("."),
    moment: Optional[datetime] = None,
) -> Path:
    """Write the readings to ``powergym_data_<date>.csv`` in a directory.

    Returns:
        Path of the written file
    """
    moment = moment or datetime.now(timezone.utc)
    path = Path(directory) / default_filename(moment)
    path.write_text(readings_to_csv(readings, moment), encoding="utf-8", newline="")
    logger.info(f"Exported data to {path}")
    return path
