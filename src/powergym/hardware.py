"""
Async HTTP client for the ESP32 PowerGym hardware monitor.

Handles discovery by probing candidate addresses, connection state, the
cached device address, and the telemetry and calibration endpoints.
"""

import json
import logging
import os
import platform
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import httpx

from .core import (
    CANDIDATE_IPS,
    ESP32_SYSTEM_NAME,
    PROBE_TIMEOUT,
    REQUEST_TIMEOUT,
    env_esp32_ip,
)
from .models import EquipmentReading, TelemetryBatch

logger = logging.getLogger(__name__)


class HardwareError(Exception):
    """Raised when the hardware monitor cannot be reached or answers badly."""


class HardwareMonitor:
    """Manages discovery of and communication with the ESP32 monitor."""

    SYSTEM_NAME = ESP32_SYSTEM_NAME

    @classmethod
    def _get_cache_file(cls) -> Path:
        """Get the standard cache file location for the device address."""
        # Check XDG_CACHE_HOME first (Linux/Unix standard)
        cache_dir = os.environ.get("XDG_CACHE_HOME")
        if cache_dir:
            cache_path = Path(cache_dir) / "powergym"
        else:
            system = platform.system()
            if system == "Darwin":
                cache_path = Path.home() / "Library" / "Caches" / "powergym"
            elif system == "Windows":
                local_appdata = os.environ.get("LOCALAPPDATA")
                if local_appdata:
                    cache_path = Path(local_appdata) / "powergym"
                else:
                    appdata = os.environ.get(
                        "APPDATA", str(Path.home() / "AppData" / "Roaming")
                    )
                    cache_path = Path(appdata) / "powergym"
            else:
                cache_path = Path.home() / ".cache" / "powergym"

        cache_path.mkdir(parents=True, exist_ok=True)
        return cache_path / "esp32_address.json"

    def __init__(
        self,
        candidates: Optional[list[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize monitor with no connection.

        Args:
            candidates: Addresses probed during discovery
            transport: httpx transport override (tests)
        """
        self.candidates = list(candidates or CANDIDATE_IPS)
        self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT, transport=transport)
        self._address: Optional[str] = None
        self._connected = False
        self._status: dict[str, Any] = {}

    @property
    def is_connected(self) -> bool:
        return self._connected and self._address is not None

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def uptime_ms(self) -> int:
        """Monitor uptime reported at connection time."""
        try:
            return int(self._status.get("uptime", 0))
        except (TypeError, ValueError):
            return 0

    def _url(self, path: str, address: Optional[str] = None) -> str:
        return f"http://{address or self._address}{path}"

    def _load_cached_address(self) -> str | None:
        """Load cached device address from file.

        Returns:
            Cached address string if available, None otherwise
        """
        try:
            cache_file = self._get_cache_file()
            if cache_file.exists():
                with open(cache_file, "r") as f:
                    data = json.load(f)
                    return data.get("address")
        except Exception as e:
            logger.warning(f"Failed to load cached address: {e}")
        return None

    def _save_cached_address(self, address: str) -> None:
        try:
            cache_file = self._get_cache_file()
            with open(cache_file, "w") as f:
                json.dump({"address": address}, f, indent=2)
            logger.debug(f"Cached device address: {address}")
        except Exception as e:
            logger.warning(f"Failed to save cached address: {e}")

    @classmethod
    def clear_address_cache(cls) -> None:
        """Clear the cached device address.

        This will force rediscovery on next connection attempt.
        """
        try:
            cache_file = cls._get_cache_file()
            if cache_file.exists():
                cache_file.unlink()
                logger.info("Cleared cached device address")
        except Exception as e:
            logger.warning(f"Failed to clear cached address: {e}")

    async def _get_json(self, url: str, timeout: float = REQUEST_TIMEOUT) -> dict:
        try:
            response = await self._client.get(url, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise HardwareError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise HardwareError(f"GET {url} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise HardwareError(f"GET {url} returned unexpected payload")
        return data

    async def probe(self, address: str) -> dict | None:
        """Check whether a PowerGym monitor answers at an address.

        Returns:
            Status payload if the monitor identifies itself, None otherwise
        """
        try:
            status = await self._get_json(
                self._url("/api/status", address), timeout=PROBE_TIMEOUT
            )
        except HardwareError as e:
            logger.debug(f"ESP32 not found at {address}: {e}")
            return None

        if status.get("system") != self.SYSTEM_NAME:
            logger.debug(f"{address} is not a {self.SYSTEM_NAME}")
            return None
        return status

    async def discover(self) -> bool:
        """Probe the candidate addresses in order.

        Returns:
            True if a monitor was found, False otherwise
        """
        logger.info("Searching for ESP32...")
        for address in self.candidates:
            status = await self.probe(address)
            if status is not None:
                logger.info(f"Found {self.SYSTEM_NAME} at {address}")
                self._address = address
                self._status = status
                return True

        logger.warning("ESP32 not found")
        return False

    async def connect(self) -> bool:
        """Connect to the monitor.

        Tries the address from the environment, then the cached address,
        then falls back to discovery.

        Returns:
            True if connected successfully, False otherwise
        """
        if self.is_connected:
            logger.warning("Already connected")
            return True

        for preferred in (env_esp32_ip(), self._load_cached_address()):
            if not preferred:
                continue
            logger.info(f"Trying known address: {preferred}")
            status = await self.probe(preferred)
            if status is not None:
                self._address = preferred
                self._status = status
                return self._mark_connected()

        if not await self.discover():
            return False
        return self._mark_connected()

    def _mark_connected(self) -> bool:
        self._connected = True
        logger.info(f"Connected to ESP32 at {self._address}")
        self._save_cached_address(self._address)  # type: ignore[arg-type]
        return True

    def mark_lost(self) -> None:
        """Flag the connection as lost after a failed request."""
        if self._connected:
            logger.warning("Connection to ESP32 lost")
        self._connected = False

    async def disconnect(self) -> None:
        if self._connected:
            logger.info("Disconnected")
        self._connected = False
        self._status = {}

    async def aclose(self) -> None:
        await self.disconnect()
        await self._client.aclose()

    async def fetch(self) -> TelemetryBatch:
        """Read the energy totals and per-equipment readings.

        Raises:
            HardwareError: If not connected or either request fails
        """
        if not self.is_connected:
            raise HardwareError("Not connected")

        energy = await self._get_json(self._url("/api/energy"))
        equipment = await self._get_json(self._url("/api/equipment"))

        items = equipment.get("equipment") or []
        if not isinstance(items, list):
            raise HardwareError("/api/equipment returned an unexpected payload")
        readings = tuple(
            EquipmentReading.from_payload(item)
            for item in items
            if isinstance(item, dict)
        )
        try:
            total_energy = max(float(energy.get("total_energy") or 0), 0.0)
        except (TypeError, ValueError):
            total_energy = 0.0

        return TelemetryBatch(
            readings=readings,
            total_energy_wh=total_energy,
            received_at=datetime.now(),
        )

    async def calibrate(self) -> bool:
        """Ask the monitor to recalibrate all sensors.

        Returns:
            True if the monitor accepted the command, False otherwise
        """
        if not self.is_connected:
            logger.error("Not connected")
            return False

        try:
            response = await self._client.post(
                self._url("/api/calibrate"), json={"action": "calibrate_all"}
            )
        except httpx.HTTPError as e:
            logger.error(f"Calibration failed: {e}")
            return False

        if response.is_success:
            logger.info("Sensor calibration started")
            return True
        logger.error(f"Calibration rejected: HTTP {response.status_code}")
        return False
