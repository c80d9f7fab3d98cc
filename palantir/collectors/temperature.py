"""
Temperature source backed by the hardware monitor catalog.

Reads millidegree channels and reports one CPU and one GPU value in
degrees Celsius. A die-level CPU reading supersedes the per-core
average. Zero means "not present" and is suppressed at render time.
"""

from pathlib import Path

from ..models.metrics import Temperatures
from .base import Source
from .hwmon import TemperatureChannels, average_sensors, discover_temperature_channels


MILLIDEGREES = 1000.0


class TemperatureSource(Source):
    """Source for CPU and GPU temperatures."""

    SOURCE_TYPE = "temperature"

    def __init__(self, channels: TemperatureChannels):
        super().__init__()
        self._channels = channels

    @classmethod
    def discover(cls, sys_path: Path) -> "TemperatureSource":
        return cls(discover_temperature_channels(sys_path / "class" / "hwmon"))

    def read(self) -> Temperatures:
        cpu = average_sensors(self._channels.cpu_die)
        if cpu is None:
            cpu = average_sensors(self._channels.cpu_cores)
        gpu = average_sensors(self._channels.gpu_edge)

        return Temperatures(
            cpu=(cpu or 0.0) / MILLIDEGREES,
            gpu=(gpu or 0.0) / MILLIDEGREES,
        )

    def close(self) -> None:
        self._channels.close()

    def __repr__(self) -> str:
        return f"TemperatureSource({len(self._channels)} channels)"
