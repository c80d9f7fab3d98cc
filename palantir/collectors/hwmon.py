"""
Hardware monitor catalog.

Enumerates /sys/class/hwmon devices, reads their declared names and
channel labels, and classifies temperature channels into CPU and GPU
roles.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from ..logging import get_logger
from ..utils.sensor_file import SensorError, SensorFile


logger = get_logger("sensors.hwmon")


class SensorRole(Enum):
    """What a hardware monitor device measures."""

    CPU = "cpu"
    GPU = "gpu"


# Device names, matched exactly
CPU_DEVICES = frozenset({"k10temp", "coretemp", "cpu_thermal", "soc_thermal"})
GPU_DEVICES = frozenset({"amdgpu", "gpu_thermal"})

# Raspberry Pi / RK3588 thermal devices expose a single unlabeled channel
UNLABELED_CHANNELS = {
    "cpu_thermal": "Tdie",
    "soc_thermal": "Tdie",
    "gpu_thermal": "edge",
}

DIE_LABEL = "Tdie"
CORE_LABEL = re.compile(r"Core \d+")
GPU_LABEL = "edge"


def _read_trimmed(path: Path) -> str:
    return path.read_text().strip()


class HwmonChannel(NamedTuple):
    """One *_input file of a hardware monitor device."""

    label: str
    input_path: Path

    def open(self) -> SensorFile:
        return SensorFile(self.input_path)


class HwmonDevice:
    """A hardware monitor device directory with a declared name."""

    def __init__(self, path: Path):
        """
        Args:
            path: Device directory (e.g. /sys/class/hwmon/hwmon0)

        Raises:
            OSError: If the device name cannot be read
        """
        self.path = path
        self.name = _read_trimmed(path / "name")

    @classmethod
    def discover(cls, root: Path) -> list["HwmonDevice"]:
        """
        List hardware monitor devices, skipping those without a readable name.

        Args:
            root: hwmon class directory (e.g. /sys/class/hwmon)
        """
        devices = []
        try:
            entries = sorted(root.iterdir())
        except OSError:
            return devices

        for entry in entries:
            try:
                devices.append(cls(entry))
            except OSError as e:
                logger.debug(f"Skipping hwmon device {entry}: {e}")

        return devices

    @property
    def role(self) -> SensorRole | None:
        if self.name in CPU_DEVICES:
            return SensorRole.CPU
        if self.name in GPU_DEVICES:
            return SensorRole.GPU
        return None

    def channels(self) -> list[HwmonChannel]:
        """
        List labeled input channels.

        Channels of unlabeled device families get their fixed label; other
        channels without a readable label file are skipped.
        """
        channels = []
        fixed_label = UNLABELED_CHANNELS.get(self.name)

        try:
            inputs = sorted(self.path.glob("*_input"))
        except OSError:
            return channels

        for input_path in inputs:
            if fixed_label is not None and input_path.name == "temp1_input":
                channels.append(HwmonChannel(fixed_label, input_path))
                continue

            base_name = input_path.name.removesuffix("_input")
            try:
                label = _read_trimmed(input_path.with_name(f"{base_name}_label"))
            except OSError:
                continue
            channels.append(HwmonChannel(label, input_path))

        return channels

    def __repr__(self) -> str:
        return f"HwmonDevice({self.name!r}, {str(self.path)!r})"


@dataclass
class TemperatureChannels:
    """Opened temperature channels grouped by role."""

    cpu_die: list[SensorFile] = field(default_factory=list)
    cpu_cores: list[SensorFile] = field(default_factory=list)
    gpu_edge: list[SensorFile] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.cpu_die) + len(self.cpu_cores) + len(self.gpu_edge)

    def close(self) -> None:
        for sensor in (*self.cpu_die, *self.cpu_cores, *self.gpu_edge):
            sensor.close()


def discover_temperature_channels(root: Path) -> TemperatureChannels:
    """
    Discover and open CPU and GPU temperature channels.

    Args:
        root: hwmon class directory (e.g. /sys/class/hwmon)

    Returns:
        TemperatureChannels with open handles; channels that fail to open
        are left out
    """
    found = TemperatureChannels()

    for device in HwmonDevice.discover(root):
        role = device.role
        if role is None:
            continue

        for channel in device.channels():
            if role is SensorRole.CPU:
                if channel.label == DIE_LABEL:
                    target = found.cpu_die
                elif CORE_LABEL.fullmatch(channel.label):
                    target = found.cpu_cores
                else:
                    continue
            elif channel.label == GPU_LABEL:
                target = found.gpu_edge
            else:
                continue

            try:
                target.append(channel.open())
            except SensorError as e:
                logger.warning(f"Failed to open {role.value} temperature sensor: {e}")

    logger.debug(
        f"Found {len(found.cpu_die)} die, {len(found.cpu_cores)} core "
        f"and {len(found.gpu_edge)} gpu temperature channels"
    )
    return found


def average_sensors(sensors: list[SensorFile]) -> float | None:
    """
    Average the readings of a set of channels.

    Only successful reads count. Returns None when no read succeeds.
    """
    total = 0.0
    count = 0
    for sensor in sensors:
        try:
            total += sensor.read(float)
        except SensorError:
            continue
        count += 1

    if count == 0:
        return None
    return total / count
