"""
Tests for hwmon discovery and the temperature source.
"""

from pathlib import Path

from palantir.collectors.hwmon import (
    HwmonDevice,
    SensorRole,
    average_sensors,
    discover_temperature_channels,
)
from palantir.collectors.temperature import TemperatureSource
from palantir.exposition import ExpositionWriter
from palantir.utils.sensor_file import SensorFile


def render(source: TemperatureSource) -> str:
    out = ExpositionWriter("h")
    source.write(out, source.collect())
    return out.getvalue()


def test_device_roles(sys_root: Path, add_hwmon) -> None:
    """Test classification of device names."""
    add_hwmon("k10temp", {})
    add_hwmon("amdgpu", {})
    add_hwmon("nvme", {})

    roles = [device.role for device in HwmonDevice.discover(sys_root / "class" / "hwmon")]
    assert roles == [SensorRole.CPU, SensorRole.GPU, None]


def test_device_channels(sys_root: Path, add_hwmon) -> None:
    """Test that labeled inputs are listed and unlabeled ones skipped."""
    path = add_hwmon("k10temp", {"temp1": ("Tctl", 60000), "temp2": ("Tdie", 45000), "temp3": (None, 1)})

    [device] = HwmonDevice.discover(sys_root / "class" / "hwmon")
    channels = device.channels()

    assert isinstance(channels, list)
    assert [(c.label, c.input_path) for c in channels] == [
        ("Tctl", path / "temp1_input"),
        ("Tdie", path / "temp2_input"),
    ]


def test_die_temperature(sys_root: Path, add_hwmon) -> None:
    """Test that a die channel is reported in degrees."""
    add_hwmon("k10temp", {"temp1": ("Tctl", 60000), "temp2": ("Tdie", 45000)})

    source = TemperatureSource.discover(sys_root)
    assert render(source) == 'temperature{host="h", sensor="cpu"} 45.0\n'


def test_core_average(sys_root: Path, add_hwmon) -> None:
    """Test that core channels are averaged when no die channel exists."""
    add_hwmon(
        "coretemp",
        {
            "temp1": ("Package id 0", 90000),
            "temp2": ("Core 0", 40000),
            "temp3": ("Core 1", 50000),
        },
    )

    reading = TemperatureSource.discover(sys_root).read()
    assert reading.cpu == 45.0
    assert reading.gpu == 0.0


def test_die_supersedes_cores(sys_root: Path, add_hwmon) -> None:
    """Test that the die reading wins over the core average."""
    add_hwmon("k10temp", {"temp1": ("Tdie", 70000)})
    add_hwmon("coretemp", {"temp1": ("Core 0", 30000)})

    assert TemperatureSource.discover(sys_root).read().cpu == 70.0


def test_unlabeled_thermal_zones(sys_root: Path, add_hwmon) -> None:
    """Test fixed labels for single-channel thermal devices."""
    add_hwmon("cpu_thermal", {"temp1": (None, 52300)})
    add_hwmon("gpu_thermal", {"temp1": (None, 48100)})

    channels = discover_temperature_channels(sys_root / "class" / "hwmon")
    assert len(channels.cpu_die) == 1
    assert len(channels.gpu_edge) == 1

    source = TemperatureSource(channels)
    assert render(source) == (
        'temperature{host="h", sensor="cpu"} 52.3\n'
        'temperature{host="h", sensor="gpu"} 48.1\n'
    )


def test_gpu_edge_channel(sys_root: Path, add_hwmon) -> None:
    """Test that only the edge channel of a GPU device is used."""
    add_hwmon("amdgpu", {"temp1": ("edge", 55000), "temp2": ("junction", 80000)})

    reading = TemperatureSource.discover(sys_root).read()
    assert reading.gpu == 55.0
    assert reading.cpu == 0.0


def test_unknown_devices_ignored(sys_root: Path, add_hwmon) -> None:
    """Test that devices outside the catalog contribute nothing."""
    add_hwmon("nvme", {"temp1": ("Composite", 38000)})

    source = TemperatureSource.discover(sys_root)
    assert render(source) == ""


def test_no_hwmon_directory(tmp_path: Path) -> None:
    """Test discovery without a hwmon class directory."""
    source = TemperatureSource.discover(tmp_path)
    assert render(source) == ""


def test_average_counts_successful_reads(tmp_path: Path) -> None:
    """Test that failing channels are left out of the average."""
    good = tmp_path / "good"
    good.write_text("40000\n")
    bad = tmp_path / "bad"
    bad.write_text("garbage\n")

    assert average_sensors([SensorFile(good), SensorFile(bad)]) == 40000.0
    assert average_sensors([SensorFile(bad)]) is None
    assert average_sensors([]) is None
