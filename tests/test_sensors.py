"""
Tests for the source registry and snapshot aggregator.
"""

import re
import socket
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import psutil
import pytest

from palantir.collectors.base import Source
from palantir.collectors.gpu import GpuSource, NvmlBackend
from palantir.collectors.system import CpuTimeSource, MemorySource
from palantir.collectors.temperature import TemperatureSource
from palantir.config import Config
from palantir.models.metrics import GpuStats, Temperatures
from palantir.sensors import Sensors, StartupError, get_hostname
from palantir.utils.sensor_file import SensorError


LINE = re.compile(r'^[a-z_]+\{host="testhost"(, [a-z]+="[^"]*")*\} -?\d+(\.\d+)?$')


class BrokenSource(Source):
    SOURCE_TYPE = "network"

    def read(self):
        raise SensorError("/proc/net/dev", "read failed: I/O error")


class FixedSource(Source):
    def __init__(self, source_type: str, data):
        super().__init__()
        self.SOURCE_TYPE = source_type
        self.data = data

    def read(self):
        return self.data


def test_memory_snapshot(proc_root: Path) -> None:
    """Test exact memory lines in a full snapshot."""
    sensors = Sensors("testhost", [MemorySource(proc_root)])

    assert sensors.render() == (
        'memory_total{host="testhost"} 1000000\n'
        'memory_free{host="testhost"} 200000\n'
        'memory_available{host="testhost"} 500000\n'
    )


def test_sources_in_fixed_order(proc_root: Path) -> None:
    """Test that sources are read in source-type order regardless of registration."""
    memory = MemorySource(proc_root)
    cpu = CpuTimeSource(proc_root, cpu_count=2, clock_ticks=100)
    sensors = Sensors("testhost", [memory, cpu])

    assert sensors.sources == [cpu, memory]
    assert sensors.render().startswith('cpu_time{host="testhost"} 2.000\n')


def test_failing_source_omitted(proc_root: Path) -> None:
    """Test that a failing source drops only its own lines."""
    sensors = Sensors("testhost", [BrokenSource(), MemorySource(proc_root)])

    body = sensors.render()
    assert "memory_total" in body
    assert "net_" not in body
    assert len(body.splitlines()) == 3


def test_gpu_temperature_override() -> None:
    """Test that the GPU driver temperature replaces the hwmon value."""
    sensors = Sensors(
        "testhost",
        [
            FixedSource("temperature", Temperatures(cpu=40.0, gpu=50.0)),
            FixedSource("gpu", GpuStats(temperature=63.0)),
        ],
    )

    assert sensors.render() == (
        'temperature{host="testhost", sensor="cpu"} 40.0\n'
        'temperature{host="testhost", sensor="gpu"} 63.0\n'
    )


def test_concurrent_scrapes_well_formed(proc_root: Path, sys_root: Path, add_hwmon) -> None:
    """Test that concurrent renders each produce complete, well-formed output."""
    add_hwmon("k10temp", {"temp1": ("Tdie", 45000)})
    sensors = Sensors(
        "testhost",
        [
            CpuTimeSource(proc_root, cpu_count=2, clock_ticks=100),
            MemorySource(proc_root),
            TemperatureSource.discover(sys_root),
        ],
    )
    expected = sensors.render()

    with ThreadPoolExecutor(max_workers=8) as executor:
        bodies = list(executor.map(lambda _: sensors.render(), range(64)))

    for body in bodies:
        assert body == expected
        for line in body.splitlines():
            assert LINE.match(line), line


def test_hostname_failure(monkeypatch) -> None:
    def fail():
        raise OSError("no host name")

    monkeypatch.setattr(socket, "gethostname", fail)

    with pytest.raises(StartupError):
        get_hostname()


def test_create(proc_root: Path, sys_root: Path, monkeypatch) -> None:
    """Test building the registry from configuration."""
    monkeypatch.setattr(psutil, "PROCFS_PATH", psutil.PROCFS_PATH)
    monkeypatch.setattr(NvmlBackend, "create", classmethod(lambda cls: None))
    monkeypatch.setattr(socket, "gethostname", lambda: "testhost")

    config = Config(proc_path=str(proc_root), sys_path=str(sys_root))
    sensors = Sensors.create(config)

    types = [source.SOURCE_TYPE for source in sensors.sources]
    assert types == [
        "cpu",
        "memory",
        "temperature",
        "gpu",
        "network",
        "disk_stats",
        "disk_usage",
        "zfs_pool",
        "cpu_power",
        "gpu_power",
        "process",
    ]
    assert sensors.hostname == "testhost"
    assert sensors.samplers == []
    assert isinstance(sensors.sources[3], GpuSource)

    sensors.stop()


def test_create_without_proc(tmp_path: Path, sys_root: Path, monkeypatch) -> None:
    """Test that a missing mandatory /proc source aborts startup."""
    monkeypatch.setattr(psutil, "PROCFS_PATH", psutil.PROCFS_PATH)
    monkeypatch.setattr(NvmlBackend, "create", classmethod(lambda cls: None))

    config = Config(proc_path=str(tmp_path / "missing"), sys_path=str(sys_root))

    with pytest.raises(StartupError):
        Sensors.create(config)
