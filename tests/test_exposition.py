"""
Tests for the text exposition format and record rendering.
"""

from palantir.exposition import ExpositionWriter, escape_label, format_value
from palantir.models.metrics import (
    CpuTime,
    DiskUsage,
    NetStats,
    PowerUsage,
    ProcessMemory,
    Temperatures,
)


def test_format_value() -> None:
    assert format_value(42) == "42"
    assert format_value(1.23456, 3) == "1.235"
    assert format_value(45, 1) == "45.0"


def test_escape_label() -> None:
    assert escape_label('a"b\\c\nd') == 'a\\"b\\\\c\\nd'


def test_host_label_first() -> None:
    """Test label order: host first, then the sample's labels in order."""
    out = ExpositionWriter("box")
    out.sample("package_power", 1.5, precision=3, package=0, device="cpu")

    assert out.getvalue() == 'package_power{host="box", package="0", device="cpu"} 1.500\n'
    assert len(out) == 1


def test_cpu_time_precision() -> None:
    out = ExpositionWriter("h")
    CpuTime(12.3456).write(out)

    assert out.getvalue() == 'cpu_time{host="h"} 12.346\n'


def test_temperature_zero_suppressed() -> None:
    """Test that a zero temperature means not present."""
    out = ExpositionWriter("h")
    Temperatures(cpu=45.0, gpu=0.0).write(out)

    assert out.getvalue() == 'temperature{host="h", sensor="cpu"} 45.0\n'


def test_io_zero_suppressed() -> None:
    """Test that idle interfaces are skipped, but one-sided traffic is not."""
    out = ExpositionWriter("h")
    NetStats("eth0", 0, 0).write(out)
    NetStats("eth1", 0, 5).write(out)

    assert out.getvalue() == (
        'net_sent{host="h", network="eth1"} 0\n'
        'net_received{host="h", network="eth1"} 5\n'
    )


def test_disk_usage_zero_size_suppressed() -> None:
    out = ExpositionWriter("h")
    DiskUsage("/boot", 0, 0).write(out)

    assert out.getvalue() == ""


def test_energy_in_joules() -> None:
    out = ExpositionWriter("h")
    PowerUsage("gpu", 2_500_000).write(out)

    assert out.getvalue() == 'total_power{host="h", device="gpu"} 2.500\n'


def test_process_memory() -> None:
    out = ExpositionWriter("h")
    ProcessMemory(pid=42, name="postgres", rss=2048).write(out)

    assert out.getvalue() == 'process_memory{host="h", process="postgres", pid="42"} 2048\n'
