"""
Tests for CPU time and memory sources.
"""

from pathlib import Path

import pytest

from palantir.collectors.system import (
    CpuTimeSource,
    MemorySource,
    parse_cpu_line,
    parse_meminfo,
)
from palantir.exposition import ExpositionWriter
from palantir.utils.sensor_file import SensorError


def test_parse_cpu_line() -> None:
    """Test user plus system time per core."""
    assert parse_cpu_line("cpu  300 0 100 5000 0 0 0", 100, 2) == 2.0


def test_parse_cpu_line_malformed() -> None:
    """Test that a truncated line is rejected."""
    with pytest.raises(ValueError):
        parse_cpu_line("cpu 300", 100, 2)

    with pytest.raises(ValueError):
        parse_cpu_line("intr 1 2 3 4", 100, 2)


def test_parse_meminfo() -> None:
    """Test that kB values are scaled by 1000."""
    memory = parse_meminfo("MemTotal: 1000 kB\nMemFree: 200 kB\nMemAvailable: 500 kB\nCached: 1 kB\n")

    assert memory.total == 1_000_000
    assert memory.free == 200_000
    assert memory.available == 500_000


def test_parse_meminfo_inconsistent() -> None:
    """Test that free above total is a parse failure."""
    with pytest.raises(ValueError):
        parse_meminfo("MemTotal: 100 kB\nMemFree: 200 kB\nMemAvailable: 50 kB\n")


def test_parse_meminfo_bad_unit() -> None:
    with pytest.raises(ValueError):
        parse_meminfo("MemTotal: 100 MB\n")


def test_cpu_time_source(proc_root: Path) -> None:
    """Test rendering of cumulative CPU time."""
    source = CpuTimeSource(proc_root, cpu_count=2, clock_ticks=100)
    out = ExpositionWriter("h")
    source.write(out, source.collect())

    assert out.getvalue() == 'cpu_time{host="h"} 2.000\n'


def test_memory_lines(proc_root: Path) -> None:
    """Test exact memory lines."""
    source = MemorySource(proc_root)
    out = ExpositionWriter("h")
    source.write(out, source.collect())

    assert out.getvalue() == (
        'memory_total{host="h"} 1000000\n'
        'memory_free{host="h"} 200000\n'
        'memory_available{host="h"} 500000\n'
    )


def test_memory_inconsistent_raises(proc_root: Path) -> None:
    """Test that inconsistent meminfo fails the read."""
    (proc_root / "meminfo").write_text("MemTotal: 10 kB\nMemFree: 20 kB\nMemAvailable: 5 kB\n")

    with pytest.raises(SensorError):
        MemorySource(proc_root).read()


def test_missing_proc_raises(tmp_path: Path) -> None:
    """Test that a missing /proc/stat fails at construction."""
    with pytest.raises(SensorError):
        CpuTimeSource(tmp_path)
