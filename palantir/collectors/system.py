"""
System-wide CPU time and memory sources.

Both keep /proc handles open for the process lifetime and re-read them
by rewinding.
"""

import os
from pathlib import Path

import psutil

from ..models.metrics import CpuTime, Memory
from ..utils.sensor_file import SensorFile
from .base import Source


# /proc/meminfo reports "kB"; the literal value is scaled by 1000
MEMINFO_UNIT = 1000
MEMINFO_KEYS = {
    "MemTotal": "total",
    "MemFree": "free",
    "MemAvailable": "available",
}


def parse_cpu_line(line: str, clock_ticks: int, cpu_count: int) -> float:
    """
    Parse the aggregate "cpu" line of /proc/stat.

    Args:
        line: First line of /proc/stat
        clock_ticks: Kernel clock ticks per second
        cpu_count: Number of online CPUs

    Returns:
        (user + system) seconds divided by the core count

    Raises:
        ValueError: If the line is malformed
    """
    parts = line.split()
    if len(parts) < 4 or not parts[0].startswith("cpu"):
        raise ValueError(f"unexpected cpu line {line!r}")

    user = int(parts[1])
    system = int(parts[3])
    return (user + system) / clock_ticks / cpu_count


def parse_meminfo(text: str) -> Memory:
    """
    Parse /proc/meminfo into a Memory record.

    Unknown keys are ignored.

    Raises:
        ValueError: If a known key has a malformed value, or the values
            are inconsistent
    """
    memory = Memory()

    for line in text.splitlines():
        key, sep, rest = line.partition(":")
        field_name = MEMINFO_KEYS.get(key)
        if field_name is None or not sep:
            continue

        value = rest.strip()
        if not value.endswith(" kB"):
            raise ValueError(f"unexpected unit in {line!r}")
        setattr(memory, field_name, int(value[:-3].strip()) * MEMINFO_UNIT)

    if memory.free > memory.total or memory.available > memory.total:
        raise ValueError(
            f"inconsistent meminfo: total={memory.total} free={memory.free} "
            f"available={memory.available}"
        )
    if memory.free < 0 or memory.available < 0:
        raise ValueError("negative meminfo value")

    return memory


class CpuTimeSource(Source):
    """Source for cumulative CPU time per core."""

    SOURCE_TYPE = "cpu"

    def __init__(
        self,
        proc_path: Path,
        cpu_count: int | None = None,
        clock_ticks: int | None = None,
    ):
        """
        Args:
            proc_path: Root of the process pseudo-filesystem
            cpu_count: Online CPU count (detected if None)
            clock_ticks: Clock ticks per second (detected if None)

        Raises:
            SensorError: If /proc/stat cannot be opened
        """
        super().__init__()
        self._stat = SensorFile(proc_path / "stat", buffer_size=4096)
        self.cpu_count = cpu_count or psutil.cpu_count(logical=True) or 1
        self.clock_ticks = clock_ticks or os.sysconf("SC_CLK_TCK")

    def _parse(self, text: str) -> float:
        first_line = text.split("\n", 1)[0]
        return parse_cpu_line(first_line, self.clock_ticks, self.cpu_count)

    def read(self) -> CpuTime:
        return CpuTime(self._stat.read_with(self._parse))

    def close(self) -> None:
        self._stat.close()


class MemorySource(Source):
    """Source for total, free and available memory."""

    SOURCE_TYPE = "memory"

    def __init__(self, proc_path: Path):
        """
        Raises:
            SensorError: If /proc/meminfo cannot be opened
        """
        super().__init__()
        self._meminfo = SensorFile(proc_path / "meminfo", buffer_size=2048)

    def read(self) -> Memory:
        return self._meminfo.read_with(parse_meminfo)

    def close(self) -> None:
        self._meminfo.close()
