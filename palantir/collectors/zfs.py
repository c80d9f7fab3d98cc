"""
ZFS storage-pool and ARC sources.

Pool capacity comes from the external `zpool` tool. If the tool is
missing, fails or prints something unparsable, the pool source disables
itself for the process lifetime instead of spawning a process on every
scrape.
"""

import subprocess
from collections.abc import Iterator, Sequence
from pathlib import Path

from ..logging import get_logger
from ..models.metrics import ArcStats, PoolUsage
from ..utils.sensor_file import SensorError, SensorFile
from .base import MultiSource, Source


logger = get_logger("sensors.zfs")

# Scripted mode (-H, tab separated, no header) with exact byte values (-p)
ZPOOL_COMMAND = ("zpool", "list", "-p", "-H", "-o", "name,size,free")

ARC_HITS = ("demand_data_hits", "demand_metadata_hits")
ARC_MISSES = ("demand_data_misses", "demand_metadata_misses")
ARC_PREFETCH_HITS = ("prefetch_data_hits", "prefetch_metadata_hits")
ARC_PREFETCH_MISSES = ("prefetch_data_misses", "prefetch_metadata_misses")


def parse_pool_line(line: str) -> PoolUsage:
    """
    Parse one `zpool list -p -H -o name,size,free` row.

    Raises:
        ValueError: If the row does not hold a name and two integers
    """
    columns = line.split()
    if len(columns) < 3:
        raise ValueError(f"expected name, size and free in {line!r}")
    return PoolUsage(name=columns[0], size=int(columns[1]), free=int(columns[2]))


class PoolSource(MultiSource):
    """Source for storage pool size and free space."""

    SOURCE_TYPE = "zfs_pool"

    def __init__(self, command: Sequence[str] = ZPOOL_COMMAND):
        super().__init__()
        self.command = tuple(command)
        self.enabled = True

    def _disable(self, reason: str) -> None:
        self.enabled = False
        logger.warning(f"Failed to list zpool status, disabling pool metrics: {reason}")

    def _run(self) -> str | None:
        try:
            result = subprocess.run(self.command, capture_output=True, text=True)
        except OSError as e:
            self._disable(f"{self.command[0]}: {e.strerror or e}")
            return None

        if result.returncode != 0:
            self._disable(
                f"exit status {result.returncode}, stdout={result.stdout.strip()!r}, "
                f"stderr={result.stderr.strip()!r}"
            )
            return None

        return result.stdout

    def read(self) -> list[PoolUsage]:
        if not self.enabled:
            return []

        output = self._run()
        if output is None:
            return []

        try:
            return [parse_pool_line(line) for line in output.splitlines() if line.strip()]
        except ValueError as e:
            self._disable(str(e))
            return []

    def rows(self) -> Iterator[PoolUsage]:
        yield from self.read()


def parse_arcstats(text: str) -> ArcStats:
    """
    Parse /proc/spl/kstat/zfs/arcstats.

    The first two lines are the kstat header; each following row is
    "name type value".
    """
    stats = ArcStats()

    for line in text.splitlines()[2:]:
        columns = line.split()
        if len(columns) < 3:
            continue
        name = columns[0]
        try:
            value = int(columns[2])
        except ValueError:
            continue

        if name in ARC_HITS:
            stats.hits += value
        elif name in ARC_MISSES:
            stats.misses += value
        elif name in ARC_PREFETCH_HITS:
            stats.hits += value
            stats.prefetch += value
        elif name in ARC_PREFETCH_MISSES:
            stats.misses += value
            stats.prefetch += value
        elif name == "size":
            stats.size = value

    return stats


class ArcStatsSource(Source):
    """Source for ZFS ARC hit, miss, prefetch and size counters."""

    SOURCE_TYPE = "zfs_arc"

    def __init__(self, sensor: SensorFile):
        super().__init__()
        self._arcstats = sensor

    @classmethod
    def discover(cls, proc_path: Path) -> "ArcStatsSource | None":
        path = proc_path / "spl" / "kstat" / "zfs" / "arcstats"
        try:
            return cls(SensorFile(path, buffer_size=8192))
        except SensorError:
            logger.debug(f"No ZFS ARC statistics at {path}")
            return None

    def read(self) -> ArcStats:
        return self._arcstats.read_with(parse_arcstats)

    def close(self) -> None:
        self._arcstats.close()
