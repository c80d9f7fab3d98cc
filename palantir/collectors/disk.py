"""
Disk I/O and disk usage sources.

Disk I/O comes from /proc/diskstats, restricted to whole physical or
virtual disks. Disk usage walks the mount table, keeps real block device
mounts and reports filesystem capacity once per backing device.
"""

import re
from collections.abc import Iterator
from pathlib import Path

import psutil

from ..logging import get_logger
from ..models.metrics import DiskStats, DiskUsage
from ..utils.sensor_file import SensorFile
from .base import MultiSource


logger = get_logger("sensors.disk")

# Spinning/virtio disks, NVMe namespaces and eMMC cards, without partitions
DISK_PATTERN = re.compile(r"[sv]d[a-z]+|nvme\d+n\d+|mmcblk\d+")

SECTOR_SIZE = 512

# Mount table octal escapes (space, tab, newline, backslash)
MOUNT_ESCAPE = re.compile(r"\\([0-7]{3})")


def parse_diskstats_line(line: str) -> DiskStats | None:
    """
    Parse one /proc/diskstats row.

    Columns: major minor name reads reads_merged sectors_read ms_reading
    writes writes_merged sectors_written ...

    Returns:
        DiskStats, or None for devices that are not whole disks

    Raises:
        ValueError: If a matching row is malformed
    """
    columns = line.split()
    if len(columns) < 3 or not DISK_PATTERN.fullmatch(columns[2]):
        return None
    if len(columns) < 10:
        raise ValueError(f"too few columns for {columns[2]}")

    return DiskStats(
        interface=columns[2],
        bytes_sent=int(columns[9]) * SECTOR_SIZE,
        bytes_received=int(columns[5]) * SECTOR_SIZE,
    )


def unescape_mount_field(value: str) -> str:
    """Decode the octal escapes the kernel uses in /proc/mounts."""
    return MOUNT_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), value)


def iter_block_mounts(text: str) -> Iterator[tuple[str, str]]:
    """
    Yield (device, mount point) for block device mounts, first mount per device.

    Loop devices and FUSE filesystems are skipped.
    """
    seen_devices: set[str] = set()

    for line in text.splitlines():
        if not line.startswith("/") or "/dev/loop" in line or "fuse" in line:
            continue

        columns = line.split()
        if len(columns) < 2:
            continue

        device = columns[0]
        if device in seen_devices:
            logger.debug(f"Skipping already processed device {device}")
            continue
        seen_devices.add(device)

        yield device, unescape_mount_field(columns[1])


class DiskStatSource(MultiSource):
    """Source for per-disk bytes written and read."""

    SOURCE_TYPE = "disk_stats"

    def __init__(self, proc_path: Path):
        """
        Raises:
            SensorError: If /proc/diskstats cannot be opened
        """
        super().__init__()
        self._diskstats = SensorFile(proc_path / "diskstats", buffer_size=4096)

    def rows(self) -> Iterator[DiskStats]:
        for line in self._diskstats.read_text().splitlines():
            try:
                stats = parse_diskstats_line(line)
            except ValueError as e:
                logger.debug(f"Skipping malformed diskstats row {line!r}: {e}")
                continue
            if stats is not None:
                yield stats

    def close(self) -> None:
        self._diskstats.close()


class DiskUsageSource(MultiSource):
    """
    Source for filesystem size and free space per backing device.

    Mount points come from the mount table under proc_path and are
    labeled as the table names them. Filesystem statistics are taken at
    the same path below host_root, so a containerized agent reading the
    host's /proc needs the host's root filesystem mounted there.
    """

    SOURCE_TYPE = "disk_usage"

    def __init__(self, proc_path: Path, host_root: Path = Path("/")):
        """
        Raises:
            SensorError: If /proc/mounts cannot be opened
        """
        super().__init__()
        self.host_root = host_root
        self._mounts = SensorFile(proc_path / "mounts", buffer_size=4096)

    def rows(self) -> Iterator[DiskUsage]:
        for device, mount_point in iter_block_mounts(self._mounts.read_text()):
            path = str(self.host_root / mount_point.lstrip("/"))
            try:
                usage = psutil.disk_usage(path)
            except OSError as e:
                logger.debug(f"Failed to get filesystem statistics for {path} ({device}): {e}")
                continue

            # free counts blocks available to unprivileged users
            yield DiskUsage(name=mount_point, size=usage.total, free=usage.free)

    def close(self) -> None:
        self._mounts.close()
