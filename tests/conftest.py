"""
Pytest configuration and fixtures.

Fixtures build small fake /proc and /sys trees so that sources can be
exercised against real files.
"""

from pathlib import Path

import pytest

from palantir.exposition import ExpositionWriter


PROC_STAT = """\
cpu  300 0 100 5000 0 0 0 0 0 0
cpu0 150 0 50 2500 0 0 0 0 0 0
cpu1 150 0 50 2500 0 0 0 0 0 0
intr 12345
"""

PROC_MEMINFO = """\
MemTotal:           1000 kB
MemFree:             200 kB
MemAvailable:        500 kB
Buffers:              10 kB
"""

PROC_NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo:    1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0
  eth0:    5000      50    0    0    0     0          0         0     7000      70    0    0    0     0       0          0
docker0:    300       3    0    0    0     0          0         0      400       4    0    0    0     0       0          0
"""

PROC_DISKSTATS = """\
   8       0 sda 100 0 2000 50 200 0 4000 60 0 0 0
   8       1 sda1 90 0 1800 40 180 0 3600 50 0 0 0
   7       0 loop0 5 0 10 0 0 0 0 0 0 0 0
"""

PROC_MOUNTS = """\
/dev/sda1 / ext4 rw,relatime 0 0
proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0
"""


def write_file(path: Path, content: str) -> Path:
    """Write a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def proc_root(tmp_path: Path) -> Path:
    """Fake /proc with the files every host has."""
    root = tmp_path / "proc"
    write_file(root / "stat", PROC_STAT)
    write_file(root / "meminfo", PROC_MEMINFO)
    write_file(root / "net" / "dev", PROC_NET_DEV)
    write_file(root / "diskstats", PROC_DISKSTATS)
    write_file(root / "mounts", PROC_MOUNTS)
    return root


@pytest.fixture
def sys_root(tmp_path: Path) -> Path:
    """Fake /sys with an empty hwmon class directory."""
    root = tmp_path / "sys"
    (root / "class" / "hwmon").mkdir(parents=True)
    return root


@pytest.fixture
def add_hwmon(sys_root: Path):
    """Factory adding a hwmon device: add_hwmon(name, {"temp1": ("Tdie", 45000)})."""
    counter = iter(range(100))

    def add(name: str, channels: dict[str, tuple[str | None, int | str]]) -> Path:
        device = sys_root / "class" / "hwmon" / f"hwmon{next(counter)}"
        write_file(device / "name", f"{name}\n")
        for channel, (label, value) in channels.items():
            write_file(device / f"{channel}_input", f"{value}\n")
            if label is not None:
                write_file(device / f"{channel}_label", f"{label}\n")
        return device

    return add


@pytest.fixture
def writer() -> ExpositionWriter:
    return ExpositionWriter("testhost")
