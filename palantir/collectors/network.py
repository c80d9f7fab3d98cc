"""
Network interface traffic source.

Parses /proc/net/dev, keeping physical interfaces only (wired and
wireless name prefixes). The file is fully re-read on every scrape.
"""

from collections.abc import Iterator
from pathlib import Path

from ..logging import get_logger
from ..models.metrics import NetStats
from ..utils.sensor_file import SensorFile
from .base import MultiSource


logger = get_logger("sensors.network")

INTERFACE_PREFIXES = ("en", "eth", "wlp")

# Column offsets after the "iface:" prefix
RX_BYTES = 0
TX_BYTES = 8


def parse_net_dev_line(line: str) -> NetStats | None:
    """
    Parse one /proc/net/dev row.

    Returns:
        NetStats, or None for interfaces outside the allow-list

    Raises:
        ValueError: If a matching row is malformed
    """
    name, sep, counters = line.partition(":")
    name = name.strip()
    if not sep or not name.startswith(INTERFACE_PREFIXES):
        return None

    columns = counters.split()
    if len(columns) <= TX_BYTES:
        raise ValueError(f"too few columns for {name}")

    return NetStats(
        interface=name,
        bytes_sent=int(columns[TX_BYTES]),
        bytes_received=int(columns[RX_BYTES]),
    )


class NetworkSource(MultiSource):
    """Source for per-interface bytes sent and received."""

    SOURCE_TYPE = "network"

    def __init__(self, proc_path: Path):
        """
        Raises:
            SensorError: If /proc/net/dev cannot be opened
        """
        super().__init__()
        self._net_dev = SensorFile(proc_path / "net" / "dev", buffer_size=4096)

    def rows(self) -> Iterator[NetStats]:
        text = self._net_dev.read_text()

        # First two lines are column headers
        for line in text.splitlines()[2:]:
            try:
                stats = parse_net_dev_line(line)
            except ValueError as e:
                logger.debug(f"Skipping malformed net/dev row {line!r}: {e}")
                continue
            if stats is not None:
                yield stats

    def close(self) -> None:
        self._net_dev.close()
