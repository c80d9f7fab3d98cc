"""
Tests for the network interface source.
"""

from pathlib import Path

import pytest

from palantir.collectors.network import NetworkSource, parse_net_dev_line
from palantir.exposition import ExpositionWriter


def test_parse_row() -> None:
    """Test receive and transmit byte columns."""
    stats = parse_net_dev_line("  eth0: 5000 50 0 0 0 0 0 0 7000 70 0 0 0 0 0 0")

    assert stats.interface == "eth0"
    assert stats.bytes_received == 5000
    assert stats.bytes_sent == 7000


def test_parse_row_filters_interfaces() -> None:
    """Test that only physical interface prefixes are kept."""
    assert parse_net_dev_line("    lo: 1 0 0 0 0 0 0 0 1 0 0 0 0 0 0 0") is None
    assert parse_net_dev_line("docker0: 1 0 0 0 0 0 0 0 1 0 0 0 0 0 0 0") is None
    assert parse_net_dev_line("wlp2s0: 1 0 0 0 0 0 0 0 2 0 0 0 0 0 0 0") is not None
    assert parse_net_dev_line("enp3s0: 1 0 0 0 0 0 0 0 2 0 0 0 0 0 0 0") is not None


def test_parse_row_malformed() -> None:
    with pytest.raises(ValueError):
        parse_net_dev_line("eth1: 1 2 3")


def test_source_lines(proc_root: Path) -> None:
    """Test rendered lines for the fake /proc/net/dev."""
    source = NetworkSource(proc_root)
    out = ExpositionWriter("h")
    source.write(out, source.collect())

    assert out.getvalue() == (
        'net_sent{host="h", network="eth0"} 7000\n'
        'net_received{host="h", network="eth0"} 5000\n'
    )


def test_malformed_and_idle_rows_skipped(proc_root: Path) -> None:
    """Test that a malformed row is dropped without failing the source."""
    with (proc_root / "net" / "dev").open("a") as f:
        f.write("  eth1: 1 2\n")
        f.write("  eth2: 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0\n")

    source = NetworkSource(proc_root)
    rows = source.collect()
    assert [row.interface for row in rows] == ["eth0", "eth2"]

    out = ExpositionWriter("h")
    source.write(out, rows)
    assert "eth2" not in out.getvalue()
    assert len(out) == 2
