"""
Tests for the per-process memory source.
"""

from types import SimpleNamespace

import psutil

from palantir.collectors.process import ProcessMemorySource


class FakeProcess:
    def __init__(self, pid: int, name: str, rss: int | None):
        memory_info = SimpleNamespace(rss=rss) if rss is not None else None
        self.info = {"pid": pid, "name": name, "memory_info": memory_info}


def test_large_processes_only(monkeypatch) -> None:
    """Test that only processes above 1% of memory are reported."""
    processes = [
        FakeProcess(1, "init", 5_000),
        FakeProcess(42, "postgres", 50_000),
        FakeProcess(43, "zombie", None),
    ]
    monkeypatch.setattr(psutil, "process_iter", lambda attrs: iter(processes))

    source = ProcessMemorySource(total_memory=1_000_000)
    rows = source.collect()

    assert source.cutoff == 10_000
    assert [(row.pid, row.name, row.rss) for row in rows] == [(42, "postgres", 50_000)]
