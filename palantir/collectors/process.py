"""
Per-process memory source.

Reports resident memory of processes using more than 1% of total
system memory.
"""

from collections.abc import Iterator

import psutil

from ..models.metrics import ProcessMemory
from .base import MultiSource


# Report processes above this share of total memory
MEMORY_SHARE_CUTOFF = 0.01


class ProcessMemorySource(MultiSource):
    """Source for resident memory of large processes."""

    SOURCE_TYPE = "process"

    def __init__(self, total_memory: int):
        """
        Args:
            total_memory: Total system memory in bytes, sampled at startup
        """
        super().__init__()
        self.cutoff = int(total_memory * MEMORY_SHARE_CUTOFF)

    def rows(self) -> Iterator[ProcessMemory]:
        for proc in psutil.process_iter(["pid", "name", "memory_info"]):
            try:
                info = proc.info
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue

            memory_info = info.get("memory_info")
            if memory_info is None or memory_info.rss <= self.cutoff:
                continue

            yield ProcessMemory(pid=info["pid"], name=info.get("name") or "", rss=memory_info.rss)

    def __repr__(self) -> str:
        return f"ProcessMemorySource(cutoff={self.cutoff})"
