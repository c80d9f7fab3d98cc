"""
Base source interface for metric collection.

Every source owns its kernel handles and buffers exclusively and guards
them with its own lock. The aggregator calls collect() once per scrape;
no source ever calls into another while holding its lock.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from ..exposition import ExpositionWriter


class Source(ABC):
    """
    Abstract base class for single-value sources.

    Subclasses implement read(), which is only ever called with the
    source's lock held.
    """

    # Source type, used for ordering and logging (override in subclasses)
    SOURCE_TYPE: str = "unknown"

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @abstractmethod
    def read(self) -> Any:
        """
        Read the current value.

        Returns:
            A reading record, or None when the source has nothing to report

        Raises:
            SensorError: If the source could not be read
        """
        pass

    def collect(self) -> Any:
        """Read under the source's own lock."""
        with self._lock:
            return self.read()

    def write(self, out: ExpositionWriter, data: Any) -> None:
        """Render a reading returned by collect()."""
        if data is not None:
            data.write(out)

    def close(self) -> None:
        """Release held handles. Sources without handles do nothing."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MultiSource(Source):
    """
    Base class for sources that report one record per row.

    read() returns a fully materialized list so that nothing borrowed
    from the source's buffers escapes the lock.
    """

    def read(self) -> list[Any]:
        return list(self.rows())

    @abstractmethod
    def rows(self) -> Iterator[Any]:
        """
        Yield one record per row. Malformed rows are skipped.

        Raises:
            SensorError: If the source as a whole could not be read
        """
        pass

    def write(self, out: ExpositionWriter, data: Any) -> None:
        for record in data or ():
            record.write(out)
