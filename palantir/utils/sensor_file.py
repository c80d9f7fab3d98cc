"""
Resilient handle to a single kernel pseudo-file.

Sysfs and procfs files can be re-read by seeking back to the start, so a
sensor keeps its descriptor open for the whole process lifetime instead
of reopening it on every scrape. A failed read reopens the descriptor
once before the error is surfaced.
"""

import io
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from ..logging import get_logger


logger = get_logger("sensors")

T = TypeVar("T")


class SensorError(Exception):
    """Raised when a kernel source cannot be opened, read or parsed."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{path}: {message}")


class SensorAccessDenied(SensorError):
    """Raised when the kernel refuses access to a source."""


class SensorFile:
    """
    Stateful reader for one pseudo-file.

    The descriptor is rewound and reused across reads. The internal
    buffer grows to fit the largest content seen and is never
    reallocated per call.
    """

    def __init__(self, path: Path | str, buffer_size: int = 64):
        """
        Open a sensor file.

        Args:
            path: Path of the pseudo-file
            buffer_size: Initial size of the read buffer

        Raises:
            SensorError: If the file cannot be opened
        """
        self.path = Path(path)
        self._buffer = bytearray(max(buffer_size, 16))
        self._file: io.FileIO | None = self._open()

    def _open(self) -> io.FileIO:
        try:
            return open(self.path, "rb", buffering=0)
        except PermissionError as e:
            raise SensorAccessDenied(self.path, "permission denied") from e
        except OSError as e:
            raise SensorError(self.path, f"open failed: {e.strerror or e}") from e

    def _fill(self) -> int:
        """Rewind and read the whole file into the buffer, returning its length."""
        if self._file is None:
            raise SensorError(self.path, "sensor is closed")

        size = 0
        try:
            self._file.seek(0)
            while True:
                if size == len(self._buffer):
                    self._buffer.extend(bytes(len(self._buffer)))
                with memoryview(self._buffer) as view, view[size:] as tail:
                    count = self._file.readinto(tail)
                if not count:
                    return size
                size += count
        except PermissionError as e:
            raise SensorAccessDenied(self.path, "permission denied") from e
        except OSError as e:
            raise SensorError(self.path, f"read failed: {e.strerror or e}") from e

    def _text(self, size: int) -> str:
        try:
            return self._buffer[:size].decode("utf-8")
        except UnicodeDecodeError as e:
            raise SensorError(self.path, "content is not valid text") from e

    def _parse(self, size: int, parse: Callable[[str], T]) -> T:
        text = self._text(size)
        try:
            return parse(text)
        except ValueError as e:
            raise SensorError(self.path, f"unparsable content: {e}") from e

    def read_with(self, parse: Callable[[str], T]) -> T:
        """
        Read the whole file and parse it.

        On a read or parse failure the descriptor is reopened once and the
        read retried.

        Args:
            parse: Callable turning the file text into a value; raises
                ValueError on malformed content

        Returns:
            Parsed value

        Raises:
            SensorError: If the retry fails as well
        """
        try:
            return self._parse(self._fill(), parse)
        except SensorError as e:
            logger.debug(f"Failed to read sensor {self.path}: {e}, reopening")

        self.reopen()
        return self._parse(self._fill(), parse)

    def read(self, kind: Callable[[str], T] = int) -> T:
        """Read the trimmed file content as a number (int or float)."""
        return self.read_with(lambda text: kind(text.strip()))

    def read_text(self) -> str:
        """Read the whole file content as text."""
        return self.read_with(str)

    def reopen(self) -> None:
        """Replace the descriptor with a fresh one, closing the old one first."""
        self.close()
        self._file = self._open()

    def close(self) -> None:
        """Close the descriptor. A later read() reopens it."""
        if self._file is not None:
            file, self._file = self._file, None
            file.close()

    @property
    def closed(self) -> bool:
        return self._file is None

    def __enter__(self) -> "SensorFile":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SensorFile({str(self.path)!r})"
