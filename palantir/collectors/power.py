"""
Power and energy sources.

Energy is accumulated by background samplers: each sampler ticks at a
fixed interval, and on every tick after the first adds the energy
consumed since the previous tick to a cumulative microjoule counter.
The counter is written only by the sampler's own thread and read
without blocking by scrapes, so a scrape may lag by up to one tick.

A sampler whose read fails stops for good and its counter stays frozen.
"""

import re
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..const import SAMPLE_INTERVAL
from ..logging import get_logger
from ..models.metrics import PowerUsage
from ..utils.sensor_file import SensorAccessDenied, SensorError, SensorFile
from .base import Source
from .gpu import DrmBackend, NvmlBackend


logger = get_logger("power")

RAPL_PACKAGE = re.compile(r"intel-rapl:(\d+)")


class EnergyAccumulator:
    """Cumulative energy counter in microjoules. Never decreases."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def add(self, delta_uj: int) -> None:
        if delta_uj <= 0:
            return
        with self._lock:
            self._value += delta_uj

    def __repr__(self) -> str:
        return f"EnergyAccumulator({self._value} uJ)"


class PeriodicSampler(ABC):
    """
    Fixed-interval background sampling loop with a fail-stop flag.

    States: unseeded (no previous tick), sampling, and failed. The
    failed flag is externally observable and never cleared.
    """

    def __init__(
        self,
        name: str,
        interval: float = SAMPLE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            name: Sampler name for logs and the thread name
            interval: Seconds between ticks
            clock: Monotonic clock in seconds
        """
        self.name = name
        self.interval = interval
        self._clock = clock
        self._last_tick: float | None = None
        self._failed = threading.Event()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    @abstractmethod
    def sample(self, elapsed_ms: int | None) -> None:
        """
        Take one sample.

        Args:
            elapsed_ms: Milliseconds since the previous tick, None on the
                first tick (baseline only)

        Raises:
            SensorError: If the underlying sensor could not be read
        """
        pass

    @property
    def failed(self) -> bool:
        return self._failed.is_set()

    @property
    def seeded(self) -> bool:
        return self._last_tick is not None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self, now: float | None = None) -> bool:
        """
        Run one sampling step.

        Args:
            now: Current clock value (read from the clock if None)

        Returns:
            False once the sampler has failed
        """
        if self.failed:
            return False

        if now is None:
            now = self._clock()
        elapsed_ms = None
        if self._last_tick is not None:
            elapsed_ms = max(int((now - self._last_tick) * 1000), 0)
        self._last_tick = now

        try:
            self.sample(elapsed_ms)
        except SensorError as e:
            logger.warning(f"Stopping {self.name} sampler, counter is frozen from now on: {e}")
            self._failed.set()
            return False

        return True

    def run(self) -> None:
        """Sample until stopped or failed."""
        logger.debug(f"Starting {self.name} sampler (interval: {self.interval}s)")
        while not self._stopping.is_set():
            if not self.tick():
                return
            self._stopping.wait(self.interval)

    def start(self) -> None:
        """Start the sampling thread. Does nothing if running or failed."""
        if self.failed or self.running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self.run, name=f"{self.name}-sampler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the sampling thread and wait for it to exit."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __repr__(self) -> str:
        state = "failed" if self.failed else "running" if self.running else "idle"
        return f"{self.__class__.__name__}({self.name!r}, {state})"


class PowerIntegrator(PeriodicSampler):
    """
    Integrates an instantaneous power channel (microwatts) into energy.

    energy_delta_uj = power_uw * elapsed_ms / 1000
    """

    def __init__(
        self,
        name: str,
        sensor: SensorFile,
        accumulator: EnergyAccumulator | None = None,
        **kwargs,
    ):
        super().__init__(name, **kwargs)
        self.sensor = sensor
        self.accumulator = accumulator or EnergyAccumulator()

    def sample(self, elapsed_ms: int | None) -> None:
        power_uw = self.sensor.read(int)
        if elapsed_ms is None:
            return
        self.accumulator.add(power_uw * elapsed_ms // 1000)


@dataclass
class RaplPackage:
    """One CPU package of the RAPL power-capping tree."""

    name: str
    counter: SensorFile
    max_range_uj: int = 0
    accumulator: EnergyAccumulator = field(default_factory=EnergyAccumulator)
    last_uj: int | None = None


class RaplIntegrator(PeriodicSampler):
    """
    Accumulates RAPL package energy.

    RAPL already exposes a cumulative counter that wraps at
    max_energy_range_uj, so each tick adds the wrap-corrected difference
    to the previous reading. All packages are read before any counter is
    updated, so a failing tick adds nothing.
    """

    def __init__(self, packages: list[RaplPackage], **kwargs):
        super().__init__("cpu-power", **kwargs)
        self.packages = packages

    def sample(self, elapsed_ms: int | None) -> None:
        readings = [package.counter.read(int) for package in self.packages]

        for package, value in zip(self.packages, readings):
            if package.last_uj is not None:
                delta = value - package.last_uj
                if delta < 0:
                    delta = delta + package.max_range_uj if package.max_range_uj else 0
                package.accumulator.add(delta)
            package.last_uj = value

    @property
    def total_uj(self) -> int:
        return sum(package.accumulator.value for package in self.packages)


def _package_index(path: Path) -> int:
    match = RAPL_PACKAGE.fullmatch(path.name)
    return int(match.group(1)) if match else -1


def _read_max_range(package_path: Path) -> int:
    try:
        return int((package_path / "max_energy_range_uj").read_text().strip())
    except (OSError, ValueError):
        return 0


class CpuPowerSource(Source):
    """
    Source for CPU package energy.

    Packages are discovered once at startup. If the very first read is
    refused, the whole source is disabled for the process lifetime and
    scrapes never touch the filesystem for it again.
    """

    SOURCE_TYPE = "cpu_power"

    def __init__(self, integrator: RaplIntegrator | None = None):
        super().__init__()
        self.integrator = integrator

    @classmethod
    def discover(cls, sys_path: Path, interval: float = SAMPLE_INTERVAL) -> "CpuPowerSource":
        root = sys_path / "devices" / "virtual" / "powercap" / "intel-rapl"
        try:
            entries = sorted(
                (entry for entry in root.iterdir() if RAPL_PACKAGE.fullmatch(entry.name)),
                key=_package_index,
            )
        except OSError:
            logger.debug(f"No RAPL power-capping tree at {root}")
            return cls()

        packages: list[RaplPackage] = []
        try:
            for entry in entries:
                package = cls._open_package(entry)
                if package is not None:
                    packages.append(package)
        except SensorAccessDenied as e:
            logger.warning(f"Can't read CPU power usage, disabling CPU power: {e}")
            cls._close_packages(packages)
            return cls()

        if not packages:
            return cls()

        logger.info(f"Found {len(packages)} CPU power package(s)")
        return cls(RaplIntegrator(packages, interval=interval))

    @staticmethod
    def _open_package(entry: Path) -> RaplPackage | None:
        """
        Open one package counter and try a first read.

        Only a refused read disables CPU power. A package whose counter
        cannot be opened is skipped; other first-read failures are left
        to the sampler, which fail-stops if they persist.

        Raises:
            SensorAccessDenied: If the counter may not be read
        """
        try:
            counter = SensorFile(entry / "energy_uj")
        except SensorAccessDenied:
            raise
        except SensorError as e:
            logger.warning(f"Skipping CPU power package {entry.name}: {e}")
            return None

        package = RaplPackage(entry.name, counter, _read_max_range(entry))
        try:
            counter.read(int)
        except SensorAccessDenied:
            counter.close()
            raise
        except SensorError as e:
            logger.warning(f"First read of CPU power package {entry.name} failed: {e}")
        return package

    @staticmethod
    def _close_packages(packages: list[RaplPackage]) -> None:
        for package in packages:
            package.counter.close()

    @property
    def enabled(self) -> bool:
        return self.integrator is not None

    @property
    def samplers(self) -> list[PeriodicSampler]:
        return [self.integrator] if self.integrator is not None else []

    def read(self) -> PowerUsage | None:
        if self.integrator is None:
            return None
        packages = [package.accumulator.value for package in self.integrator.packages]
        return PowerUsage(device="cpu", total_uj=sum(packages), packages_uj=packages)

    def close(self) -> None:
        if self.integrator is not None:
            self._close_packages(self.integrator.packages)


class GpuPowerSource(Source):
    """
    Source for GPU energy.

    Uses the NVML energy counter when the driver provides one, else
    integrates the DRM card's average power channel in the background.
    """

    SOURCE_TYPE = "gpu_power"

    def __init__(
        self,
        nvml: NvmlBackend | None = None,
        integrator: PowerIntegrator | None = None,
    ):
        super().__init__()
        self.nvml = nvml
        self.integrator = integrator

    @classmethod
    def discover(
        cls,
        nvml: NvmlBackend | None,
        drm: DrmBackend | None,
        interval: float = SAMPLE_INTERVAL,
    ) -> "GpuPowerSource":
        if nvml is not None and nvml.energy_uj() is not None:
            return cls(nvml=nvml)

        path = drm.find_power_sensor() if drm is not None else None
        if path is None:
            logger.info("No GPU power sensor")
            return cls()

        try:
            sensor = SensorFile(path)
        except SensorError as e:
            logger.warning(f"Failed to open GPU power sensor: {e}")
            return cls()

        return cls(integrator=PowerIntegrator("gpu-power", sensor, interval=interval))

    @property
    def enabled(self) -> bool:
        return self.nvml is not None or self.integrator is not None

    @property
    def samplers(self) -> list[PeriodicSampler]:
        return [self.integrator] if self.integrator is not None else []

    def read(self) -> PowerUsage | None:
        if self.nvml is not None:
            energy = self.nvml.energy_uj()
            if energy is None:
                return None
            return PowerUsage(device="gpu", total_uj=energy)
        if self.integrator is not None:
            return PowerUsage(device="gpu", total_uj=self.integrator.accumulator.value)
        return None

    def close(self) -> None:
        if self.integrator is not None:
            self.integrator.sensor.close()
