"""
Source registry and snapshot aggregator.

The registry is built once at startup and owns every source and energy
sampler. A scrape locks each source once, in a fixed order by source
type, reads it, releases it and renders its lines into a buffer that
belongs to that scrape alone.
"""

import socket
from pathlib import Path

import psutil

from .collectors.base import Source
from .collectors.disk import DiskStatSource, DiskUsageSource
from .collectors.gpu import GpuSource
from .collectors.network import NetworkSource
from .collectors.power import CpuPowerSource, GpuPowerSource, PeriodicSampler
from .collectors.process import ProcessMemorySource
from .collectors.system import CpuTimeSource, MemorySource
from .collectors.temperature import TemperatureSource
from .collectors.zfs import ArcStatsSource, PoolSource
from .config import Config
from .exposition import ExpositionWriter
from .logging import get_logger
from .models.metrics import GpuStats, Temperatures
from .utils.sensor_file import SensorError


logger = get_logger("sensors")

# Lock acquisition order for a scrape
SOURCE_ORDER = (
    "cpu",
    "memory",
    "temperature",
    "gpu",
    "network",
    "disk_stats",
    "disk_usage",
    "zfs_pool",
    "zfs_arc",
    "cpu_power",
    "gpu_power",
    "process",
)


class StartupError(Exception):
    """Raised when the daemon cannot start serving."""


def get_hostname() -> str:
    """
    Get the host name used as the host label.

    Raises:
        StartupError: If the host name cannot be determined
    """
    try:
        hostname = socket.gethostname()
    except OSError as e:
        raise StartupError(f"error getting hostname: {e}") from e

    if not hostname:
        raise StartupError("error getting hostname: empty host name")
    return hostname


def _order(source: Source) -> int:
    try:
        return SOURCE_ORDER.index(source.SOURCE_TYPE)
    except ValueError:
        return len(SOURCE_ORDER)


class Sensors:
    """
    All sources of one host, plus the samplers feeding the energy sources.
    """

    def __init__(
        self,
        hostname: str,
        sources: list[Source],
        samplers: list[PeriodicSampler] | None = None,
    ):
        """
        Args:
            hostname: Value of the host label
            sources: Sources to read on every scrape
            samplers: Background energy samplers to start and stop
        """
        self.hostname = hostname
        self.sources = sorted(sources, key=_order)
        self.samplers = list(samplers or [])

    @classmethod
    def create(cls, config: Config) -> "Sensors":
        """
        Build the registry for this host.

        Raises:
            StartupError: If the host name or a mandatory /proc source is
                unavailable
        """
        hostname = get_hostname()
        proc_path = Path(config.proc_path)
        sys_path = Path(config.sys_path)

        if config.proc_path != psutil.PROCFS_PATH:
            psutil.PROCFS_PATH = config.proc_path

        try:
            memory = MemorySource(proc_path)
            total_memory = memory.read().total
            sources: list[Source] = [
                CpuTimeSource(proc_path),
                memory,
                NetworkSource(proc_path),
                DiskStatSource(proc_path),
                DiskUsageSource(proc_path, Path(config.host_root)),
            ]
        except SensorError as e:
            raise StartupError(f"error opening system statistics: {e}") from e

        gpu = GpuSource.discover(sys_path)
        cpu_power = CpuPowerSource.discover(sys_path)
        gpu_power = GpuPowerSource.discover(gpu.nvml, gpu.drm)

        sources.append(TemperatureSource.discover(sys_path))
        sources.append(gpu)
        sources.append(PoolSource())
        arc = ArcStatsSource.discover(proc_path)
        if arc is not None:
            sources.append(arc)
        sources.append(cpu_power)
        sources.append(gpu_power)
        sources.append(ProcessMemorySource(total_memory))

        sensors = cls(hostname, sources, cpu_power.samplers + gpu_power.samplers)
        logger.info(f"Created {len(sensors.sources)} sources for host {hostname}")
        return sensors

    def start(self) -> None:
        """Start background energy samplers."""
        for sampler in self.samplers:
            sampler.start()

    def stop(self) -> None:
        """Stop samplers and release all handles."""
        for sampler in self.samplers:
            sampler.stop(timeout=5.0)
        for source in self.sources:
            source.close()

    def collect_into(self, out: ExpositionWriter) -> None:
        """
        Read every source once and render its lines.

        A source that fails to read is left out of this scrape only.
        """
        readings = []
        for source in self.sources:
            try:
                data = source.collect()
            except SensorError as e:
                logger.debug(f"Skipping {source.SOURCE_TYPE} for this scrape: {e}")
                continue
            readings.append((source, data))

        # GPU driver temperature is more precise than the hwmon edge channel
        temperatures = next((data for _, data in readings if isinstance(data, Temperatures)), None)
        gpu = next((data for _, data in readings if isinstance(data, GpuStats)), None)
        if temperatures is not None and gpu is not None and gpu.temperature is not None:
            temperatures.gpu = gpu.temperature

        for source, data in readings:
            source.write(out, data)

    def render(self) -> str:
        """Render a full snapshot of all sources."""
        out = ExpositionWriter(self.hostname)
        self.collect_into(out)
        return out.getvalue()

    def __repr__(self) -> str:
        return f"Sensors({self.hostname!r}, {len(self.sources)} sources)"
