"""
Reading records and their rendering rules.

Each record knows how to write its own metric families. Families with a
zero-suppression rule omit the line instead of writing a literal 0.
"""

from dataclasses import dataclass, field

from ..exposition import ExpositionWriter


# Fixed precision for fractional families
CPU_TIME_PRECISION = 3
TEMPERATURE_PRECISION = 1
ENERGY_PRECISION = 3

MICROJOULES_PER_JOULE = 1_000_000


@dataclass
class CpuTime:
    """CPU time spent in user and system mode, in seconds per core."""

    value: float

    def write(self, out: ExpositionWriter) -> None:
        out.sample("cpu_time", self.value, precision=CPU_TIME_PRECISION)


@dataclass
class Memory:
    """System memory in bytes."""

    total: int = 0
    free: int = 0
    available: int = 0

    def write(self, out: ExpositionWriter) -> None:
        out.sample("memory_total", self.total)
        out.sample("memory_free", self.free)
        out.sample("memory_available", self.available)


@dataclass
class Temperatures:
    """CPU and GPU temperature in degrees Celsius. Zero means not present."""

    cpu: float = 0.0
    gpu: float = 0.0

    def write(self, out: ExpositionWriter) -> None:
        for sensor, temp in (("cpu", self.cpu), ("gpu", self.gpu)):
            if temp != 0.0:
                out.sample("temperature", temp, precision=TEMPERATURE_PRECISION, sensor=sensor)


@dataclass
class IoStats:
    """Cumulative bytes sent and received by one interface or disk."""

    FAMILY = "io"
    LABEL = "interface"

    interface: str
    bytes_sent: int = 0
    bytes_received: int = 0

    def write(self, out: ExpositionWriter) -> None:
        if self.bytes_sent == 0 and self.bytes_received == 0:
            return
        labels = {self.LABEL: self.interface}
        out.sample(f"{self.FAMILY}_sent", self.bytes_sent, **labels)
        out.sample(f"{self.FAMILY}_received", self.bytes_received, **labels)


@dataclass
class NetStats(IoStats):
    FAMILY = "net"
    LABEL = "network"


@dataclass
class DiskStats(IoStats):
    """Disk I/O: sent is bytes written, received is bytes read."""

    FAMILY = "disk"
    LABEL = "disk"


@dataclass
class DiskUsage:
    """Filesystem capacity of one mount point, in bytes."""

    name: str
    size: int
    free: int

    def write(self, out: ExpositionWriter) -> None:
        if self.size == 0:
            return
        out.sample("disk_size", self.size, disk=self.name)
        out.sample("disk_free", self.free, disk=self.name)


@dataclass
class PoolUsage:
    """Storage pool capacity, in bytes."""

    name: str
    size: int
    free: int

    def write(self, out: ExpositionWriter) -> None:
        out.sample("zfs_pool_size", self.size, pool=self.name)
        out.sample("zfs_pool_free", self.free, pool=self.name)


@dataclass
class ArcStats:
    """ZFS adaptive replacement cache counters."""

    hits: int = 0
    misses: int = 0
    prefetch: int = 0
    size: int = 0

    def write(self, out: ExpositionWriter) -> None:
        out.sample("zfs_arc_hits", self.hits)
        out.sample("zfs_arc_misses", self.misses)
        out.sample("zfs_arc_size", self.size)
        out.sample("zfs_arc_prefetch", self.prefetch)


@dataclass
class GpuUsage:
    """Utilization percentage of one GPU engine."""

    system: str
    usage: int

    def write(self, out: ExpositionWriter) -> None:
        out.sample("gpu_usage", self.usage, system=self.system)


@dataclass
class GpuMemory:
    """GPU memory in bytes."""

    total: int
    free: int

    def write(self, out: ExpositionWriter) -> None:
        out.sample("gpu_memory_total", self.total)
        out.sample("gpu_memory_free", self.free)


@dataclass
class GpuStats:
    """Everything the GPU adapter reports in one read."""

    memory: GpuMemory | None = None
    usage: list[GpuUsage] = field(default_factory=list)
    temperature: float | None = None

    def write(self, out: ExpositionWriter) -> None:
        if self.memory is not None:
            self.memory.write(out)
        for usage in self.usage:
            usage.write(out)


@dataclass
class PowerUsage:
    """Cumulative energy of a device in microjoules, rendered as joules."""

    device: str
    total_uj: int
    packages_uj: list[int] = field(default_factory=list)

    def write(self, out: ExpositionWriter) -> None:
        out.sample(
            "total_power",
            self.total_uj / MICROJOULES_PER_JOULE,
            precision=ENERGY_PRECISION,
            device=self.device,
        )
        for index, package_uj in enumerate(self.packages_uj):
            out.sample(
                "package_power",
                package_uj / MICROJOULES_PER_JOULE,
                precision=ENERGY_PRECISION,
                package=index,
                device=self.device,
            )


@dataclass
class ProcessMemory:
    """Resident memory of one process, in bytes."""

    pid: int
    name: str
    rss: int

    def write(self, out: ExpositionWriter) -> None:
        out.sample("process_memory", self.rss, process=self.name, pid=self.pid)


@dataclass
class ContainerUsage:
    """Resource counters of one container."""

    name: str
    memory: int
    cpu_time: int

    def write(self, out: ExpositionWriter) -> None:
        out.sample("container_memory", self.memory, container=self.name)
        out.sample("container_cpu_time", self.cpu_time, container=self.name)
