"""
Metric sources for host telemetry.
"""

from .base import MultiSource, Source
from .container import ContainerRuntimeError, ContainerSource
from .disk import DiskStatSource, DiskUsageSource
from .gpu import DrmBackend, GpuSource, NvmlBackend
from .network import NetworkSource
from .power import (
    CpuPowerSource,
    EnergyAccumulator,
    GpuPowerSource,
    PeriodicSampler,
    PowerIntegrator,
    RaplIntegrator,
)
from .process import ProcessMemorySource
from .system import CpuTimeSource, MemorySource
from .temperature import TemperatureSource
from .zfs import ArcStatsSource, PoolSource

__all__ = [
    "Source",
    "MultiSource",
    "CpuTimeSource",
    "MemorySource",
    "TemperatureSource",
    "NetworkSource",
    "DiskStatSource",
    "DiskUsageSource",
    "GpuSource",
    "NvmlBackend",
    "DrmBackend",
    "CpuPowerSource",
    "GpuPowerSource",
    "EnergyAccumulator",
    "PeriodicSampler",
    "PowerIntegrator",
    "RaplIntegrator",
    "PoolSource",
    "ArcStatsSource",
    "ProcessMemorySource",
    "ContainerSource",
    "ContainerRuntimeError",
]
