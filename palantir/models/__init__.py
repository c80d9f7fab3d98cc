"""
Data models for sensor readings.
"""

from .metrics import (
    ArcStats,
    ContainerUsage,
    CpuTime,
    DiskStats,
    DiskUsage,
    GpuMemory,
    GpuStats,
    GpuUsage,
    Memory,
    NetStats,
    PoolUsage,
    PowerUsage,
    ProcessMemory,
    Temperatures,
)

__all__ = [
    "ArcStats",
    "ContainerUsage",
    "CpuTime",
    "DiskStats",
    "DiskUsage",
    "GpuMemory",
    "GpuStats",
    "GpuUsage",
    "Memory",
    "NetStats",
    "PoolUsage",
    "PowerUsage",
    "ProcessMemory",
    "Temperatures",
]
