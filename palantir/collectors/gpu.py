"""
GPU adapter.

The NVIDIA management library is tried first (exact memory, per-engine
utilization, temperature and an energy counter). Without it, the generic
DRM sysfs counters of the first card are used (VRAM totals and busy
percentages only). With no GPU present every query returns an empty or
absent result.
"""

from pathlib import Path

import pynvml

from ..logging import get_logger
from ..models.metrics import GpuMemory, GpuStats, GpuUsage
from ..utils.sensor_file import SensorError, SensorFile
from .base import Source


logger = get_logger("sensors.gpu")

MILLIJOULES_TO_MICROJOULES = 1000


class NvmlBackend:
    """
    NVML access to the first NVIDIA GPU.

    NVML calls are thread-safe, so the backend is shared between the GPU
    source and the GPU power source.
    """

    def __init__(self, handle):
        self._handle = handle

    @classmethod
    def create(cls) -> "NvmlBackend | None":
        """
        Initialize NVML.

        Returns:
            Backend for GPU 0, or None when the driver or a GPU is missing
        """
        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as e:
            logger.debug(f"NVML unavailable: {e}")
            return None

        try:
            if pynvml.nvmlDeviceGetCount() == 0:
                pynvml.nvmlShutdown()
                return None
            handle = pynvml.nvmlDeviceGetHandleByIndex(0)
        except pynvml.NVMLError as e:
            logger.debug(f"NVML has no usable device: {e}")
            pynvml.nvmlShutdown()
            return None

        logger.info("Using NVML for GPU metrics")
        return cls(handle)

    def memory(self) -> GpuMemory | None:
        try:
            info = pynvml.nvmlDeviceGetMemoryInfo(self._handle)
        except pynvml.NVMLError:
            return None
        return GpuMemory(total=int(info.total), free=int(info.free))

    def utilization(self) -> list[GpuUsage]:
        usage = []

        try:
            rates = pynvml.nvmlDeviceGetUtilizationRates(self._handle)
        except pynvml.NVMLError:
            rates = None
        if rates is not None:
            usage.append(GpuUsage("compute", int(rates.gpu)))
            usage.append(GpuUsage("memory", int(rates.memory)))

        # encoder/decoder queries return [utilization, sampling period]
        for system, query in (
            ("encode", pynvml.nvmlDeviceGetEncoderUtilization),
            ("decode", pynvml.nvmlDeviceGetDecoderUtilization),
        ):
            try:
                utilization, _period = query(self._handle)
            except pynvml.NVMLError:
                continue
            usage.append(GpuUsage(system, int(utilization)))

        return usage

    def temperature(self) -> float | None:
        try:
            return float(pynvml.nvmlDeviceGetTemperature(self._handle, pynvml.NVML_TEMPERATURE_GPU))
        except pynvml.NVMLError:
            return None

    def energy_uj(self) -> int | None:
        """Total energy since driver load, in microjoules."""
        try:
            millijoules = pynvml.nvmlDeviceGetTotalEnergyConsumption(self._handle)
        except pynvml.NVMLError:
            return None
        return int(millijoules) * MILLIJOULES_TO_MICROJOULES

    def close(self) -> None:
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError as e:
            logger.debug(f"NVML shutdown failed: {e}")


def _open_optional(path: Path) -> SensorFile | None:
    try:
        return SensorFile(path)
    except SensorError:
        return None


def _read_optional(sensor: SensorFile | None) -> int | None:
    if sensor is None:
        return None
    try:
        return sensor.read(int)
    except SensorError:
        return None


class DrmBackend:
    """Generic DRM sysfs counters of the first card."""

    def __init__(self, device_path: Path):
        """
        Args:
            device_path: Card device directory (e.g. /sys/class/drm/card0/device)
        """
        self.device_path = device_path
        self._vram_used = _open_optional(device_path / "mem_info_vram_used")
        self._vram_total = _open_optional(device_path / "mem_info_vram_total")
        self._busy = {
            "memory": _open_optional(device_path / "mem_busy_percent"),
            "compute": _open_optional(device_path / "gpu_busy_percent"),
        }

    @classmethod
    def discover(cls, sys_path: Path) -> "DrmBackend | None":
        device_path = sys_path / "class" / "drm" / "card0" / "device"
        if not device_path.is_dir():
            return None
        return cls(device_path)

    def memory(self) -> GpuMemory | None:
        total = _read_optional(self._vram_total)
        used = _read_optional(self._vram_used)
        if total is None or used is None:
            return None
        return GpuMemory(total=total, free=max(total - used, 0))

    def utilization(self) -> list[GpuUsage]:
        usage = []
        for system, sensor in self._busy.items():
            value = _read_optional(sensor)
            if value is not None:
                usage.append(GpuUsage(system, value))
        return usage

    def find_power_sensor(self) -> Path | None:
        """Find the average power channel (microwatts) of the card's hwmon device."""
        try:
            hwmons = sorted((self.device_path / "hwmon").iterdir())
        except OSError:
            return None

        for hwmon in hwmons:
            path = hwmon / "power1_average"
            if path.exists():
                return path
        return None

    def close(self) -> None:
        for sensor in (self._vram_used, self._vram_total, *self._busy.values()):
            if sensor is not None:
                sensor.close()


class GpuSource(Source):
    """Source for GPU memory, utilization and temperature."""

    SOURCE_TYPE = "gpu"

    def __init__(self, nvml: NvmlBackend | None = None, drm: DrmBackend | None = None):
        super().__init__()
        self.nvml = nvml
        self.drm = drm

    @classmethod
    def discover(cls, sys_path: Path) -> "GpuSource":
        nvml = NvmlBackend.create()
        drm = DrmBackend.discover(sys_path)
        return cls(nvml=nvml, drm=drm)

    @property
    def available(self) -> bool:
        return self.nvml is not None or self.drm is not None

    def read(self) -> GpuStats | None:
        if self.nvml is not None:
            return GpuStats(
                memory=self.nvml.memory(),
                usage=self.nvml.utilization(),
                temperature=self.nvml.temperature(),
            )
        if self.drm is not None:
            return GpuStats(memory=self.drm.memory(), usage=self.drm.utilization())
        return None

    def close(self) -> None:
        if self.nvml is not None:
            self.nvml.close()
        if self.drm is not None:
            self.drm.close()

    def __repr__(self) -> str:
        backend = "nvml" if self.nvml else "drm" if self.drm else "none"
        return f"GpuSource({backend})"
