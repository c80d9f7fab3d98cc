"""
Utility functions and helpers.
"""

from .docker_api import ContainerInfo, ContainerStats, DockerClient, DockerError
from .sensor_file import SensorAccessDenied, SensorError, SensorFile

__all__ = [
    "SensorFile",
    "SensorError",
    "SensorAccessDenied",
    "DockerClient",
    "DockerError",
    "ContainerInfo",
    "ContainerStats",
]
