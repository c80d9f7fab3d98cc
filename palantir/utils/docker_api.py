"""
Docker API client via Unix socket.

Async access to the Docker Engine API over aiohttp's Unix connector,
without requiring the docker-py package. Only the calls needed for
per-container resource counters are implemented.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiohttp

from ..const import DEFAULT_DOCKER_SOCKET


class DockerError(Exception):
    """Exception for Docker API errors."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"Docker API error {status}: {message}")


@dataclass
class ContainerInfo:
    """Docker container information."""

    id: str
    name: str


@dataclass
class ContainerStats:
    """Docker container statistics."""

    # Cumulative CPU time consumed by the container (nanoseconds)
    cpu_total: int = 0

    # Memory usage (bytes)
    memory_usage: int = 0


def _error_message(body: str) -> str:
    try:
        return json.loads(body).get("message", body)
    except (ValueError, AttributeError):
        return body


class DockerClient:
    """
    Async Docker API client using Unix socket.

    Each call opens its own connection, so the client can be shared
    between event loops.
    """

    # Host part is ignored by the daemon but required in the URL
    BASE_URL = "http://docker"

    def __init__(self, socket_path: str = DEFAULT_DOCKER_SOCKET):
        """
        Initialize Docker client.

        Args:
            socket_path: Path to Docker Unix socket
        """
        self.socket_path = socket_path

    @property
    def available(self) -> bool:
        """Check if Docker socket exists."""
        return Path(self.socket_path).exists()

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            base_url=self.BASE_URL,
            connector=aiohttp.UnixConnector(path=self.socket_path),
        )

    async def _get_json(self, path: str, query: dict[str, str] | None = None) -> Any:
        """
        GET request returning JSON.

        Raises:
            DockerError: On HTTP error status
            aiohttp.ClientError: If the daemon cannot be reached
        """
        async with self._session() as session:
            async with session.get(path, params=query) as response:
                if response.status >= 400:
                    raise DockerError(response.status, _error_message(await response.text()))
                return await response.json(content_type=None)

    async def list_containers(self) -> list[ContainerInfo]:
        """
        List running Docker containers.

        Returns:
            List of ContainerInfo
        """
        data = await self._get_json("/containers/json") or []

        return [
            ContainerInfo(
                id=item.get("Id", ""),
                name=(item.get("Names") or ["/unknown"])[0].lstrip("/"),
            )
            for item in data
        ]

    async def get_stats(self, container_id: str) -> ContainerStats:
        """
        Get one-shot container statistics.

        Args:
            container_id: Container ID or name

        Returns:
            ContainerStats
        """
        data = await self._get_json(
            f"/containers/{container_id}/stats",
            {"stream": "false", "one-shot": "true"},
        ) or {}

        cpu_usage = data.get("cpu_stats", {}).get("cpu_usage", {})
        memory_stats = data.get("memory_stats", {})

        return ContainerStats(
            cpu_total=cpu_usage.get("total_usage", 0),
            memory_usage=memory_stats.get("usage", 0),
        )

    async def ping(self) -> bool:
        """
        Check if Docker daemon is responsive.

        Returns:
            True if daemon is responding
        """
        try:
            async with self._session() as session:
                async with session.get("/_ping") as response:
                    return response.status == 200
        except (aiohttp.ClientError, OSError):
            return False

    def __repr__(self) -> str:
        return f"DockerClient({self.socket_path!r})"
