"""
Container resource counters.

Thin async adapter over the Docker Engine API: lists running containers
and reports their memory usage and cumulative CPU time. This is the only
source doing network I/O, so it runs on the event loop under a timeout
instead of in the scrape worker pool.
"""

import asyncio

import aiohttp

from ..logging import get_logger
from ..models.metrics import ContainerUsage
from ..utils.docker_api import DockerClient, DockerError


logger = get_logger("docker")


class ContainerRuntimeError(Exception):
    """Raised when an expected container runtime cannot be queried."""


class ContainerSource:
    """Source for per-container memory and CPU time."""

    SOURCE_TYPE = "container"

    def __init__(self, client: DockerClient, timeout: float):
        """
        Args:
            client: Docker API client
            timeout: Seconds allowed for one full query
        """
        self.client = client
        self.timeout = timeout

    @classmethod
    async def connect(cls, client: DockerClient, timeout: float) -> "ContainerSource | None":
        """
        Probe the runtime once at startup.

        Returns:
            ContainerSource if the runtime answered, None otherwise
        """
        if not client.available:
            logger.info(f"No container runtime socket at {client.socket_path}")
            return None

        try:
            reachable = await asyncio.wait_for(client.ping(), timeout)
        except asyncio.TimeoutError:
            reachable = False

        if not reachable:
            logger.warning(f"Container runtime at {client.socket_path} is not responding")
            return None

        logger.info(f"Collecting container metrics from {client.socket_path}")
        return cls(client, timeout)

    async def _query(self) -> list[ContainerUsage]:
        containers = await self.client.list_containers()
        stats = await asyncio.gather(
            *(self.client.get_stats(container.id) for container in containers),
            return_exceptions=True,
        )

        result = []
        for container, container_stats in zip(containers, stats):
            # A container may stop between listing and stats
            if isinstance(container_stats, DockerError) and container_stats.status == 404:
                continue
            if isinstance(container_stats, BaseException):
                raise container_stats
            result.append(
                ContainerUsage(
                    name=container.name,
                    memory=container_stats.memory_usage,
                    cpu_time=container_stats.cpu_total,
                )
            )

        return result

    async def read(self) -> list[ContainerUsage]:
        """
        Query all running containers.

        Raises:
            ContainerRuntimeError: If the runtime fails, is unreachable or
                does not answer within the timeout
        """
        try:
            return await asyncio.wait_for(self._query(), self.timeout)
        except asyncio.TimeoutError as e:
            raise ContainerRuntimeError(
                f"container runtime did not answer within {self.timeout}s"
            ) from e
        except (DockerError, aiohttp.ClientError, OSError, ValueError) as e:
            raise ContainerRuntimeError(f"failed to query container runtime: {e}") from e
