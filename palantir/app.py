"""
Main application orchestrator.

Handles:
- Source discovery
- Energy sampler threads
- HTTP serving
- Graceful shutdown
"""

import asyncio
import signal
from concurrent.futures import ThreadPoolExecutor

from aiohttp import web

from .collectors.container import ContainerSource
from .config import Config
from .const import APP_NAME
from .logging import get_logger
from .sensors import Sensors
from .server import ScrapeContext, create_app
from .utils.docker_api import DockerClient


logger = get_logger("app")


class Application:
    """
    Main application class.

    Owns the source registry, the scrape worker pool and the HTTP server.
    """

    def __init__(self, config: Config):
        """
        Initialize application.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sensors: Sensors | None = None

        self._executor: ThreadPoolExecutor | None = None
        self._runner: web.AppRunner | None = None
        self._shutdown_event = asyncio.Event()

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.shutdown)

    def shutdown(self) -> None:
        """Request a graceful shutdown."""
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    async def start(self) -> None:
        """
        Discover sources and start serving.

        Raises:
            StartupError: If the registry cannot be built
        """
        logger.info(f"Starting {APP_NAME}")

        self.sensors = Sensors.create(self.config)
        containers = await ContainerSource.connect(
            DockerClient(self.config.docker_socket),
            self.config.docker_timeout,
        )

        if not self.config.announce:
            logger.info("Service announcement disabled")

        self.sensors.start()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.workers,
            thread_name_prefix="scrape",
        )

        app = create_app(ScrapeContext(self.sensors, self._executor, containers))
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        await web.TCPSite(self._runner, self.config.bind, self.config.port).start()

        logger.info(f"{APP_NAME} listening on {self.config.bind}:{self.config.port}")

    async def stop(self) -> None:
        """Stop serving and release all sources."""
        logger.info(f"Stopping {APP_NAME}")

        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        if self.sensors is not None:
            self.sensors.stop()
            self.sensors = None

        logger.info(f"{APP_NAME} stopped")

    async def run(self) -> None:
        """Run the application until a shutdown signal."""
        try:
            await self.start()
            self._setup_signal_handlers()
            await self._shutdown_event.wait()
        finally:
            await self.stop()


async def run_app(config: Config) -> None:
    """
    Create and run the application.

    Args:
        config: Application configuration
    """
    logger.debug(f"Configuration: {config}")

    app = Application(config)
    await app.run()
