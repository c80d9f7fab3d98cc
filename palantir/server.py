"""
HTTP endpoint serving metric snapshots.

GET /metrics renders a fresh snapshot: kernel sources are read in the
scrape worker pool, container counters are queried on the event loop,
and both are joined into one plain-text response.
"""

import asyncio
from concurrent.futures import Executor
from dataclasses import dataclass

from aiohttp import web

from .collectors.container import ContainerRuntimeError, ContainerSource
from .exposition import ExpositionWriter
from .logging import get_logger
from .sensors import Sensors


logger = get_logger("server")

CONTENT_TYPE = "text/plain"


@dataclass
class ScrapeContext:
    """Shared state of all requests."""

    sensors: Sensors
    executor: Executor | None = None
    containers: ContainerSource | None = None


CONTEXT_KEY = web.AppKey("context", ScrapeContext)


async def handle_metrics(request: web.Request) -> web.Response:
    """Render one snapshot."""
    context = request.app[CONTEXT_KEY]
    loop = asyncio.get_running_loop()
    out = ExpositionWriter(context.sensors.hostname)
    snapshot = loop.run_in_executor(context.executor, context.sensors.collect_into, out)

    containers = []
    if context.containers is not None:
        try:
            containers = await context.containers.read()
        except ContainerRuntimeError as e:
            # Let the worker finish before failing the request
            await asyncio.gather(snapshot, return_exceptions=True)
            logger.error(f"Scrape failed: {e}")
            return web.Response(status=500, text=f"{e}\n", content_type=CONTENT_TYPE)

    try:
        await snapshot
    except Exception as e:
        logger.exception(f"Scrape failed: {e}")
        return web.Response(status=500, text=f"{e}\n", content_type=CONTENT_TYPE)

    for container in containers:
        container.write(out)

    return web.Response(text=out.getvalue(), content_type=CONTENT_TYPE)


def create_app(context: ScrapeContext) -> web.Application:
    """
    Create the web application.

    Args:
        context: Sources and worker pool used by every request

    Returns:
        aiohttp application with the /metrics route
    """
    app = web.Application()
    app[CONTEXT_KEY] = context
    app.router.add_get("/metrics", handle_metrics)
    return app
