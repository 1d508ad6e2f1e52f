import asyncio
import logging

import uvicorn

from .app import app
from .core.config import Config
from .core.errors import ShutdownTimeoutError
from .core.shutdown import ShutdownCoordinator

logger = logging.getLogger(__name__)


class DrainingServer(uvicorn.Server):
    """uvicorn server that drains in-flight requests before closing.

    The coordinator stops admitting requests as soon as the termination
    signal is handled; the server then waits for the in-flight count to
    reach zero, bounded by ``drain_timeout``. A second Ctrl+C sets
    ``force_exit`` and cuts the wait short.
    """

    def __init__(self, config: uvicorn.Config, coordinator: ShutdownCoordinator, drain_timeout: float):
        super().__init__(config)
        self.coordinator = coordinator
        self.drain_timeout = drain_timeout

    def handle_exit(self, sig, frame) -> None:
        self.coordinator.begin_drain()
        super().handle_exit(sig, frame)

    async def drain(self) -> None:
        try:
            drained = await self.coordinator.drain_async(self.drain_timeout, abandon=lambda: self.force_exit)
        except ShutdownTimeoutError as e:
            logger.critical(f"Graceful shutdown timeout: {e}")
            raise SystemExit(1)
        if not drained:
            logger.warning("Forced exit, skipping drain")

    async def shutdown(self, sockets=None) -> None:
        logger.warning("Stopping API")
        await self.drain()
        await super().shutdown(sockets)
        logger.warning("Gracefully stopped")


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
        ]
    )


def run() -> None:
    configure_logging()
    Config.validate()

    config = uvicorn.Config(
        app,
        host=Config.HOST,
        port=Config.PORT,
        timeout_graceful_shutdown=int(Config.SHUTDOWN_TIMEOUT_SECONDS),
        log_config=None,
    )
    server = DrainingServer(config, app.state.shutdown_coordinator, Config.SHUTDOWN_TIMEOUT_SECONDS)
    logger.info(f"Starting API on {Config.HOST}:{Config.PORT}")
    asyncio.run(server.serve())


if __name__ == "__main__":
    run()
