"""Main entry point for the LAM action engine service."""

from aiohttp import web
from prometheus_client import start_http_server

from . import __version__
from .api import ApiServer
from .config import EngineSettings
from .engine import build_engine
from .utils import TenantRateLimiter, setup_logging


def main() -> None:
    """Start the engine and serve the HTTP API until interrupted."""
    settings = EngineSettings()
    logger = setup_logging(settings.log_level, settings.log_format)

    logger.info("Starting LAM action engine", version=__version__)

    # Start Prometheus metrics server
    if settings.metrics_enabled:
        start_http_server(settings.metrics_port)
        logger.info("Started Prometheus metrics server", port=settings.metrics_port)

    engine = build_engine(settings)
    server = ApiServer(engine, rate_limiter=TenantRateLimiter(settings.rate_limit_runs))

    web.run_app(server.app, host=settings.api_host, port=settings.api_port, print=None)
    logger.info("LAM action engine stopped")


if __name__ == "__main__":
    main()
