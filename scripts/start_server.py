#!/usr/bin/env python3
"""Start the config service server."""

import argparse
import asyncio
import logging
import signal

from configservice.config import ServiceSettings
from configservice.coordinator.server import ConfigServer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def run_server(settings: ServiceSettings):
    """Run the config server until SIGINT/SIGTERM."""
    server = ConfigServer(settings)
    
    shutdown_event = asyncio.Event()
    
    def handle_shutdown():
        logger.info("Shutdown signal received")
        shutdown_event.set()
    
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_shutdown)
    
    try:
        await server.start()
        
        logger.info(f"Config service running on http://{settings.server.host}:{settings.server.port}")
        
        await shutdown_event.wait()
        
    finally:
        await server.stop()


def main():
    parser = argparse.ArgumentParser(
        description="Start the config service"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind to (overrides config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (overrides config)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/default.yaml",
        help="Path to config file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    
    args = parser.parse_args()
    
    logging.getLogger().setLevel(getattr(logging, args.log_level))
    
    logger.info("Starting config service")
    logger.info(f"Config: {args.config}")
    
    settings = ServiceSettings.load(args.config)
    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port
    
    asyncio.run(run_server(settings))


if __name__ == "__main__":
    main()
