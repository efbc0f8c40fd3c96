"""
Command line entry point.

Usage:
    python -m stream_supervisor [--log-level LEVEL] [--check]

Reads STREAM_URL and STREAM_KEY (plus the asset, monitoring, FFmpeg and
logging settings) from the environment or a ``.env`` file.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

from asset_manager.catalog import AssetCatalog
from asset_manager.config import get_config as get_asset_config
from logging_module.config import LoggingConfig
from logging_module.logger import setup_logging
from stream_supervisor.config import StreamConfig, SupervisorSettings
from stream_supervisor.supervisor import StreamSupervisor

logger = logging.getLogger("stream_supervisor")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="loopcast",
        description="Stream a rotating video library to an RTMP endpoint",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate configuration and assets, then exit",
    )
    return parser.parse_args(argv)


def warn_missing_assets() -> int:
    """Log a warning listing missing content files.

    Returns:
        Number of missing files
    """
    catalog = AssetCatalog(get_asset_config())
    missing = catalog.missing()
    if missing:
        preview = ", ".join(str(catalog.path_for(i)) for i in missing[:5])
        more = f" (and {len(missing) - 5} more)" if len(missing) > 5 else ""
        logger.warning(
            f"{len(missing)} of {len(catalog)} video files are missing: {preview}{more}. "
            f"Please ensure all video files are present in the assets directory.",
            extra={"event": "assets_missing", "missing_count": len(missing)},
        )
    return len(missing)


def install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass


async def run(
    config: StreamConfig,
    supervisor: Optional[StreamSupervisor] = None,
    stop: Optional[asyncio.Event] = None,
) -> int:
    """Run the supervisor until SIGINT or SIGTERM, or until ``stop`` is set."""
    supervisor = supervisor or StreamSupervisor()
    if stop is None:
        stop = asyncio.Event()
        install_signal_handlers(stop)

    try:
        await supervisor.start_stream(config)
    except Exception as e:
        logger.error(f"Initial stream start failed, retrying in background: {e}")

    await stop.wait()
    logger.info("Shutdown signal received")
    await supervisor.shutdown()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        logging_config = LoggingConfig.from_env()
        if args.log_level:
            logging_config.log_level = args.log_level
        setup_logging(logging_config)

        settings = SupervisorSettings()
        config = settings.to_stream_config()
    except (ValidationError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        missing = warn_missing_assets()
    except ValueError as e:
        logger.error(f"Invalid asset configuration: {e}")
        return 2

    if args.check:
        logger.info("Configuration is valid")
        return 1 if missing else 0

    try:
        return asyncio.run(run(config))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
