"""FinIQ entrypoint -- wires all components together and starts the server.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass

from aiohttp import web

from advisor.engine import AdvisorEngine
from advisor.service import AdvisorService
from backend.alerts import MarketAlertWatcher
from backend.cache import QueryCache
from backend.queries import DataAccess
from backend.session import BackendSession
from core.bus import AsyncIOBus
from core.config import AppConfig, load_config
from market.dataset import MarketDataset
from market.live_price import LivePriceGenerator
from market.playground import PlaygroundService
from market.random_source import SystemRandomSource
from portfolio.analyzer import PortfolioAnalyzer
from server import create_app


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet down noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="FinIQ finance education service")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.finiq/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.finiq/.env)",
    )
    return parser.parse_args()


@dataclass
class Services:
    """Every long-lived component, built once per process."""

    config: AppConfig
    bus: AsyncIOBus
    dataset: MarketDataset
    generator: LivePriceGenerator
    session: BackendSession
    data: DataAccess
    advisor: AdvisorService
    playground: PlaygroundService
    analyzer: PortfolioAnalyzer

    async def close(self) -> None:
        await self.session.close()


def build_services(config: AppConfig, session: BackendSession | None = None) -> Services:
    """Build the component graph from configuration."""
    bus = AsyncIOBus()

    dataset = MarketDataset(
        rng=SystemRandomSource(config.history.seed),
        days=config.history.days,
        drift_bias=config.history.drift_bias,
        amplitude=config.history.amplitude,
    )
    price_rng = SystemRandomSource(config.live_prices.seed)
    generator = LivePriceGenerator(
        dataset,
        rng=price_rng,
        default_price=config.live_prices.default_price,
        max_step=config.live_prices.max_step,
    )

    session = session or BackendSession.from_config(config.backend)
    data = DataAccess(
        session,
        cache=QueryCache(ttl_seconds=config.backend.cache_ttl_seconds),
        bus=bus,
    )

    return Services(
        config=config,
        bus=bus,
        dataset=dataset,
        generator=generator,
        session=session,
        data=data,
        advisor=AdvisorService(engine=AdvisorEngine(), data=data, bus=bus),
        playground=PlaygroundService(dataset, rng=price_rng, data=data, bus=bus),
        analyzer=PortfolioAnalyzer(generator),
    )


async def run(config_path: str | None = None, env_path: str | None = None) -> None:
    """Initialize all components and start the server."""
    # Load configuration
    config = load_config(config_path=config_path, env_path=env_path)
    logging.getLogger().setLevel(getattr(logging, config.logging.level.upper(), logging.INFO))
    logger = logging.getLogger("finiq")
    logger.info("Configuration loaded from %s", config.home_path)

    services = build_services(config)

    alert_watcher: MarketAlertWatcher | None = None
    if config.alerts.enabled and services.session.available:
        alert_watcher = MarketAlertWatcher(
            bus=services.bus,
            data=services.data,
            check_interval_seconds=config.alerts.poll_interval_seconds,
        )

    # Create HTTP server
    app = create_app(
        config=config,
        bus=services.bus,
        dataset=services.dataset,
        generator=services.generator,
        data=services.data,
        advisor=services.advisor,
        playground=services.playground,
        analyzer=services.analyzer,
    )

    if alert_watcher is not None:
        await alert_watcher.start()

    # Start server
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)
    await site.start()

    logger.info(
        "FinIQ running at http://%s:%d",
        config.server.host,
        config.server.port,
    )
    logger.info("Backend: %s", config.backend.url or "not configured")

    # Run until interrupted
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        logger.info("Shutting down...")
        if alert_watcher is not None:
            await alert_watcher.stop()
        await runner.cleanup()
        await services.close()
        logger.info("Shutdown complete")


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        asyncio.run(run(config_path=args.config, env_path=args.env))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
