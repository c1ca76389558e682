"""
@file: main.py
@description: Process entrypoint: logging, app, store and bootstrap ordering.
@dependencies: uvicorn, config, app, bootstrap, store, observability
@created: 2026-10-13
"""

from __future__ import annotations

import asyncio
import sys

from .app import create_app
from .bootstrap import BootstrapOrdering, BootstrapSequencer, ListenerBindError, UvicornListener
from .config import Settings, get_settings
from .logger import logger, setup_logging
from .observability import init_sentry, install_loop_exception_handler
from .realtime import RealtimeRegistry
from .runtime_state import ReadinessTracker
from .store import AdminAccountSeeder, StoreConnector


def build_service(settings: Settings) -> tuple[BootstrapSequencer, UvicornListener]:
    """Wire readiness, store, app and listener without starting anything."""
    readiness = ReadinessTracker()
    registry = RealtimeRegistry()
    store = StoreConnector.from_settings(settings)
    seeder = AdminAccountSeeder(store, settings.admin_email, settings.admin_password)
    app = create_app(settings, readiness=readiness, registry=registry)
    app.state.store = store

    sequencer = BootstrapSequencer(
        readiness,
        connect=store.connect,
        seed=seeder.seed,
        close=store.dispose,
        ordering=BootstrapOrdering(settings.bootstrap_ordering),
        connect_timeout=settings.store_connect_timeout_sec,
        connect_retries=settings.store_connect_retries,
        retry_delay=settings.store_connect_retry_delay_sec,
    )
    listener = UvicornListener(app, settings.host, settings.port, log_level=settings.log_level)
    logger.info(
        "Starting {} (env={}, port={}, store={})",
        settings.app_name,
        settings.env,
        settings.port,
        store.masked_dsn,
    )
    return sequencer, listener


async def serve(settings: Settings) -> None:
    install_loop_exception_handler()
    sequencer, listener = build_service(settings)
    await sequencer.run(listener)


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)
    init_sentry(settings)
    try:
        asyncio.run(serve(settings))
    except ListenerBindError as exc:
        logger.critical("Listener failed to start: {}", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
