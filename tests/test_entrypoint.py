"""
@file: test_entrypoint.py
@description: Real uvicorn listener, degraded startup and exit code on a busy port.
@dependencies: dealgate.main, dealgate.bootstrap, uvicorn, httpx, aiosqlite
@created: 2026-10-18
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import socket
import sys
from pathlib import Path

import httpx
import pytest

from dealgate.config import Settings, reset_settings_cache
from dealgate.logger import logger
from dealgate.main import build_service, main

AIOSQLITE_INSTALLED = importlib.util.find_spec("aiosqlite") is not None
requires_aiosqlite = pytest.mark.skipif(not AIOSQLITE_INSTALLED, reason="aiosqlite not installed")


@pytest.fixture(autouse=True)
def _restore_loguru():
    yield
    logger.remove()
    logger.add(sys.stderr)
    logging.basicConfig(handlers=[logging.StreamHandler()], force=True)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_main_exits_with_1_when_port_is_taken(monkeypatch):
    held = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        held.bind(("127.0.0.1", 0))
        held.listen()
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", str(held.getsockname()[1]))
        reset_settings_cache()

        assert main() == 1
    finally:
        held.close()
        reset_settings_cache()


@requires_aiosqlite
@pytest.mark.asyncio
async def test_real_listener_serves_health_while_store_unreachable(tmp_path: Path):
    port = _free_port()
    settings = Settings(
        HOST="127.0.0.1",
        PORT=port,
        DATABASE_URL=f"sqlite:///{tmp_path / 'missing' / 'deals.db'}",
        STORE_CONNECT_TIMEOUT_SEC=2.0,
    )
    sequencer, listener = build_service(settings)
    runner = asyncio.create_task(sequencer.run(listener))
    try:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + 10.0
        while sequencer.store_task is None or not sequencer.store_task.done():
            if runner.done():
                runner.result()
            assert loop.time() < deadline, "store attempt never finished"
            await asyncio.sleep(0.05)
        assert sequencer.store_task.result() is False

        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}") as http:
            health = await http.get("/health")
            gated = await http.get("/api/deals/today")

        assert health.status_code == 200
        payload = health.json()
        assert payload["status"] == "degraded"
        assert payload["listenerActive"] is True
        assert payload["storeConnected"] is False
        assert payload["port"] == port
        assert "StoreConnectionError" in payload["storeError"]

        assert gated.status_code == 503
        assert gated.json() == {"message": "Database not ready"}
    finally:
        listener.stop()
        await asyncio.wait_for(runner, timeout=10.0)
