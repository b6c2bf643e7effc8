"""
HTTP Health Check Server

Exposes /health for container monitoring. Reads store counters only; never
touches the file and never exposes keys, values or user ids.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from aiohttp import web

from zungenrede.storage import TranslationStore

logger = logging.getLogger(__name__)

STORE_APP_KEY = web.AppKey("store", TranslationStore)


async def health_handler(request: web.Request) -> web.Response:
    """
    Response format:
        {
            "status": "ok" | "degraded",
            "entries": 123,
            "last_persist_ok": true | false | null,
            "last_persist_ms": 1.7 | null,
            "timestamp": "2024-01-01T12:00:00Z"
        }

    "degraded" means the most recent write failed; the process keeps serving.
    Always HTTP 200; monitoring distinguishes by "status".
    """
    store = request.app[STORE_APP_KEY]
    last_persist_ok = store.last_persist_ok
    response_data: Dict[str, Any] = {
        "status": "degraded" if last_persist_ok is False else "ok",
        "entries": len(store),
        "last_persist_ok": last_persist_ok,
        "last_persist_ms": round(store.last_persist_ms, 2) if store.last_persist_ms is not None else None,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    return web.json_response(response_data, status=200)


def create_health_app(store: TranslationStore) -> web.Application:
    app = web.Application()
    app[STORE_APP_KEY] = store
    app.router.add_get("/health", health_handler)

    async def root_handler(request: web.Request) -> web.Response:
        return web.json_response({"service": "zungenrede-bot", "health": "/health"})

    app.router.add_get("/", root_handler)
    return app


async def start_health_server(store: TranslationStore, host: str = "0.0.0.0", port: int = 8080) -> web.AppRunner:
    runner = web.AppRunner(create_health_app(store))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Health check server started on http://{host}:{port}/health")
    return runner


async def health_server_task(store: TranslationStore, host: str = "0.0.0.0", port: int = 8080):
    """Run the health server until cancelled."""
    runner = await start_health_server(store, host, port)
    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        logger.info("Health server task cancelled")
        raise
    finally:
        await runner.cleanup()
        logger.info("Health server stopped")
