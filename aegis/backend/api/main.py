"""
api/main.py

FastAPI application factory: REST routers under /api, WebSocket channels
under /ws, and the module-level orchestrator reference injected by main.py.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Sequence

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.websockets import WebSocketDisconnect

from ..stream.orchestrator import ScanOrchestrator
from .routes import enrichment as enrichment_router
from .routes import packets as packets_router
from .routes import scan as scan_router
from .routes import stats as stats_router
from .ws_manager import Channel, ws_manager

logger = logging.getLogger(__name__)

_orchestrator: ScanOrchestrator | None = None


def set_orchestrator(orchestrator: ScanOrchestrator) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> ScanOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Orchestrator not initialised — call set_orchestrator() first")
    return _orchestrator


async def broadcast_update(
    channel: str,
    orchestrator: ScanOrchestrator,
    batch_ids: tuple[str, ...] = (),
) -> None:
    """Orchestrator listener: push the fresh snapshot to WebSocket clients."""
    if channel == Channel.PACKETS:
        await ws_manager.publish_packets(orchestrator.snapshot(), orchestrator.state, batch_ids)
    elif channel == Channel.STATS:
        await ws_manager.publish_stats(orchestrator.stats, batch_ids)


def create_app(cors_origins: Sequence[str] = ()) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("FastAPI startup")
        yield
        logger.info("FastAPI shutdown")

    app = FastAPI(
        title="AEGIS — Packet Stream Console",
        version="1.0.0",
        description="Synthetic packet stream with AI-assisted risk classification",
        lifespan=lifespan,
    )

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # REST routers
    app.include_router(packets_router.router,    prefix="/api")
    app.include_router(scan_router.router,       prefix="/api")
    app.include_router(stats_router.router,      prefix="/api")
    app.include_router(enrichment_router.router, prefix="/api")

    # WebSockets
    @app.websocket("/ws/packets")
    async def ws_packets(websocket: WebSocket):
        await ws_manager.connect(websocket, Channel.PACKETS)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            await ws_manager.disconnect(websocket, Channel.PACKETS)

    @app.websocket("/ws/stats")
    async def ws_stats(websocket: WebSocket):
        await ws_manager.connect(websocket, Channel.STATS)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            await ws_manager.disconnect(websocket, Channel.STATS)

    @app.get("/health")
    async def health() -> dict:
        state = _orchestrator.state.value if _orchestrator is not None else "UNINITIALISED"
        return {
            "status": "ok",
            "scan_state": state,
            "ws_connections": ws_manager.all_counts(),
        }

    return app
