"""
api/ws_manager.py

WebSocketManager — pushes scan-cycle snapshots to WebSocket clients.

Channels:
    Channel.PACKETS — ordered buffer snapshot plus scan state, sent after
                      append and again after merge
    Channel.STATS   — Stats after each cycle's aggregation

Every message carries a per-channel "seq" that increases by one per
delivered message, and the "batch_ids" of the cycle being reported, so a
client can tell which packets are new and whether it missed an update.

Thread safety: designed to be called exclusively from asyncio coroutines.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Iterable, Sequence

from fastapi import WebSocket

from ..models import Packet, Stats
from ..stream.orchestrator import ScanState

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    PACKETS = "packets"
    STATS   = "stats"


class WebSocketManager:
    """One client set per Channel; dead clients are dropped on send."""

    def __init__(self) -> None:
        self._clients: dict[Channel, set[WebSocket]] = {ch: set() for ch in Channel}
        self._seq: dict[Channel, int] = {ch: 0 for ch in Channel}

    async def connect(self, websocket: WebSocket, channel: Channel | str) -> None:
        """Accept websocket and subscribe it. Unknown channels raise ValueError."""
        channel = Channel(channel)
        await websocket.accept()
        self._clients[channel].add(websocket)
        logger.debug("WS connected — channel=%s total=%d", channel.value, len(self._clients[channel]))

    async def disconnect(self, websocket: WebSocket, channel: Channel | str) -> None:
        channel = Channel(channel)
        self._clients[channel].discard(websocket)
        logger.debug(
            "WS disconnected — channel=%s remaining=%d",
            channel.value, len(self._clients[channel]),
        )

    # ------------------------------------------------------------------
    # Typed publishers
    # ------------------------------------------------------------------

    async def publish_packets(
        self,
        snapshot: Sequence[Packet],
        state: ScanState,
        batch_ids: Iterable[str] = (),
    ) -> int:
        """Send the buffer snapshot. Returns the number of clients reached."""
        if not self._clients[Channel.PACKETS]:
            return 0
        return await self._send(Channel.PACKETS, {
            "state": state.value,
            "batch_ids": list(batch_ids),
            "packets": [p.to_dict() for p in snapshot],
        })

    async def publish_stats(self, stats: Stats, batch_ids: Iterable[str] = ()) -> int:
        """Send the current Stats (camel-cased). Returns the number of clients reached."""
        if not self._clients[Channel.STATS]:
            return 0
        return await self._send(Channel.STATS, {
            **stats.to_dict(),
            "batch_ids": list(batch_ids),
        })

    async def _send(self, channel: Channel, body: dict[str, Any]) -> int:
        self._seq[channel] += 1
        payload = json.dumps({"seq": self._seq[channel], **body})

        delivered = 0
        for ws in list(self._clients[channel]):
            try:
                await ws.send_text(payload)
                delivered += 1
            except Exception as exc:
                logger.debug("WS send failed (channel=%s): %s — removing", channel.value, exc)
                self._clients[channel].discard(ws)
        return delivered

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def connection_count(self, channel: Channel | str) -> int:
        return len(self._clients[Channel(channel)])

    def all_counts(self) -> dict[str, int]:
        return {ch.value: len(clients) for ch, clients in self._clients.items()}


# Global singleton, imported by the app factory and main.py
ws_manager = WebSocketManager()
