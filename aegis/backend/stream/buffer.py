"""
stream/buffer.py

StreamBuffer — the authoritative, ordered, bounded packet log.

  append()            — add a batch at the tail, then enforce capacity
  merge_corrections() — identity-preserving update of risk_score/analysis
  truncate()          — evict oldest-first until size <= capacity
  snapshot()          — read-only copies, in buffer order

Packets are stored as private copies and handed out as copies, so
nothing outside the buffer can mutate retained packets.

Thread safety: NOT thread-safe — owned by the ScanOrchestrator and touched
only from the asyncio event loop.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from typing import Iterable, Sequence

from ..enrichment.validator import clamp_risk
from ..metrics import METRICS
from ..models import Correction, Packet

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class DuplicatePacketError(ValueError):
    """Raised when an appended packet's id is already retained."""


class StreamBuffer:

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._order: deque[Packet] = deque()
        self._by_id: dict[str, Packet] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, batch: Sequence[Packet]) -> list[Packet]:
        """
        Append batch at the tail and truncate to capacity.

        Returns the evicted packets, oldest first. Raises DuplicatePacketError
        (buffer untouched) if any id is already present or repeated in batch.
        """
        seen: set[str] = set()
        for p in batch:
            if p.id in self._by_id or p.id in seen:
                raise DuplicatePacketError(f"packet id {p.id!r} already in buffer")
            seen.add(p.id)

        for p in batch:
            stored = replace(p)
            self._order.append(stored)
            self._by_id[stored.id] = stored

        return self.truncate()

    def merge_corrections(self, corrections: Iterable[Correction]) -> int:
        """
        Apply each correction to the retained packet with the same id.

        Unknown ids are ignored. Scores are clamped into [0, 100]. Position
        and every other field are kept.
        Applying the same corrections twice leaves the same state as once.
        Returns the number of corrections that matched a retained packet.
        """
        applied = 0
        for c in corrections:
            packet = self._by_id.get(c.id)
            if packet is None:
                METRICS.corrections_ignored.inc()
                logger.debug("Correction for unknown id %r ignored", c.id)
                continue
            packet.risk_score = clamp_risk(c.risk_score)
            packet.analysis = c.analysis
            applied += 1
        METRICS.corrections_applied.inc(applied)
        return applied

    def truncate(self, capacity: int | None = None) -> list[Packet]:
        """Evict from the front until len(self) <= capacity. Returns evicted packets."""
        limit = self._capacity if capacity is None else capacity
        if limit < 0:
            raise ValueError(f"capacity must be >= 0, got {limit}")
        evicted: list[Packet] = []
        while len(self._order) > limit:
            old = self._order.popleft()
            del self._by_id[old.id]
            evicted.append(old)
        if evicted:
            METRICS.packets_evicted.inc(len(evicted))
            logger.debug("Evicted %d packet(s) — size now %d", len(evicted), len(self._order))
        return evicted

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[Packet, ...]:
        """Copies of all retained packets, oldest first."""
        return tuple(replace(p) for p in self._order)

    def get(self, packet_id: str) -> Packet | None:
        packet = self._by_id.get(packet_id)
        return replace(packet) if packet is not None else None

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, packet_id: object) -> bool:
        return packet_id in self._by_id

    def __repr__(self) -> str:
        return f"StreamBuffer(size={len(self)} capacity={self._capacity})"
