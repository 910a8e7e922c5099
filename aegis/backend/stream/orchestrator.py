"""
stream/orchestrator.py

ScanOrchestrator — drives one scan cycle at a time.

    IDLE → GENERATING → BUFFERING → ENRICHING → MERGING → AGGREGATING → IDLE

Single-flight: scan() checks and sets the state before its first await, so
a request arriving while a cycle is in flight is dropped (returns None).

The only suspension point inside a cycle is the gateway call (plus listener
notification). Readers may observe the post-append, pre-merge buffer while
the classifier is working; stats are recomputed only after the merge, from
one snapshot.

Gateway failures of any kind, including the timeout, degrade to "no
corrections" and never leave the orchestrator outside IDLE. Elements of a
gateway response that are not well-formed Corrections are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from ..enrichment.gateway import EnrichmentGateway
from ..metrics import METRICS
from ..models import Correction, Packet, Stats
from .buffer import StreamBuffer
from .stats import recompute
from .synthesizer import PacketSynthesizer

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 8

# Regenerations allowed per packet whose id is already taken
_MAX_ID_RETRIES = 5

# listener(channel, orchestrator, batch_ids); channel is "packets" or "stats",
# batch_ids are the ids generated by the cycle being reported
Listener = Callable[[str, "ScanOrchestrator", tuple[str, ...]], Awaitable[None]]


class ScanState(str, Enum):
    IDLE        = "IDLE"
    GENERATING  = "GENERATING"
    BUFFERING   = "BUFFERING"
    ENRICHING   = "ENRICHING"
    MERGING     = "MERGING"
    AGGREGATING = "AGGREGATING"


@dataclass(slots=True)
class ScanResult:
    """Outcome of one completed scan cycle."""

    batch_ids: list[str]
    stats: Stats
    evicted: list[Packet] = field(default_factory=list)
    corrections_applied: int = 0
    enrichment_failed: bool = False


class ScanOrchestrator:
    """
    Sole writer of the StreamBuffer and the current Stats.

    Args:
        synthesizer:        Packet source.
        buffer:             Retention-bounded packet log.
        gateway:            Enrichment collaborator.
        batch_size:         Packets generated per cycle.
        enrichment_timeout: Upper bound (seconds) on the gateway call; 0 disables.
        listeners:          Coroutines notified after buffering and aggregating.
    """

    def __init__(
        self,
        synthesizer: PacketSynthesizer,
        buffer: StreamBuffer,
        gateway: EnrichmentGateway,
        batch_size: int = DEFAULT_BATCH_SIZE,
        enrichment_timeout: float = 8.0,
        listeners: Iterable[Listener] = (),
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.synthesizer = synthesizer
        self.buffer = buffer
        self.gateway = gateway
        self.batch_size = batch_size
        self.enrichment_timeout = enrichment_timeout
        self._listeners: list[Listener] = list(listeners)

        self._state = ScanState.IDLE
        self._stats: Stats = recompute(buffer.snapshot())

        self.counters: dict[str, int] = {
            "scans_completed": 0,
            "scans_rejected": 0,
            "packets_generated": 0,
            "packets_evicted": 0,
            "corrections_applied": 0,
            "enrichment_failures": 0,
        }

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is ScanState.IDLE

    @property
    def stats(self) -> Stats:
        return self._stats

    def snapshot(self) -> tuple[Packet, ...]:
        return self.buffer.snapshot()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Scan cycle
    # ------------------------------------------------------------------

    async def scan(self) -> ScanResult | None:
        """Run one full cycle. Returns None (no-op) if a cycle is already running."""
        if not self.is_idle:
            self.counters["scans_rejected"] += 1
            METRICS.scans_rejected.inc()
            logger.debug("Scan request dropped — cycle in flight (state=%s)", self._state.value)
            return None

        self._state = ScanState.GENERATING
        METRICS.scans_started.inc()
        try:
            batch = self._generate()
            batch_ids = tuple(p.id for p in batch)
            self.counters["packets_generated"] += len(batch)
            METRICS.packets_generated.inc(len(batch))

            self._state = ScanState.BUFFERING
            evicted = self.buffer.append(batch)
            self.counters["packets_evicted"] += len(evicted)
            await self._notify("packets", batch_ids)

            self._state = ScanState.ENRICHING
            corrections, failed = await self._enrich(batch)

            self._state = ScanState.MERGING
            applied = self.buffer.merge_corrections(corrections)
            self.counters["corrections_applied"] += applied

            self._state = ScanState.AGGREGATING
            self._stats = recompute(self.buffer.snapshot())

            self.counters["scans_completed"] += 1
            logger.info(
                "Scan complete — batch=%d evicted=%d refined=%d threats=%d/%d avg_risk=%d%s",
                len(batch), len(evicted), applied,
                self._stats.threats_detected, self._stats.total_scanned,
                self._stats.average_risk,
                " (enrichment failed)" if failed else "",
            )
            result = ScanResult(
                batch_ids=list(batch_ids),
                stats=self._stats,
                evicted=evicted,
                corrections_applied=applied,
                enrichment_failed=failed,
            )
        finally:
            self._state = ScanState.IDLE

        await self._notify("packets", batch_ids)
        await self._notify("stats", batch_ids)
        return result

    def _generate(self) -> list[Packet]:
        """A fresh batch whose ids are unique among themselves and the buffer."""
        taken: set[str] = set()
        batch: list[Packet] = []
        for packet in self.synthesizer.generate_batch(self.batch_size):
            retries = 0
            while packet.id in self.buffer or packet.id in taken:
                if retries == _MAX_ID_RETRIES:
                    logger.warning(
                        "Packet id %r still colliding after %d regenerations — dropped",
                        packet.id, retries,
                    )
                    break
                logger.warning("Packet id %r already in use — regenerating", packet.id)
                packet = self.synthesizer.generate()
                retries += 1
            else:
                taken.add(packet.id)
                batch.append(packet)
        return batch

    async def _enrich(self, batch: list[Packet]) -> tuple[list[Correction], bool]:
        """
        Call the gateway for batch only. Errors and timeouts give ([], True);
        malformed elements are dropped and also flag the failure.
        """
        try:
            if self.enrichment_timeout > 0:
                async with asyncio.timeout(self.enrichment_timeout):
                    response = await self.gateway.classify(batch)
            else:
                response = await self.gateway.classify(batch)
            corrections, dropped = _well_formed(response)
        except TimeoutError:
            self._record_failure()
            logger.warning(
                "Enrichment timed out after %.1fs — keeping synthesized scores",
                self.enrichment_timeout,
            )
            return [], True
        except Exception as exc:
            self._record_failure()
            logger.warning("Enrichment failed (%s) — keeping synthesized scores", exc)
            logger.debug("Enrichment failure detail", exc_info=True)
            return [], True
        if dropped:
            self._record_failure()
            logger.warning(
                "Gateway %r returned %d malformed correction(s) — dropped",
                self.gateway.name, dropped,
            )
            return corrections, True
        return corrections, False

    def _record_failure(self) -> None:
        self.counters["enrichment_failures"] += 1
        METRICS.enrichment_failures.inc()

    async def _notify(self, channel: str, batch_ids: tuple[str, ...]) -> None:
        for listener in self._listeners:
            try:
                await listener(channel, self, batch_ids)
            except Exception:
                logger.exception("Listener %r failed on channel %r", listener, channel)


def _well_formed(response: Iterable[Any] | None) -> tuple[list[Correction], int]:
    """Split a gateway response into usable Corrections and a count of rejects."""
    corrections: list[Correction] = []
    dropped = 0
    for item in response or ():
        score = getattr(item, "risk_score", None)
        if (
            isinstance(item, Correction)
            and isinstance(item.id, str)
            and isinstance(item.analysis, str)
            and isinstance(score, (int, float))
            and not isinstance(score, bool)
            and math.isfinite(score)
        ):
            corrections.append(item)
        else:
            dropped += 1
            logger.debug("Malformed correction dropped: %r", item)
    return corrections, dropped


async def run_periodic(
    orchestrator: ScanOrchestrator,
    interval: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Trigger a scan every interval seconds until shutdown_event is set."""
    logger.info("Auto-scan started — every %.1fs", interval)
    while not shutdown_event.is_set():
        await orchestrator.scan()
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
    logger.info("Auto-scan exiting")
