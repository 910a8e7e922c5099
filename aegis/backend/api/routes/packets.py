"""
api/routes/packets.py

GET /api/packets          — ordered snapshot of the retained packets
GET /api/packets/export   — CSV download of the snapshot
GET /api/packets/{id}     — one packet (detail view)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from ...models import ThreatLabel
from ...stream.export import export_filename, to_csv
from ...stream.orchestrator import ScanOrchestrator
from ..serializers import PacketListResponse, PacketResponse

router = APIRouter(prefix="/packets", tags=["packets"])


def _get_orchestrator() -> ScanOrchestrator:
    from ..main import get_orchestrator
    return get_orchestrator()


@router.get("", response_model=PacketListResponse)
async def list_packets(
    label: ThreatLabel | None = None,
    threats_only: bool = False,
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
    orchestrator: ScanOrchestrator = Depends(_get_orchestrator),
) -> PacketListResponse:
    """Return retained packets oldest first; limit keeps the newest N."""
    snapshot = orchestrator.snapshot()
    packets = [
        p for p in snapshot
        if (label is None or p.label is label) and (not threats_only or p.is_threat)
    ]
    if limit is not None:
        packets = packets[-limit:]
    return PacketListResponse(
        items=[PacketResponse.from_packet(p) for p in packets],
        total=len(packets),
        capacity=orchestrator.buffer.capacity,
    )


@router.get("/export", response_class=PlainTextResponse)
async def export_packets(
    orchestrator: ScanOrchestrator = Depends(_get_orchestrator),
) -> PlainTextResponse:
    """Download the current snapshot as CSV (analysis excluded)."""
    return PlainTextResponse(
        to_csv(orchestrator.snapshot()),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.get("/{packet_id}", response_model=PacketResponse)
async def get_packet(
    packet_id: str,
    orchestrator: ScanOrchestrator = Depends(_get_orchestrator),
) -> PacketResponse:
    packet = orchestrator.buffer.get(packet_id)
    if packet is None:
        raise HTTPException(status_code=404, detail=f"Packet {packet_id!r} not found")
    return PacketResponse.from_packet(packet)
