"""
api/serializers.py

Pydantic response models for the read-only presentation contract.
"""

from __future__ import annotations

from pydantic import BaseModel

from ..models import Packet, Stats


class PacketResponse(BaseModel):
    id: str
    timestamp: str
    duration: int
    protocol_type: str
    service: str
    flag: str
    src_bytes: int
    dst_bytes: int
    label: str
    risk_score: int
    analysis: str | None = None

    @classmethod
    def from_packet(cls, p: Packet) -> "PacketResponse":
        return cls(**p.to_dict())


class PacketListResponse(BaseModel):
    items: list[PacketResponse]
    total: int
    capacity: int


class StatsResponse(BaseModel):
    totalScanned: int
    threatsDetected: int
    averageRisk: int
    lastUpdate: str
    state: str
    counters: dict[str, int] = {}
    pipeline_stats: dict[str, int] = {}

    @classmethod
    def from_stats(cls, stats: Stats, **extra) -> "StatsResponse":
        return cls(**stats.to_dict(), **extra)


class ScanResponse(BaseModel):
    accepted: bool
    state: str
    batch_ids: list[str] = []
    evicted_count: int = 0
    corrections_applied: int = 0
    enrichment_failed: bool = False
    stats: StatsResponse | None = None


class EnrichmentStatusResponse(BaseModel):
    enabled: bool
    gateway: str
    available: bool
    model: str | None = None
    url: str | None = None
    stats: dict[str, int] = {}
