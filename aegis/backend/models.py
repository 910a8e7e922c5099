"""
backend/models.py

Shared dataclasses for every stage of the scan cycle.

Packet     — one synthetic network event, the unit held by the StreamBuffer
Correction — one enrichment result (refined risk_score + analysis) for a Packet
Stats      — derived summary recomputed from a buffer snapshot
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Closed enumerations
# ---------------------------------------------------------------------------

class ProtocolType(str, Enum):
    TCP  = "tcp"
    UDP  = "udp"
    ICMP = "icmp"


class ServiceType(str, Enum):
    HTTP   = "http"
    FTP    = "ftp"
    SMTP   = "smtp"
    DNS    = "dns"
    TELNET = "telnet"


class FlagType(str, Enum):
    SF   = "SF"
    S0   = "S0"
    REJ  = "REJ"
    RSTR = "RSTR"


class ThreatLabel(str, Enum):
    NORMAL   = "normal"
    NEPTUNE  = "neptune"
    SMURF    = "smurf"
    BACKDOOR = "backdoor"
    TEARDROP = "teardrop"
    POD      = "pod"

    @property
    def is_attack(self) -> bool:
        return self is not ThreatLabel.NORMAL


ATTACK_LABELS: tuple[ThreatLabel, ...] = tuple(
    label for label in ThreatLabel if label.is_attack
)

MIN_RISK = 0
MAX_RISK = 100


# ---------------------------------------------------------------------------
# Packet
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Packet:
    """A single synthetic network event."""

    id: str
    """Opaque unique identifier; the merge key inside the StreamBuffer."""

    timestamp: str
    """Human-readable capture time, e.g. '14:03:27'. Display only."""

    duration: int
    protocol_type: ProtocolType
    service: ServiceType
    flag: FlagType
    src_bytes: int
    dst_bytes: int
    label: ThreatLabel

    risk_score: int
    """0–100. Only enrichment merge may overwrite it after creation."""

    analysis: str | None = None
    """Set by enrichment merge only."""

    @property
    def is_threat(self) -> bool:
        return self.label.is_attack

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["protocol_type"] = self.protocol_type.value
        d["service"] = self.service.value
        d["flag"] = self.flag.value
        d["label"] = self.label.value
        return d

    def __repr__(self) -> str:
        return (
            f"Packet({self.id!r} {self.protocol_type.value}/{self.service.value} "
            f"{self.label.value} risk={self.risk_score})"
        )


# ---------------------------------------------------------------------------
# Correction: one row of an enrichment response
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Correction:
    id: str
    risk_score: int
    analysis: str


# ---------------------------------------------------------------------------
# Stats: pure function of a buffer snapshot, never mutated
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Stats:
    total_scanned: int = 0
    threats_detected: int = 0
    average_risk: int = 0
    last_update: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Camel-cased keys, as consumed by the dashboard."""
        return {
            "totalScanned": self.total_scanned,
            "threatsDetected": self.threats_detected,
            "averageRisk": self.average_risk,
            "lastUpdate": self.last_update,
        }
