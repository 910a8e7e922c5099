"""
stream/stats.py

Statistics aggregator — recomputes Stats from scratch for one snapshot.

Must be handed a snapshot taken after the cycle's append + merge have
settled; it holds no state of its own.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..models import Packet, Stats


def _round_half_up(total: int, count: int) -> int:
    # Exact integer rounding of total/count; both are non-negative.
    return (2 * total + count) // (2 * count)


def recompute(snapshot: Sequence[Packet], now: datetime | None = None) -> Stats:
    """Return Stats for snapshot. average_risk is 0 for an empty snapshot."""
    total = len(snapshot)
    threats = sum(1 for p in snapshot if p.is_threat)
    average = _round_half_up(sum(p.risk_score for p in snapshot), total) if total else 0
    return Stats(
        total_scanned=total,
        threats_detected=threats,
        average_risk=average,
        last_update=(now or datetime.now()).strftime("%H:%M:%S"),
    )
