"""
stream/export.py

CSV export of a buffer snapshot. Format only — `analysis` is never exported.
"""

from __future__ import annotations

import csv
import io
import time
from typing import Sequence

from ..models import Packet

CSV_COLUMNS: tuple[str, ...] = (
    "id",
    "timestamp",
    "duration",
    "protocol_type",
    "service",
    "flag",
    "src_bytes",
    "dst_bytes",
    "label",
    "risk_score",
)


def to_csv(snapshot: Sequence[Packet]) -> str:
    """Header row plus one row per packet, in snapshot order."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for p in snapshot:
        d = p.to_dict()
        writer.writerow([d[col] for col in CSV_COLUMNS])
    return out.getvalue()


def export_filename(now: float | None = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"ids_capture_{millis}.csv"
