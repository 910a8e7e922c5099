"""
tests/test_export.py

Tests for stream/export.py — CSV layout.
"""

from __future__ import annotations

from aegis.backend.models import FlagType, Packet, ProtocolType, ServiceType, ThreatLabel
from aegis.backend.stream.export import CSV_COLUMNS, export_filename, to_csv

HEADER = "id,timestamp,duration,protocol_type,service,flag,src_bytes,dst_bytes,label,risk_score"


def make_packet(pid: str, analysis: str | None = None) -> Packet:
    return Packet(
        id=pid, timestamp="14:03:27", duration=12,
        protocol_type=ProtocolType.ICMP, service=ServiceType.SMTP, flag=FlagType.RSTR,
        src_bytes=300, dst_bytes=4000, label=ThreatLabel.TEARDROP, risk_score=81,
        analysis=analysis,
    )


class TestToCsv:

    def test_empty_snapshot_is_header_only(self):
        assert to_csv(()) == HEADER + "\n"

    def test_header_matches_columns(self):
        assert ",".join(CSV_COLUMNS) == HEADER

    def test_rows_in_snapshot_order(self):
        lines = to_csv([make_packet("b"), make_packet("a")]).splitlines()
        assert lines[0] == HEADER
        assert lines[1] == "b,14:03:27,12,icmp,smtp,RSTR,300,4000,teardrop,81"
        assert lines[2].startswith("a,")

    def test_analysis_excluded(self):
        out = to_csv([make_packet("p", analysis="Fragmented overlap, likely teardrop.")])
        assert "teardrop," in out
        assert "Fragmented" not in out


def test_export_filename():
    assert export_filename(now=1700000000.5) == "ids_capture_1700000000500.csv"
