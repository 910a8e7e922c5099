"""
tests/test_stats.py

Tests for stream/stats.py — pure recomputation from a snapshot.
"""

from __future__ import annotations

import random
from datetime import datetime

from aegis.backend.models import FlagType, Packet, ProtocolType, ServiceType, Stats, ThreatLabel
from aegis.backend.stream.stats import recompute
from aegis.backend.stream.synthesizer import PacketSynthesizer


def make_packet(pid: str, risk: int, label: ThreatLabel = ThreatLabel.NORMAL) -> Packet:
    return Packet(
        id=pid, timestamp="00:00:00", duration=0,
        protocol_type=ProtocolType.UDP, service=ServiceType.DNS, flag=FlagType.SF,
        src_bytes=0, dst_bytes=0, label=label, risk_score=risk,
    )


class TestRecompute:

    def test_empty_snapshot(self):
        stats = recompute(())
        assert stats.total_scanned == 0
        assert stats.threats_detected == 0
        assert stats.average_risk == 0

    def test_counts_and_average(self):
        snap = [
            make_packet("a", 10),
            make_packet("b", 80, ThreatLabel.SMURF),
            make_packet("c", 60, ThreatLabel.POD),
        ]
        stats = recompute(snap)
        assert stats.total_scanned == 3
        assert stats.threats_detected == 2
        assert stats.average_risk == 50

    def test_half_rounds_up(self):
        stats = recompute([make_packet("a", 1), make_packet("b", 2)])
        assert stats.average_risk == 2

    def test_below_half_rounds_down(self):
        stats = recompute([make_packet(str(i), r) for i, r in enumerate((1, 1, 1, 2))])
        assert stats.average_risk == 1

    def test_last_update_uses_given_time(self):
        stats = recompute([], now=datetime(2025, 6, 1, 9, 5, 3))
        assert stats.last_update == "09:05:03"

    def test_consistency_over_random_snapshots(self):
        synth = PacketSynthesizer(rng=random.Random(99))
        for size in (1, 7, 8, 50, 100):
            snap = synth.generate_batch(size)
            stats = recompute(snap)
            assert stats.threats_detected <= stats.total_scanned == size
            mean = sum(p.risk_score for p in snap) / size
            assert abs(stats.average_risk - mean) <= 0.5

    def test_to_dict_keys(self):
        d = Stats(1, 0, 5, "10:00:00").to_dict()
        assert d == {
            "totalScanned": 1,
            "threatsDetected": 0,
            "averageRisk": 5,
            "lastUpdate": "10:00:00",
        }
