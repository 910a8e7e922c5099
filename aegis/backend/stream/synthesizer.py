"""
stream/synthesizer.py

PacketSynthesizer — produces plausible synthetic packets.

Generation policy:
  - With probability attack_probability (default 0.2) the packet is an
    attack: label drawn uniformly from the attack families, risk 50–99.
  - Otherwise label is 'normal' and risk is 0–19.
  - Protocol, service, flag, duration and byte counts are drawn
    independently and uniformly.

The random source is injectable: pass random.Random(seed) for
deterministic batches (ids included) in tests and replays.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable

from ..models import (
    ATTACK_LABELS,
    FlagType,
    Packet,
    ProtocolType,
    ServiceType,
    ThreatLabel,
)

_PROTOCOLS = tuple(ProtocolType)
_SERVICES = tuple(ServiceType)
_FLAGS = tuple(FlagType)

_MAX_DURATION = 999
_MAX_BYTES = 4999
_ID_BITS = 48


class PacketSynthesizer:
    """
    Args:
        rng:                Random source. Defaults to a fresh unseeded Random.
        attack_probability: Chance that a generated packet is an attack.
        clock:              Returns the capture time used for Packet.timestamp.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        attack_probability: float = 0.2,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if not 0.0 <= attack_probability <= 1.0:
            raise ValueError(f"attack_probability must be in [0, 1], got {attack_probability}")
        self._rng = rng or random.Random()
        self.attack_probability = attack_probability
        self._clock = clock

    def generate(self) -> Packet:
        rng = self._rng
        is_attack = rng.random() < self.attack_probability
        if is_attack:
            label = rng.choice(ATTACK_LABELS)
            risk_score = rng.randint(50, 99)
        else:
            label = ThreatLabel.NORMAL
            risk_score = rng.randint(0, 19)

        return Packet(
            id=f"{rng.getrandbits(_ID_BITS):012x}",
            timestamp=self._clock().strftime("%H:%M:%S"),
            duration=rng.randint(0, _MAX_DURATION),
            protocol_type=rng.choice(_PROTOCOLS),
            service=rng.choice(_SERVICES),
            flag=rng.choice(_FLAGS),
            src_bytes=rng.randint(0, _MAX_BYTES),
            dst_bytes=rng.randint(0, _MAX_BYTES),
            label=label,
            risk_score=risk_score,
        )

    def generate_batch(self, n: int) -> list[Packet]:
        """Return n freshly generated packets, in generation order."""
        if n < 0:
            raise ValueError(f"batch size must be >= 0, got {n}")
        return [self.generate() for _ in range(n)]
