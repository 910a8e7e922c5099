"""
enrichment/gateway.py

Abstract base class that every enrichment gateway must implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..models import Correction, Packet


class EnrichmentError(Exception):
    """The gateway could not produce corrections (transport or parse failure)."""


class EnrichmentGateway(ABC):
    """
    Contract consumed by the ScanOrchestrator.

    classify() may:
        - return corrections for any subset of the batch's ids
        - return an empty list
        - raise (EnrichmentError, asyncio.TimeoutError, anything else)
    The orchestrator treats every failure as "no corrections".
    """

    name: str = ""

    @abstractmethod
    async def classify(self, batch: Sequence[Packet]) -> list[Correction]:
        ...

    async def health_check(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"<Gateway:{self.name}>"


class NullGateway(EnrichmentGateway):
    """Used when enrichment is disabled: packets keep their synthesized scores."""

    name = "disabled"

    async def classify(self, batch: Sequence[Packet]) -> list[Correction]:
        return []
