"""
api/routes/scan.py

POST /api/scan — run one scan cycle.

The request waits for the cycle to finish. While it is enriching, other
requests (GET /api/packets, WebSocket clients) keep being served and see
the unenriched batch. A scan requested during a running cycle is dropped
and answered with accepted=false.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ...metrics import METRICS
from ...stream.orchestrator import ScanOrchestrator
from ..serializers import ScanResponse, StatsResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/scan", tags=["scan"])


def _get_orchestrator() -> ScanOrchestrator:
    from ..main import get_orchestrator
    return get_orchestrator()


@router.post("", response_model=ScanResponse)
async def trigger_scan(
    orchestrator: ScanOrchestrator = Depends(_get_orchestrator),
) -> ScanResponse:
    result = await orchestrator.scan()
    if result is None:
        return ScanResponse(accepted=False, state=orchestrator.state.value)

    return ScanResponse(
        accepted=True,
        state=orchestrator.state.value,
        batch_ids=result.batch_ids,
        evicted_count=len(result.evicted),
        corrections_applied=result.corrections_applied,
        enrichment_failed=result.enrichment_failed,
        stats=StatsResponse.from_stats(
            result.stats,
            state=orchestrator.state.value,
            counters=orchestrator.counters,
            pipeline_stats=METRICS.as_dict(),
        ),
    )
