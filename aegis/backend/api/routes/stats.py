"""
api/routes/stats.py

GET /api/stats — latest Stats snapshot + orchestrator state and counters
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...metrics import METRICS
from ...stream.orchestrator import ScanOrchestrator
from ..serializers import StatsResponse

router = APIRouter(prefix="/stats", tags=["stats"])


def _get_orchestrator() -> ScanOrchestrator:
    from ..main import get_orchestrator
    return get_orchestrator()


@router.get("", response_model=StatsResponse)
async def get_stats(
    orchestrator: ScanOrchestrator = Depends(_get_orchestrator),
) -> StatsResponse:
    """Return the stats computed at the end of the last completed cycle."""
    return StatsResponse.from_stats(
        orchestrator.stats,
        state=orchestrator.state.value,
        counters=dict(orchestrator.counters),
        pipeline_stats=METRICS.as_dict(),
    )
