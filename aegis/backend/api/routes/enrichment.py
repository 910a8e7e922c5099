"""
api/routes/enrichment.py

GET /api/enrichment/status — gateway kind, reachability and call statistics
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...enrichment import NullGateway, OllamaGateway
from ...stream.orchestrator import ScanOrchestrator
from ..serializers import EnrichmentStatusResponse

router = APIRouter(prefix="/enrichment", tags=["enrichment"])


def _get_orchestrator() -> ScanOrchestrator:
    from ..main import get_orchestrator
    return get_orchestrator()


@router.get("/status", response_model=EnrichmentStatusResponse)
async def enrichment_status(
    orchestrator: ScanOrchestrator = Depends(_get_orchestrator),
) -> EnrichmentStatusResponse:
    gateway = orchestrator.gateway
    if isinstance(gateway, NullGateway):
        return EnrichmentStatusResponse(enabled=False, gateway=gateway.name, available=False)

    available = await gateway.health_check()
    if isinstance(gateway, OllamaGateway):
        return EnrichmentStatusResponse(
            enabled=True,
            gateway=gateway.name,
            available=available,
            model=gateway.model,
            url=gateway.base_url,
            stats=dict(gateway.stats),
        )
    return EnrichmentStatusResponse(
        enabled=True,
        gateway=gateway.name or type(gateway).__name__,
        available=available,
    )
