from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.services.health_service import (
    HealthService,
    get_health_service,
)

router = APIRouter(prefix="/health", tags=["Health"])

class HealthResponse(BaseModel):
    status: str
    decoder_provider: str
    enrichment_enabled: bool
    summaries_enabled: bool
    ai_provider: str
    ai_model: str
    has_ai_key: bool

@router.get("", response_model=HealthResponse)
async def resolver_health(health_service: HealthService = Depends(get_health_service)):
    """
    Liveness plus the active decoder provider and AI enrichment configuration.
    """
    return health_service.get_health_status()
