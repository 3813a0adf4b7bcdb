from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from app.models.models import ResolutionResult, VinResolveRequest, VinResolveResponse
from app.services.vehicle_resolution.errors import (
    UpstreamError,
    VinNotFoundError,
    VinValidationError,
)
from app.services.vehicle_resolution.vehicle_resolution_orchestrator import (
    VehicleResolutionOrchestrator,
    get_vehicle_resolver,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vin", tags=["VIN"])


@router.get("", response_model=VinResolveResponse)
def resolve_vin_get(
    vin: Optional[str] = Query(None, description="17-character VIN"),
    refresh: bool = Query(False, description="Bypass the cached result"),
    resolver: VehicleResolutionOrchestrator = Depends(get_vehicle_resolver),
):
    """
    Resolve a VIN into a canonical vehicle record.
    """
    return _resolve(resolver, vin, refresh)


@router.post("", response_model=VinResolveResponse)
def resolve_vin_post(
    request: VinResolveRequest,
    resolver: VehicleResolutionOrchestrator = Depends(get_vehicle_resolver),
):
    """
    Resolve a VIN sent as a JSON body: {"vin": "...", "refresh": false}.
    """
    return _resolve(resolver, request.vin, request.refresh)


def _resolve(resolver: VehicleResolutionOrchestrator, vin: Optional[str], refresh: bool) -> VinResolveResponse:
    try:
        result: ResolutionResult = resolver.resolve(vin, refresh=refresh)
        return VinResolveResponse(ok=True, data=result.record, meta=result.meta)

    except VinValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VinNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UpstreamError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"VIN resolution failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An internal error occurred while resolving the VIN.")
