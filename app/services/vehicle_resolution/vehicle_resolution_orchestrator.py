"""
Vehicle Resolution Orchestrator

Coordinates the resolution pipeline for one VIN:
1. Validate the VIN (no network access for malformed input)
2. Return a cached result when one is fresh, unless a refresh is requested
3. Decode the VIN with the upstream decoder
4. Normalize the provider row into a draft record
5. Classify body style and drive type
6. Enrich still-missing fields with the assistant, if enabled
7. Reconcile everything, re-applying the physical guards last
8. Cache and return the result
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from app.models.models import EnrichmentStatus, ResolutionMeta, ResolutionResult
from app.services.vehicle_resolution.attribute_classifier import AttributeClassifier
from app.services.vehicle_resolution.enrichment_gate import EnrichmentGate
from app.services.vehicle_resolution.errors import (
    UnexpectedResolutionError,
    VehicleResolutionError,
    VinNotFoundError,
    VinValidationError,
)
from app.services.vehicle_resolution.field_normalizer import FieldNormalizer
from app.services.vehicle_resolution.reconciler import Reconciler
from app.services.vehicle_resolution.result_cache import ResultCache
from app.utils.settings import Settings
from app.utils.vin_utils import is_valid_vin, normalize_vin

logger = logging.getLogger(__name__)


class VehicleResolutionOrchestrator:
    """
    Resolves VINs into canonical vehicle records.

    Collaborators are injected so tests can substitute the decoder, the
    assistant gate and the cache clock.
    """

    def __init__(
        self,
        decoder: Any,
        enrichment_gate: Optional[EnrichmentGate] = None,
        cache: Optional[ResultCache] = None,
        normalizer: Optional[FieldNormalizer] = None,
        classifier: Optional[AttributeClassifier] = None,
        reconciler: Optional[Reconciler] = None,
    ):
        self.decoder = decoder
        self.enrichment_gate = enrichment_gate or EnrichmentGate(None)
        self.cache = cache if cache is not None else ResultCache()
        self.normalizer = normalizer or FieldNormalizer()
        self.classifier = classifier or AttributeClassifier()
        self.reconciler = reconciler or Reconciler()

    def resolve(self, vin: Any, refresh: bool = False) -> ResolutionResult:
        """
        Resolve a VIN.

        Args:
            vin: Raw VIN input; surrounding whitespace and case are ignored.
            refresh: Skip the cache read and resolve again. The new result is still cached.

        Returns:
            ResolutionResult with the record and resolution metadata.

        Raises:
            VinValidationError: Malformed VIN.
            UpstreamError: Decoder failure.
            VinNotFoundError: Decoder had no usable vehicle.
            UnexpectedResolutionError: Anything else.
        """
        normalized = normalize_vin(vin)
        if not is_valid_vin(normalized):
            logger.warning(f"Rejected malformed VIN: {normalized!r}")
            raise VinValidationError(normalized)

        if not refresh:
            cached = self.cache.get(normalized)
            if cached is not None:
                logger.info(f"VIN cache hit: {normalized}")
                cached.meta.cached = True
                return cached

        try:
            row = self.decoder.lookup_vin(normalized)
            result = self._resolve_row(normalized, row)
        except VehicleResolutionError:
            raise
        except Exception as e:
            logger.error(f"Unexpected failure resolving {normalized}: {e}", exc_info=True)
            raise UnexpectedResolutionError("Unexpected error while resolving VIN") from e

        self.cache.set(normalized, result)
        return result

    def _resolve_row(self, vin: str, row: Optional[Mapping[str, Any]]) -> ResolutionResult:
        draft = self.normalizer.normalize(row, vin)
        if not draft.make or not draft.model or draft.year is None:
            logger.info(f"Decoder returned no usable vehicle for {vin} (make={draft.make}, model={draft.model}, year={draft.year})")
            raise VinNotFoundError(vin)

        classification = self.classifier.classify(draft)
        classified, _ = self.reconciler.reconcile(draft, classification)

        outcome = self.enrichment_gate.enrich(classified)
        record, sources = self.reconciler.reconcile(draft, classification, outcome.patch)

        logger.info(
            f"Resolved {vin}: {record.title} body={record.body} drive={record.drive} "
            f"enrichment(attempted={outcome.attempted}, succeeded={outcome.succeeded})"
        )
        meta = ResolutionMeta(
            enrichment=EnrichmentStatus(
                enabled=outcome.enabled,
                attempted=outcome.attempted,
                succeeded=outcome.succeeded,
            ),
            sources=sources,
            body_votes=classification.body_votes,
            cached=False,
            resolved_at=datetime.now(timezone.utc).isoformat(),
        )
        return ResolutionResult(record=record, meta=meta)


_vehicle_resolver_instance: Optional[VehicleResolutionOrchestrator] = None


def build_vehicle_resolver(settings: Settings) -> VehicleResolutionOrchestrator:
    """Wire the pipeline from settings."""
    # Deferred: both clients import errors from this package.
    from app.services.enrichment.ai_assistant_service import AIAssistantService
    from app.services.vin_lookup_service import VinLookupService

    wants_assistant = settings.enrichment_enabled or settings.summaries_enabled
    assistant = AIAssistantService(settings) if wants_assistant else None
    if assistant is not None and not assistant.is_configured:
        logger.warning(f"AI enrichment or summaries enabled but no API key set for {settings.ai_provider}; assistant calls will be skipped")

    return VehicleResolutionOrchestrator(
        decoder=VinLookupService(settings),
        enrichment_gate=EnrichmentGate(
            assistant,
            enabled=settings.enrichment_enabled,
            summaries_enabled=settings.summaries_enabled,
        ),
        cache=ResultCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        ),
    )


def initialize_vehicle_resolver(settings: Optional[Settings] = None) -> None:
    """
    Initialize the global VehicleResolutionOrchestrator instance.
    Subsequent calls are ignored so the cache survives re-initialization.
    """
    global _vehicle_resolver_instance
    if _vehicle_resolver_instance is None:
        _vehicle_resolver_instance = build_vehicle_resolver(settings or Settings.from_env())
        logger.info("VehicleResolutionOrchestrator initialized")


def get_vehicle_resolver() -> VehicleResolutionOrchestrator:
    """
    Get the global VehicleResolutionOrchestrator instance, initializing it on first use.
    """
    global _vehicle_resolver_instance
    if _vehicle_resolver_instance is None:
        initialize_vehicle_resolver()
    return _vehicle_resolver_instance
