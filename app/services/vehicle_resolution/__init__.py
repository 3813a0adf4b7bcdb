"""
Vehicle Resolution Package

This package contains the VIN resolution pipeline:
1. Field Normalizer - Map a raw decoder row into the canonical record
2. Attribute Classifier - Weighted body vote, physical guards, drive resolution
3. Enrichment Gate - Bounded assistant fallback for still-missing fields
4. Reconciler - Merge order and final guards, with per-field provenance
5. Result Cache - TTL and capacity bounded memo keyed by VIN
6. Vehicle Resolution Orchestrator - End-to-end pipeline
"""

from .field_normalizer import FieldNormalizer
from .attribute_classifier import AttributeClassifier, Classification
from .enrichment_gate import EnrichmentGate, EnrichmentOutcome
from .reconciler import Reconciler
from .result_cache import ResultCache
from .vehicle_resolution_orchestrator import (
    VehicleResolutionOrchestrator,
    get_vehicle_resolver,
    initialize_vehicle_resolver,
)

__all__ = [
    'FieldNormalizer',
    'AttributeClassifier',
    'Classification',
    'EnrichmentGate',
    'EnrichmentOutcome',
    'Reconciler',
    'ResultCache',
    'VehicleResolutionOrchestrator',
    'get_vehicle_resolver',
    'initialize_vehicle_resolver',
]
