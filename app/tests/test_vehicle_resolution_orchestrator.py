import sys
import os
from datetime import date
from unittest.mock import MagicMock

import pytest

sys.path.append(os.getcwd())

from app.services.vehicle_resolution.enrichment_gate import EnrichmentGate
from app.services.vehicle_resolution.errors import (
    UnexpectedResolutionError,
    UpstreamError,
    VinNotFoundError,
    VinValidationError,
)
from app.services.vehicle_resolution.field_normalizer import FieldNormalizer
from app.services.vehicle_resolution.result_cache import ResultCache
from app.services.vehicle_resolution.vehicle_resolution_orchestrator import VehicleResolutionOrchestrator

VIN = "1HGCM82633A004352"

HONDA_ROW = {
    "Make": "HONDA",
    "Model": "Accord",
    "ModelYear": "2003",
    "Trim": "EX",
    "Doors": "4",
    "BodyClass": "Sedan/Saloon",
    "DriveType": "FWD/Front-Wheel Drive",
    "TransmissionStyle": "Automatic",
    "FuelTypePrimary": "Gasoline",
    "EngineCylinders": "4",
    "DisplacementL": "2.4",
    "EngineHP": "160",
}


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_decoder(row=None, error=None):
    decoder = MagicMock()
    if error is not None:
        decoder.lookup_vin.side_effect = error
    else:
        decoder.lookup_vin.return_value = row
    return decoder


def make_resolver(decoder, clock=None, gate=None):
    return VehicleResolutionOrchestrator(
        decoder=decoder,
        enrichment_gate=gate,
        cache=ResultCache(ttl_seconds=60, clock=clock or FakeClock()),
        normalizer=FieldNormalizer(today=lambda: date(2025, 6, 1)),
    )


def test_resolves_honda_accord():
    decoder = make_decoder(HONDA_ROW)
    result = make_resolver(decoder).resolve(VIN)
    record, meta = result.record, result.meta

    assert record.vin == VIN
    assert record.title == "2003 HONDA Accord EX"
    assert record.body == "Sedan"
    assert record.drive == "FWD"
    assert record.cylinders == 4
    assert meta.sources["body"] == "provider"
    assert meta.body_votes == {"Sedan": 3}
    assert meta.cached is False
    assert meta.enrichment.enabled is False
    assert meta.enrichment.attempted is False
    assert meta.resolved_at
    decoder.lookup_vin.assert_called_once_with(VIN)


@pytest.mark.parametrize("vin", [None, "", "1HGCM82633A00435", "1HGCM82633A0043521", "1HGCM82633I004352", "1HGCM8263OA004352", "1HGCM-2633A004352"])
def test_malformed_vin_never_reaches_decoder(vin):
    decoder = make_decoder(HONDA_ROW)
    with pytest.raises(VinValidationError):
        make_resolver(decoder).resolve(vin)
    decoder.lookup_vin.assert_not_called()


def test_input_is_trimmed_and_uppercased():
    decoder = make_decoder(HONDA_ROW)
    result = make_resolver(decoder).resolve("  1hgcm82633a004352 ")

    assert result.record.vin == VIN
    decoder.lookup_vin.assert_called_once_with(VIN)


def test_second_lookup_is_served_from_cache():
    decoder = make_decoder(HONDA_ROW)
    resolver = make_resolver(decoder)

    first = resolver.resolve(VIN)
    second = resolver.resolve(VIN.lower())

    assert decoder.lookup_vin.call_count == 1
    assert second.meta.cached is True
    assert second.record == first.record
    assert second.meta.sources == first.meta.sources


def test_refresh_bypasses_cache():
    decoder = make_decoder(HONDA_ROW)
    resolver = make_resolver(decoder)

    resolver.resolve(VIN)
    refreshed = resolver.resolve(VIN, refresh=True)

    assert decoder.lookup_vin.call_count == 2
    assert refreshed.meta.cached is False


def test_expired_entry_is_resolved_again():
    clock = FakeClock()
    decoder = make_decoder(HONDA_ROW)
    resolver = make_resolver(decoder, clock=clock)

    resolver.resolve(VIN)
    clock.now = 61
    result = resolver.resolve(VIN)

    assert decoder.lookup_vin.call_count == 2
    assert result.meta.cached is False


@pytest.mark.parametrize("row", [{}, None, {"Make": "HONDA"}, {"Model": "Accord", "ErrorCode": "8"}])
def test_row_without_make_or_model_is_not_found(row):
    with pytest.raises(VinNotFoundError):
        make_resolver(make_decoder(row)).resolve(VIN)


def test_upstream_failures_propagate_and_are_not_cached():
    decoder = make_decoder(error=UpstreamError("VIN decoder error: 503", status_code=503))
    resolver = make_resolver(decoder)

    with pytest.raises(UpstreamError):
        resolver.resolve(VIN)
    with pytest.raises(UpstreamError):
        resolver.resolve(VIN)
    assert decoder.lookup_vin.call_count == 2
    assert len(resolver.cache) == 0


def test_unexpected_errors_are_wrapped():
    decoder = make_decoder(error=KeyError("boom"))
    with pytest.raises(UnexpectedResolutionError):
        make_resolver(decoder).resolve(VIN)


def test_coupe_keyword_in_trim():
    row = {"Make": "FORD", "Model": "Mustang", "ModelYear": "2015", "Trim": "Coupe Special"}
    result = make_resolver(make_decoder(row)).resolve(VIN)

    assert result.record.body == "Coupe"
    assert result.meta.sources["body"] == "classifier"
    assert result.record.drive is None


def test_two_door_sedan_becomes_coupe():
    row = dict(HONDA_ROW, Doors="2")
    result = make_resolver(make_decoder(row)).resolve(VIN)

    assert result.record.body == "Coupe"
    assert result.meta.sources["body"] == "classifier"


def test_enrichment_fills_missing_fields():
    row = {"Make": "HONDA", "Model": "Accord", "ModelYear": "2003", "Doors": "4", "BodyClass": "Sedan"}
    assistant = MagicMock()
    assistant.complete.return_value = (
        '{"drive": "FWD", "transmission": "Automatic", "fuel": "Gasoline", '
        '"cylinders": 4, "displacement": 2.4, "engineHp": 160, "msrp": 22000, "body": "SUV"}'
    )
    gate = EnrichmentGate(assistant, enabled=True)
    result = make_resolver(make_decoder(row), gate=gate).resolve(VIN)

    record, meta = result.record, result.meta
    assert record.body == "Sedan"
    assert meta.sources["body"] == "provider"
    assert record.drive == "FWD"
    assert record.cylinders == 4
    assert record.msrp == 22000
    assert meta.sources["drive"] == "enrichment"
    assert meta.sources["cylinders"] == "enrichment"
    assert meta.enrichment.enabled is True
    assert meta.enrichment.attempted is True
    assert meta.enrichment.succeeded is True


def test_enrichment_failure_still_returns_record():
    row = {"Make": "HONDA", "Model": "Accord", "ModelYear": "2003", "Doors": "4", "BodyClass": "Sedan"}
    assistant = MagicMock()
    assistant.complete.side_effect = TimeoutError("assistant timed out")
    result = make_resolver(make_decoder(row), gate=EnrichmentGate(assistant, enabled=True)).resolve(VIN)

    assert result.record.body == "Sedan"
    assert result.record.drive is None
    assert result.meta.enrichment.attempted is True
    assert result.meta.enrichment.succeeded is False
    assert "enrichment" not in result.meta.sources.values()


def test_year_decoded_from_vin_when_missing():
    row = {"Make": "HONDA", "Model": "Accord"}
    result = make_resolver(make_decoder(row)).resolve("1HGCM8263LA004352")

    assert result.record.year == 2020
    assert result.record.title == "2020 HONDA Accord"


def test_two_door_coupe_special_with_blank_body():
    row = {"Make": "ACME", "Model": "Coupe Special", "ModelYear": "2010", "Doors": "2", "Body Class": ""}
    result = make_resolver(make_decoder(row)).resolve(VIN)

    assert result.record.body == "Coupe"
    assert result.record.doors == 2


def test_row_without_any_year_is_not_found():
    # Position 10 is '0', which is not a model-year code.
    decoder = make_decoder({"Make": "HONDA", "Model": "Accord"})
    resolver = make_resolver(decoder)

    with pytest.raises(VinNotFoundError):
        resolver.resolve("1HGCM82630A004352")
    assert len(resolver.cache) == 0


def test_summary_only_mode():
    assistant = MagicMock()
    assistant.complete.return_value = '{"summary": "A midsize front-drive sedan.", "drive": "AWD"}'
    gate = EnrichmentGate(assistant, enabled=False, summaries_enabled=True)
    row = {"Make": "HONDA", "Model": "Accord", "ModelYear": "2003", "Doors": "4", "BodyClass": "Sedan"}
    result = make_resolver(make_decoder(row), gate=gate).resolve(VIN)

    assert result.record.summary == "A midsize front-drive sedan."
    assert result.record.drive is None
    assert result.meta.sources["summary"] == "enrichment"
    assert result.meta.enrichment.enabled is True
    assert result.meta.enrichment.succeeded is True
