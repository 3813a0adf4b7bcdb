import sys
import os
from datetime import date

sys.path.append(os.getcwd())

from app.services.vehicle_resolution.field_normalizer import (
    FieldNormalizer,
    normalize_body,
    normalize_drive,
)

VIN = "1HGCM82633A004352"


def test_nhtsa_row():
    row = {
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
        "PlantCountry": "UNITED STATES (USA)",
    }
    record = FieldNormalizer().normalize(row, VIN)

    assert record.vin == VIN
    assert record.year == 2003
    assert record.make == "HONDA"
    assert record.model == "Accord"
    assert record.trim == "EX"
    assert record.doors == 4
    assert record.body == "Sedan"
    assert record.drive == "FWD"
    assert record.transmission == "Automatic"
    assert record.fuel == "Gasoline"
    assert record.cylinders == 4
    assert record.displacement == 2.4
    assert record.engineHp == 160.0
    assert record.msrp is None
    assert record.title == "2003 HONDA Accord EX"


def test_field_name_variants():
    row = {
        "make": "Toyota",
        "model": "Camry",
        "Model Year": 2020,
        "Body Class": "Sedan/Saloon",
        "Drive Type": "FWD",
        "displacement": "2.5",
        "Engine Number of Cylinders": 4,
        "Base Price ($)": "$25,000",
    }
    record = FieldNormalizer().normalize(row, VIN)

    assert record.year == 2020
    assert record.make == "Toyota"
    assert record.body == "Sedan"
    assert record.drive == "FWD"
    assert record.displacement == 2.5
    assert record.cylinders == 4
    assert record.msrp == 25000.0


def test_series_used_when_trim_missing():
    record = FieldNormalizer().normalize({"Make": "FORD", "Model": "F-150", "Trim": "", "Series": "XLT"}, VIN)
    assert record.trim == "XLT"


def test_blank_and_unparseable_values_become_none():
    row = {
        "Make": "  ",
        "Model": "Not Applicable",
        "Doors": "abc",
        "DisplacementL": "NaN",
        "EngineHP": "inf",
        "EngineCylinders": "4.5",
        "BodyClass": "Incomplete - Bus",
        "DriveType": "4x2",
    }
    record = FieldNormalizer().normalize(row, VIN)

    assert record.make is None
    assert record.model is None
    assert record.doors is None
    assert record.displacement is None
    assert record.engineHp is None
    assert record.cylinders is None
    assert record.body is None
    assert record.drive is None


def test_integral_float_strings_accepted():
    record = FieldNormalizer().normalize({"Doors": "2.0", "EngineCylinders": 6.0}, VIN)
    assert record.doors == 2
    assert record.cylinders == 6


def test_empty_row_never_fails():
    record = FieldNormalizer(today=lambda: date(2026, 10, 18)).normalize(None, VIN)
    assert record.vin == VIN
    assert record.make is None
    assert record.year == 2003  # decoded from the VIN
    assert record.title == "2003"


def test_year_decoded_from_vin_when_provider_omits_it():
    normalizer = FieldNormalizer(today=lambda: date(2026, 10, 18))
    record = normalizer.normalize({"Make": "HONDA", "Model": "Accord", "ModelYear": ""}, "1HGCM8263LA004352")
    assert record.year == 2020

    earlier = FieldNormalizer(today=lambda: date(2012, 1, 1))
    assert earlier.normalize({}, "1HGCM8263LA004352").year == 1990


def test_provider_year_preferred_over_vin():
    normalizer = FieldNormalizer(today=lambda: date(2026, 10, 18))
    record = normalizer.normalize({"ModelYear": "2004"}, "1HGCM82633A004352")
    assert record.year == 2004


def test_body_normalization_order():
    cases = {
        "Hatchback/Liftback/Notchback": "Hatchback",
        "Coupe": "Coupe",
        "Convertible/Cabriolet": "Convertible",
        "Roadster": "Convertible",
        "Wagon": "Wagon",
        "Pickup": "Pickup",
        "Minivan": "Minivan",
        "Cargo Van": "Van",
        "Sport Utility Vehicle (SUV)/Multi-Purpose Vehicle (MPV)": "SUV",
        "Crossover Utility Vehicle (CUV)": "SUV",
        "Sedan/Saloon": "Sedan",
        "SUV": "SUV",
        "Motorcycle - Standard": None,
        "": None,
        None: None,
    }
    for raw, expected in cases.items():
        assert normalize_body(raw) == expected, raw


def test_drive_normalization():
    cases = {
        "AWD/All-Wheel Drive": "AWD",
        "4WD/4-Wheel Drive/4x4": "4WD",
        "Four-Wheel Drive": "4WD",
        "RWD/Rear-Wheel Drive": "RWD",
        "Rear Wheel Drive": "RWD",
        "FWD/Front-Wheel Drive": "FWD",
        "awd": "AWD",
        "4wd": "4WD",
        "rwd": "RWD",
        "4x2": None,
        "": None,
    }
    for raw, expected in cases.items():
        assert normalize_drive(raw) == expected, raw
