"""
Field Normalizer

Maps a raw decoder row into the canonical VehicleRecord schema. Decoder
implementations name their fields differently ("Body Class", "BodyClass",
"bodyClass"), so names are folded to lowercase alphanumerics before lookup.
"""

import logging
import math
import re
from datetime import date
from typing import Any, Dict, Mapping, Optional

from app.models.models import VehicleRecord, DRIVE_TYPES
from app.utils.vin_utils import decode_model_year

logger = logging.getLogger(__name__)

# Canonical field -> provider aliases, first match wins.
FIELD_ALIASES = {
    'year': ['ModelYear', 'Model Year', 'year', 'modelYear'],
    'make': ['Make', 'make'],
    'model': ['Model', 'model'],
    'trim': ['Trim', 'trim', 'Series', 'Trim2'],
    'body': ['BodyClass', 'Body Class', 'bodyClass', 'body', 'bodyStyle'],
    'doors': ['Doors', 'doors'],
    'drive': ['DriveType', 'Drive Type', 'driveType', 'drive', 'DriveTypePrimary'],
    'transmission': ['TransmissionStyle', 'Transmission Style', 'transmission', 'TransmissionDescriptor'],
    'fuel': ['FuelTypePrimary', 'Fuel Type - Primary', 'fuelType', 'fuel'],
    'cylinders': ['EngineCylinders', 'Engine Number of Cylinders', 'engineCylinders', 'cylinders'],
    'displacement': ['DisplacementL', 'Displacement (L)', 'displacementL', 'displacement'],
    'engineHp': ['EngineHP', 'Engine Brake (hp) From', 'engineHp', 'engineHP', 'horsepower'],
    'msrp': ['msrp', 'MSRP', 'BasePrice', 'Base Price ($)'],
}

STRING_FIELDS = ('make', 'model', 'trim', 'transmission', 'fuel')
INTEGER_FIELDS = ('doors', 'cylinders')
FLOAT_FIELDS = ('displacement', 'engineHp', 'msrp')

# vPIC fills unknown variables with these instead of leaving them empty.
PLACEHOLDER_VALUES = {'not applicable', 'none', 'null', 'n/a'}

# Ordered most specific first: "Hatchback/Liftback/Notchback" must not fall through to another class.
BODY_CLASS_PATTERNS = [
    ('Hatchback', ('hatchback', 'liftback')),
    ('Coupe', ('coupe',)),
    ('Convertible', ('convertible', 'cabriolet', 'roadster', 'spyder', 'spider')),
    ('Wagon', ('wagon',)),
    ('Pickup', ('pickup', 'truck')),
    ('Minivan', ('minivan',)),
    ('Van', ('van',)),
    ('SUV', ('sport utility', 'suv', 'crossover', 'cuv')),
    ('Sedan', ('sedan', 'saloon')),
]


def fold_key(name: str) -> str:
    return re.sub(r'[^a-z0-9]', '', str(name).lower())


def clean_text(value: Any) -> Optional[str]:
    """Trimmed string, or None for empty and placeholder values."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in PLACEHOLDER_VALUES:
        return None
    return text


def parse_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = clean_text(value)
        if text is None:
            return None
        try:
            number = float(text.replace(',', '').lstrip('$'))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def parse_int(value: Any) -> Optional[int]:
    number = parse_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def normalize_body(value: Any) -> Optional[str]:
    """Map a verbose body class ("Sedan/Saloon", "Sport Utility Vehicle (SUV)") to the canonical enum."""
    text = clean_text(value)
    if text is None:
        return None
    lowered = text.lower()
    for body, keywords in BODY_CLASS_PATTERNS:
        if any(keyword in lowered for keyword in keywords):
            return body
    return None


def normalize_drive(value: Any) -> Optional[str]:
    """Map a verbose drive string ("AWD/All-Wheel Drive") to FWD, RWD, AWD or 4WD."""
    text = clean_text(value)
    if text is None:
        return None
    upper = text.upper()
    if upper in DRIVE_TYPES:
        return upper
    lowered = text.lower()
    if any(k in lowered for k in ('4wd', '4x4', 'four-wheel', 'four wheel', '4-wheel')):
        return '4WD'
    if 'awd' in lowered or 'all' in lowered:
        return 'AWD'
    if 'rear' in lowered or 'rwd' in lowered:
        return 'RWD'
    if 'front' in lowered or 'fwd' in lowered:
        return 'FWD'
    return None


class FieldNormalizer:
    """Builds a draft VehicleRecord from a decoder row. Never raises on bad data."""

    def __init__(self, today=None):
        # Callable returning the reference date for model-year decoding.
        self._today = today or date.today

    def normalize(self, row: Optional[Mapping[str, Any]], vin: str) -> VehicleRecord:
        folded = self._fold_row(row or {})

        values: Dict[str, Any] = {'vin': vin}
        for field in STRING_FIELDS:
            values[field] = clean_text(self._pick(folded, field))
        for field in INTEGER_FIELDS:
            values[field] = parse_int(self._pick(folded, field))
        for field in FLOAT_FIELDS:
            values[field] = parse_float(self._pick(folded, field))

        values['body'] = normalize_body(self._pick(folded, 'body'))
        values['drive'] = normalize_drive(self._pick(folded, 'drive'))
        values['year'] = self._resolve_year(folded, vin)

        record = VehicleRecord(**values)
        record.title = record.build_title()
        logger.debug(f"Normalized draft for {vin}: {record.model_dump(exclude_none=True)}")
        return record

    def _resolve_year(self, folded: Dict[str, Any], vin: str) -> Optional[int]:
        year = parse_int(self._pick(folded, 'year'))
        if year:
            return year
        decoded = decode_model_year(vin, self._today())
        if decoded is not None:
            logger.info(f"Provider omitted model year for {vin}; decoded {decoded} from position 10")
        return decoded

    def _fold_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        folded = {}
        for key, value in row.items():
            folded.setdefault(fold_key(key), value)
        return folded

    def _pick(self, folded: Dict[str, Any], field: str) -> Any:
        for alias in FIELD_ALIASES[field]:
            value = folded.get(fold_key(alias))
            if clean_text(value) is not None:
                return value
        return None
