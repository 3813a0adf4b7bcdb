from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, Optional, Literal

BODY_STYLES = ('Sedan', 'Coupe', 'Convertible', 'Hatchback', 'Wagon', 'SUV', 'Minivan', 'Van', 'Pickup')
DRIVE_TYPES = ('FWD', 'RWD', 'AWD', '4WD')

BodyStyle = Literal['Sedan', 'Coupe', 'Convertible', 'Hatchback', 'Wagon', 'SUV', 'Minivan', 'Van', 'Pickup']
DriveType = Literal['FWD', 'RWD', 'AWD', '4WD']
FieldSource = Literal['provider', 'classifier', 'enrichment']

# Fields the assistant may propose. Anything else it returns is dropped.
ENRICHMENT_ALLOWED_FIELDS = (
    'body', 'drive', 'transmission', 'fuel', 'cylinders', 'displacement',
    'engineHp', 'msrp', 'trim', 'style', 'summary',
)


class VehicleRecord(BaseModel):
    """Canonical vehicle attributes resolved for a single VIN."""
    vin: str
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    title: Optional[str] = None
    body: Optional[BodyStyle] = None
    style: Optional[str] = None
    doors: Optional[int] = None
    drive: Optional[DriveType] = None
    transmission: Optional[str] = None
    fuel: Optional[str] = None
    cylinders: Optional[int] = None
    displacement: Optional[float] = None
    engineHp: Optional[float] = None
    msrp: Optional[float] = None
    summary: Optional[str] = None

    def build_title(self) -> Optional[str]:
        parts = [str(p) for p in (self.year, self.make, self.model, self.trim) if p]
        return ' '.join(parts) if parts else None


class EnrichmentPatch(BaseModel):
    """
    Attributes proposed by the assistant for fields the structured signals left empty.

    Unknown keys are ignored. A value that fails validation rejects the whole patch.
    """
    body: Optional[BodyStyle] = None
    drive: Optional[DriveType] = None
    transmission: Optional[str] = None
    fuel: Optional[str] = None
    cylinders: Optional[int] = Field(None, ge=1, le=16)
    displacement: Optional[float] = Field(None, gt=0, le=10)
    engineHp: Optional[float] = Field(None, gt=0)
    msrp: Optional[float] = Field(None, gt=0)
    trim: Optional[str] = None
    style: Optional[str] = None
    summary: Optional[str] = None

    model_config = ConfigDict(extra='ignore')

    @field_validator('transmission', 'fuel', 'trim', 'style', 'summary', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator('body', mode='before')
    @classmethod
    def canonical_body(cls, value):
        # Deferred: the normalizer imports this module.
        from app.services.vehicle_resolution.field_normalizer import normalize_body
        if isinstance(value, str):
            return normalize_body(value) or (value if value.strip() else None)
        return value

    @field_validator('drive', mode='before')
    @classmethod
    def canonical_drive(cls, value):
        from app.services.vehicle_resolution.field_normalizer import normalize_drive
        if isinstance(value, str):
            return normalize_drive(value) or (value if value.strip() else None)
        return value

    def proposed(self) -> Dict[str, object]:
        """Only the fields the assistant actually filled."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


class EnrichmentStatus(BaseModel):
    enabled: bool = False
    attempted: bool = False
    succeeded: bool = False


class ResolutionMeta(BaseModel):
    enrichment: EnrichmentStatus = Field(default_factory=EnrichmentStatus)
    sources: Dict[str, FieldSource] = Field(default_factory=dict)
    body_votes: Dict[str, int] = Field(default_factory=dict)
    cached: bool = False
    resolved_at: Optional[str] = None


class ResolutionResult(BaseModel):
    record: VehicleRecord
    meta: ResolutionMeta


class VinResolveRequest(BaseModel):
    vin: Optional[str] = None
    refresh: bool = False


class VinResolveResponse(BaseModel):
    ok: bool = True
    data: VehicleRecord
    meta: ResolutionMeta
