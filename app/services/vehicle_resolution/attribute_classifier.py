"""
Attribute Classifier

Resolves body style and drive type from several independent signals instead of
trusting a single decoder field.

Body style is a weighted vote. Each entry of BODY_SIGNALS is evaluated in order
and may nominate one body style; nominations add the signal's weight to that
style's tally. The highest tally wins. On a tie, the style whose first
nomination came from the earliest signal in BODY_SIGNALS wins.

Two physical guards run after the vote and cannot be outvoted:
  (a) exactly two doors and no convertible keyword -> Coupe
  (b) a convertible keyword in make/model/trim -> Convertible
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from app.models.models import VehicleRecord

logger = logging.getLogger(__name__)

CONVERTIBLE_PATTERN = re.compile(
    r'\b(convertible|cabriolet|cabrio|roadster|spyder|spider|volante|drophead)\b', re.IGNORECASE
)

# Broader, lower-trust free-text patterns over model and trim. Order matters on ties.
MODEL_KEYWORD_PATTERNS = [
    ('Hatchback', re.compile(r'\b(hatchback|hatch|liftback)\b', re.IGNORECASE)),
    ('Wagon', re.compile(r'\b(wagon|estate|avant|sportwagen)\b', re.IGNORECASE)),
    ('SUV', re.compile(r'\b(suv|crossover)\b', re.IGNORECASE)),
    ('Sedan', re.compile(r'\b(sedan|saloon)\b', re.IGNORECASE)),
    ('Coupe', re.compile(r'\bcoup[eé]\b', re.IGNORECASE)),
    ('Minivan', re.compile(r'\bminivan\b', re.IGNORECASE)),
    ('Van', re.compile(r'\bvan\b', re.IGNORECASE)),
    ('Pickup', re.compile(r'\b(pickup|truck)\b', re.IGNORECASE)),
]

AWD_BADGE_PATTERN = re.compile(
    r'(quattro|\bxdrive|4matic|4motion|sh-awd|\ball4\b|\bq4\b|\bawd\b|all[- ]wheel)', re.IGNORECASE
)

REAR_DRIVE_MARQUES = {
    'BMW', 'MERCEDES-BENZ', 'MERCEDES', 'LEXUS', 'INFINITI', 'JAGUAR', 'PORSCHE',
    'ASTON MARTIN', 'MASERATI', 'ALFA ROMEO', 'GENESIS',
}

GENERIC_CYLINDER_DEFAULT = 4
SIX_CYLINDER_DISPLACEMENT_L = (2.8, 3.2)


@dataclass(frozen=True)
class KnownModel:
    """A nameplate whose marketing name misleads generic classifiers."""
    make: re.Pattern
    model: re.Pattern
    body: str
    style: str


def _known(make: str, model: str, body: str, style: str) -> KnownModel:
    return KnownModel(re.compile(make, re.IGNORECASE), re.compile(model, re.IGNORECASE), body, style)


KNOWN_MODELS = [
    _known(r'mercedes', r'\bcls\b', 'Sedan', '4-Door Coupe'),
    _known(r'mercedes', r'\bcla\b', 'Sedan', '4-Door Coupe'),
    _known(r'mercedes', r'\bgt\s*(43|53|63)\b|4-door coup', 'Sedan', '4-Door Coupe'),
    _known(r'\bbmw\b', r'gran coup', 'Hatchback', 'Gran Coupe'),
    _known(r'\bbmw\b', r'gran turismo|\bgt\b', 'Hatchback', 'Gran Turismo'),
    _known(r'\baudi\b', r'sportback', 'Hatchback', 'Sportback'),
    _known(r'porsche', r'panamera', 'Hatchback', 'Liftback'),
    _known(r'\bkia\b', r'stinger', 'Hatchback', 'Fastback'),
    _known(r'volkswagen', r'\barteon\b', 'Hatchback', 'Fastback'),
    _known(r'\bmini\b', r'clubman', 'Wagon', 'Clubman'),
]


@dataclass
class SignalContext:
    record: VehicleRecord
    model_text: str
    convertible: bool
    known_model: Optional[KnownModel]


@dataclass
class Classification:
    body: Optional[str] = None
    style: Optional[str] = None
    drive: Optional[str] = None
    body_votes: Dict[str, int] = field(default_factory=dict)
    nominations: List[Tuple[str, str]] = field(default_factory=list)
    convertible_keyword: bool = False


def _join(*parts) -> str:
    return ' '.join(str(p) for p in parts if p)


def has_convertible_keyword(record: VehicleRecord) -> bool:
    return CONVERTIBLE_PATTERN.search(_join(record.make, record.model, record.trim)) is not None


def find_known_model(record: VehicleRecord) -> Optional[KnownModel]:
    model_text = _join(record.model, record.trim)
    for entry in KNOWN_MODELS:
        if record.make and entry.make.search(record.make) and entry.model.search(model_text):
            return entry
    return None


def _provider_body(ctx: SignalContext) -> Optional[str]:
    return ctx.record.body


def _convertible_keyword(ctx: SignalContext) -> Optional[str]:
    return 'Convertible' if ctx.convertible else None


def _two_door(ctx: SignalContext) -> Optional[str]:
    return 'Coupe' if ctx.record.doors == 2 and not ctx.convertible else None


def _model_keyword(ctx: SignalContext) -> Optional[str]:
    for body, pattern in MODEL_KEYWORD_PATTERNS:
        if pattern.search(ctx.model_text):
            return body
    return None


def _known_model(ctx: SignalContext) -> Optional[str]:
    return ctx.known_model.body if ctx.known_model else None


# (signal, weight, evaluator), evaluated in this order. Earlier signals win ties.
BODY_SIGNALS: List[Tuple[str, int, Callable[[SignalContext], Optional[str]]]] = [
    ('provider_body', 3, _provider_body),
    ('convertible_keyword', 3, _convertible_keyword),
    ('two_door', 3, _two_door),
    ('model_keyword', 2, _model_keyword),
    ('known_model', 3, _known_model),
]


def tally_body_votes(ctx: SignalContext, signals=None) -> Tuple[Optional[str], Dict[str, int], List[Tuple[str, str]]]:
    """
    Evaluate the body signals into a tally.

    Returns:
        (winner, votes by body style, [(signal name, nominated body), ...])
    """
    votes: Dict[str, int] = {}
    first_nomination: Dict[str, int] = {}
    nominations = []

    for index, (name, weight, evaluate) in enumerate(signals or BODY_SIGNALS):
        body = evaluate(ctx)
        if not body:
            continue
        nominations.append((name, body))
        votes[body] = votes.get(body, 0) + weight
        first_nomination.setdefault(body, index)

    if not votes:
        return None, votes, nominations
    winner = min(votes, key=lambda b: (-votes[b], first_nomination[b]))
    return winner, votes, nominations


def apply_body_guards(body: Optional[str], doors: Optional[int], convertible: bool) -> Optional[str]:
    if doors == 2 and not convertible:
        body = 'Coupe'
    if convertible:
        body = 'Convertible'
    return body


def resolve_drive(record: VehicleRecord, body: Optional[str]) -> Optional[str]:
    """Provider drive when known, else an AWD badge, else the rear-drive coupe default."""
    if record.drive:
        return record.drive
    if AWD_BADGE_PATTERN.search(_join(record.make, record.model, record.trim)):
        return 'AWD'
    if body == 'Coupe' and record.make and record.make.strip().upper() in REAR_DRIVE_MARQUES:
        return 'RWD'
    return None


def accept_proposed_cylinders(current: Optional[int], displacement: Optional[float], proposed: Optional[int]) -> bool:
    """
    Whether an assistant-proposed cylinder count should replace the provider's.

    Only when the provider value is missing, is the generic default of 4, or
    contradicts a 2.8-3.2 L displacement that points at a six-cylinder engine,
    in which case only a proposal of 6 is a correction.
    """
    if proposed is None or proposed == current:
        return False
    if current is None or current == GENERIC_CYLINDER_DEFAULT:
        return True
    low, high = SIX_CYLINDER_DISPLACEMENT_L
    return displacement is not None and low <= displacement <= high and current != 6 and proposed == 6


class AttributeClassifier:
    """Weighted voting and guard engine for body style and drive type."""

    def classify(self, draft: VehicleRecord) -> Classification:
        convertible = has_convertible_keyword(draft)
        known_model = find_known_model(draft)
        ctx = SignalContext(
            record=draft,
            model_text=_join(draft.model, draft.trim),
            convertible=convertible,
            known_model=known_model,
        )

        voted, votes, nominations = tally_body_votes(ctx)
        body = apply_body_guards(voted, draft.doors, convertible)
        if body != voted:
            logger.info(f"Body guard changed {draft.vin}: vote={voted} -> {body} (doors={draft.doors}, convertible={convertible})")

        drive = resolve_drive(draft, body)
        style = known_model.style if known_model else draft.style

        logger.debug(f"Body votes for {draft.vin}: {votes} via {nominations}; drive={drive}")
        return Classification(
            body=body,
            style=style,
            drive=drive,
            body_votes=votes,
            nominations=nominations,
            convertible_keyword=convertible,
        )
