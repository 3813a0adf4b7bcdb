"""
Enrichment Gate

Asks the generative assistant for attributes that are still missing after
classification. The assistant only sees facts that were already resolved, and
its answer is treated as untrusted input: the first JSON object in the reply
is decoded strictly, reduced to the allow-list and schema-validated. Any
failure means "no patch" and is never raised to the caller.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from app.models.models import EnrichmentPatch, VehicleRecord, ENRICHMENT_ALLOWED_FIELDS
from app.services.vehicle_resolution.errors import EnrichmentFailure

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('body', 'drive', 'transmission', 'fuel', 'cylinders', 'displacement', 'engineHp', 'msrp')

FACT_FIELDS = (
    'year', 'make', 'model', 'trim', 'body', 'style', 'doors', 'drive', 'transmission',
    'fuel', 'cylinders', 'displacement', 'engineHp', 'msrp',
)


class TextAssistant(Protocol):
    def complete(self, prompt: str) -> str:
        ...


@dataclass
class EnrichmentOutcome:
    enabled: bool = False
    attempted: bool = False
    succeeded: bool = False
    patch: Optional[EnrichmentPatch] = None


def missing_fields(record: VehicleRecord, summaries_enabled: bool = False, fields_enabled: bool = True) -> List[str]:
    fields = list(REQUIRED_FIELDS) if fields_enabled else []
    if summaries_enabled:
        fields.append('summary')
    return [f for f in fields if getattr(record, f) is None]


def known_facts(record: VehicleRecord) -> Dict[str, Any]:
    return {f: getattr(record, f) for f in FACT_FIELDS if getattr(record, f) is not None}


def allowed_keys(summaries_enabled: bool, fields_enabled: bool = True) -> List[str]:
    if not fields_enabled:
        return ['summary'] if summaries_enabled else []
    return [k for k in ENRICHMENT_ALLOWED_FIELDS if summaries_enabled or k != 'summary']


def build_prompt(record: VehicleRecord, missing: List[str], summaries_enabled: bool, fields_enabled: bool = True) -> str:
    keys = allowed_keys(summaries_enabled, fields_enabled)
    facts = json.dumps(known_facts(record), sort_keys=True)
    if fields_enabled:
        lines = [
            "Fill in missing specifications for the vehicle below.",
            f"Known facts (authoritative, do not contradict them): {facts}",
            f"Missing fields: {', '.join(missing)}",
            "Rules:",
            f"- Respond with exactly one JSON object using only these keys: {', '.join(keys)}.",
            "- Never contradict or repeat the known facts.",
            "- Omit any field you cannot infer with confidence. Do not guess.",
            "- body must be one of: Sedan, Coupe, Convertible, Hatchback, Wagon, SUV, Minivan, Van, Pickup.",
            "- drive must be one of: FWD, RWD, AWD, 4WD.",
            "- cylinders is an integer, displacement is in litres, engineHp and msrp are numbers.",
        ]
    else:
        lines = [
            "Summarize the vehicle below.",
            f"Known facts (authoritative, do not contradict them): {facts}",
            "Rules:",
            '- Respond with exactly one JSON object of the form {"summary": "..."}.',
            "- Use only the known facts.",
        ]
    if summaries_enabled:
        lines.append(
            "- summary: a concise, neutral 2-3 sentence description highlighting trim, engine, "
            "drivetrain and body style if available. Avoid marketing language."
        )
    return '\n'.join(lines)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Decode the first well-formed JSON object in free text.

    Surrounding prose and code fences are skipped; each '{' is tried as the
    start of a strict JSON document until one decodes to an object.
    """
    if not text:
        return None
    decoder = json.JSONDecoder()
    start = text.find('{')
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find('{', start + 1)
    return None


def parse_patch(text: str, summaries_enabled: bool, fields_enabled: bool = True) -> EnrichmentPatch:
    """
    Turn assistant text into a validated patch.

    Raises:
        EnrichmentFailure: If there is no JSON object or any allowed value is invalid.
    """
    payload = extract_json_object(text)
    if payload is None:
        raise EnrichmentFailure("No JSON object found in assistant response")

    keys = allowed_keys(summaries_enabled, fields_enabled)
    dropped = sorted(k for k in payload if k not in keys)
    if dropped:
        logger.info(f"Dropping keys outside the enrichment allow-list: {dropped}")
    filtered = {k: v for k, v in payload.items() if k in keys}

    try:
        return EnrichmentPatch(**filtered)
    except ValidationError as e:
        raise EnrichmentFailure(f"Assistant patch failed validation: {e.error_count()} error(s)") from e


class EnrichmentGate:
    """
    Decides whether to call the assistant and reduces its reply to a safe patch.

    `enabled` turns on attribute enrichment, `summaries_enabled` the summary;
    either one alone is enough to consult the assistant, which then only
    gets asked for (and may only return) the keys that are switched on.
    """

    def __init__(self, assistant: Optional[TextAssistant], enabled: bool = False, summaries_enabled: bool = False):
        self.assistant = assistant
        self.fields_enabled = enabled
        self.summaries_enabled = summaries_enabled
        self.enabled = (enabled or summaries_enabled) and assistant is not None

    def enrich(self, record: VehicleRecord) -> EnrichmentOutcome:
        outcome = EnrichmentOutcome(enabled=self.enabled)
        if not self.enabled:
            return outcome

        missing = missing_fields(record, self.summaries_enabled, self.fields_enabled)
        if not missing:
            logger.debug(f"No enrichment needed for {record.vin}")
            return outcome

        outcome.attempted = True
        try:
            prompt = build_prompt(record, missing, self.summaries_enabled, self.fields_enabled)
            reply = self.assistant.complete(prompt)
            patch = parse_patch(reply, self.summaries_enabled, self.fields_enabled)
        except Exception as e:
            logger.warning(f"Enrichment skipped for {record.vin}: {e}")
            return outcome

        proposed = patch.proposed()
        if not proposed:
            logger.info(f"Assistant proposed nothing for {record.vin}")
            return outcome

        logger.info(f"Assistant proposed {sorted(proposed)} for {record.vin} (missing: {missing})")
        outcome.succeeded = True
        outcome.patch = patch
        return outcome
