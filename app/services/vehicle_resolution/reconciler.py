import logging
from typing import Dict, Optional, Tuple

from app.models.models import EnrichmentPatch, VehicleRecord
from app.services.vehicle_resolution.attribute_classifier import (
    Classification,
    accept_proposed_cylinders,
    apply_body_guards,
    has_convertible_keyword,
)

logger = logging.getLogger(__name__)

CLASSIFIED_FIELDS = ('body', 'style', 'drive')
UNTRACKED_FIELDS = ('vin', 'title')


class Reconciler:
    """
    Merges normalizer, classifier and enrichment output into the final record.

    Merge order:
      1. normalizer values are the base
      2. classifier body/style/drive overwrite them
      3. the enrichment patch fills fields that are still null
      4. body guards are applied again, last and unconditionally

    Alongside the record it returns the source of every non-null field.
    """

    def reconcile(
        self,
        draft: VehicleRecord,
        classification: Classification,
        patch: Optional[EnrichmentPatch] = None,
    ) -> Tuple[VehicleRecord, Dict[str, str]]:
        values = draft.model_dump()
        sources = {
            name: 'provider'
            for name, value in values.items()
            if value is not None and name not in UNTRACKED_FIELDS
        }

        for name in CLASSIFIED_FIELDS:
            derived = getattr(classification, name)
            if derived is not None and derived != values[name]:
                values[name] = derived
                sources[name] = 'classifier'

        if patch is not None:
            self._apply_patch(values, sources, patch)

        record = VehicleRecord(**values)
        # Enriched trim can carry the convertible keyword too.
        convertible = classification.convertible_keyword or has_convertible_keyword(record)
        guarded = apply_body_guards(record.body, record.doors, convertible)
        if guarded != record.body:
            logger.info(f"Final guard set body {record.body} -> {guarded} for {draft.vin}")
            record.body = guarded
            sources['body'] = 'classifier'

        record.title = record.build_title()
        return record, sources

    def _apply_patch(self, values: Dict, sources: Dict[str, str], patch: EnrichmentPatch) -> None:
        proposed = patch.proposed()
        for name, value in proposed.items():
            if name == 'cylinders':
                continue
            if values.get(name) is None:
                values[name] = value
                sources[name] = 'enrichment'

        # The one narrow case where a proposal may replace a provider value.
        cylinders = proposed.get('cylinders')
        if accept_proposed_cylinders(values['cylinders'], values['displacement'], cylinders):
            if values['cylinders'] is None:
                sources['cylinders'] = 'enrichment'
            else:
                logger.info(f"Correcting cylinders {values['cylinders']} -> {cylinders} (displacement={values['displacement']})")
                sources['cylinders'] = 'classifier'
            values['cylinders'] = cylinders
