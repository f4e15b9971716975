"""
admission_leads/services/scoring_service.py — Business logic orchestrating the
submission → field mapping → scoring → DB persistence pipeline.

This is the "glue" layer that coordinates:
  - Building a LeadScoringService from a tenant's stored weight table
  - Mapping raw form fields onto standard lead fields
  - Scoring the lead and rejecting submissions without contact details
  - Saving the submission, the lead and the score snapshot
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from admission_leads.config import settings
from admission_leads.db.models import FormSubmission, Lead
from admission_leads.db.repository import (
    create_form_submission,
    create_lead,
    get_tenant_config,
    link_submission_to_lead,
    record_lead_score,
    save_tenant_config,
)
from admission_leads.ingestion.field_mapping import (
    MappedSubmission,
    extract_course_interest,
    extract_lead_source,
    map_form_data_to_lead,
    unwrap_form_values,
    validate_mapped_data,
)
from admission_leads.scoring.engine import LeadScoringService
from admission_leads.scoring.schemas import ScoringInput, ScoringResult
from admission_leads.scoring.weights import DEFAULT_SCORING_CONFIG, ScoringConfig, load_scoring_config

logger = logging.getLogger(__name__)


class SubmissionRejected(ValueError):
    """A submission is missing required contact fields and was not saved."""

    def __init__(self, missing_fields: list[str], completeness: int):
        super().__init__(f"Required fields missing: {', '.join(missing_fields)}")
        self.missing_fields = missing_fields
        self.completeness = completeness


@dataclass
class SubmissionOutcome:
    lead: Lead
    submission: FormSubmission
    result: ScoringResult
    mapping: MappedSubmission


# ── Engine construction ───────────────────────────────────────────────────────

@lru_cache(maxsize=1)
def get_fallback_config() -> ScoringConfig:
    """
    Weight table for tenants without a stored one: the JSON file named by
    SCORING_CONFIG_PATH if set, else DEFAULT_SCORING_CONFIG. Cached for the
    lifetime of the process.
    """
    if settings.scoring_config_path:
        return load_scoring_config(settings.scoring_config_path)
    return DEFAULT_SCORING_CONFIG


def build_scoring_service(db: Session, tenant_id: str) -> LeadScoringService:
    """Build a scoring engine for one tenant from its stored weight table."""
    stored = get_tenant_config(db, tenant_id)
    if stored is None:
        logger.debug("Tenant %s has no scoring config; using fallback.", tenant_id)
        return LeadScoringService(get_fallback_config())
    return LeadScoringService(stored)


def update_tenant_scoring_config(
    db: Session,
    tenant_id: str,
    partial: Mapping[str, Any],
) -> ScoringConfig:
    """
    Replace whole categories of a tenant's weight table and persist it.

    Raises:
        ConfigurationError: If `partial` names an unknown category or holds
                            invalid weights. Nothing is saved in that case.
    """
    service = build_scoring_service(db, tenant_id)
    service.update_config(partial)
    config = service.get_config()
    save_tenant_config(db, tenant_id, config.to_dict())
    return config


# ── Submission pipeline ───────────────────────────────────────────────────────

def build_scoring_input(
    form_type: str,
    mapping: MappedSubmission,
    form_values: dict[str, Any],
    response_time: Optional[float] = None,
    submission_time: Optional[datetime] = None,
) -> ScoringInput:
    """Assemble the engine input from a mapped submission."""
    budget = mapping.mapped_data.get("budget")
    fields: dict[str, Any] = {
        "form_type": form_type.lower(),
        "form_data": mapping.mapped_data,
        "source": extract_lead_source(form_values),
        "course_interest": extract_course_interest(form_values),
        "budget": str(budget) if budget else None,
        "response_time": response_time,
    }
    if submission_time is not None:
        fields["submission_time"] = submission_time
    return ScoringInput(**fields)


def score_submission(
    db: Session,
    tenant_id: str,
    form_type: str,
    form_data: dict[str, Any],
    response_time: Optional[float] = 0,
    scoring_service: Optional[LeadScoringService] = None,
    submission_time: Optional[datetime] = None,
) -> SubmissionOutcome:
    """
    Score a raw form submission and save it as a new lead.

    Args:
        db:              Open session; the caller commits.
        tenant_id:       Institution the form belongs to.
        form_type:       Form title, e.g. "Admission" (lowercased for scoring).
        form_data:       Raw posted values, either flat or {"values": ..., "fields": ...}.
        response_time:   Minutes until first contact. Widget submissions are
                         answered immediately, hence 0.
        scoring_service: Engine to use; built from the tenant's config if omitted.

    Returns:
        SubmissionOutcome with the saved lead, submission and score.

    Raises:
        SubmissionRejected: If name, email or phone is missing and
                            REJECT_INCOMPLETE_SUBMISSIONS is on.
    """
    service = scoring_service or build_scoring_service(db, tenant_id)

    form_values = unwrap_form_values(form_data)
    mapping = map_form_data_to_lead(form_values)
    scoring_input = build_scoring_input(
        form_type, mapping, form_values,
        response_time=response_time,
        submission_time=submission_time,
    )
    result = service.calculate_score(scoring_input)

    validation = validate_mapped_data(mapping.mapped_data)
    if not validation.is_valid and settings.reject_incomplete_submissions:
        logger.warning(
            "Rejected %s submission for tenant %s: missing %s.",
            form_type, tenant_id, validation.missing_fields,
        )
        raise SubmissionRejected(validation.missing_fields, validation.score)

    submission = create_form_submission(
        db,
        tenant_id=tenant_id,
        form_type=scoring_input.form_type,
        data=form_data,
        mapping_log=mapping.mapping_log,
        unmapped_fields=mapping.unmapped_fields,
    )
    lead = create_lead(
        db,
        tenant_id=tenant_id,
        source=scoring_input.source,
        name=mapping.mapped_data.get("name"),
        email=mapping.mapped_data.get("email"),
        phone=mapping.mapped_data.get("phone"),
        course_interest=scoring_input.course_interest,
        score=result.score,
    )
    link_submission_to_lead(db, submission, lead)
    record_lead_score(db, lead, result)

    logger.info(
        "Scored %s lead %d for tenant %s: %d/%d (%d%%)",
        scoring_input.form_type, lead.id, tenant_id,
        result.score, result.max_score, result.percentage,
    )
    return SubmissionOutcome(lead=lead, submission=submission, result=result, mapping=mapping)
