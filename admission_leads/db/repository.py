"""
admission_leads/db/repository.py — All database read/write operations.

Business logic should never write raw ORM queries directly; everything goes
through this module. This keeps DB logic centralized and easy to test/mock.
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from admission_leads.db.models import FormSubmission, Lead, LeadScore, LeadStatus, ScoringConfigRecord
from admission_leads.scoring.schemas import ScoringResult

logger = logging.getLogger(__name__)


# ── Scoring config ────────────────────────────────────────────────────────────

def get_tenant_config(db: Session, tenant_id: str) -> Optional[dict[str, Any]]:
    """Return the tenant's stored weight table as a dict, or None if it has none."""
    record = db.query(ScoringConfigRecord).filter(ScoringConfigRecord.tenant_id == tenant_id).first()
    if record is None:
        return None
    return json.loads(record.config)


def save_tenant_config(db: Session, tenant_id: str, config: dict[str, Any]) -> ScoringConfigRecord:
    """Create or replace the tenant's weight table."""
    record = db.query(ScoringConfigRecord).filter(ScoringConfigRecord.tenant_id == tenant_id).first()
    payload = json.dumps(config)

    if record is None:
        record = ScoringConfigRecord(tenant_id=tenant_id, config=payload)
        db.add(record)
    else:
        record.config = payload

    db.flush()
    logger.info("Saved scoring config for tenant %s", tenant_id)
    return record


# ── Form submission ───────────────────────────────────────────────────────────

def create_form_submission(
    db: Session,
    tenant_id: str,
    form_type: str,
    data: dict[str, Any],
    mapping_log: list[str],
    unmapped_fields: dict[str, Any],
) -> FormSubmission:
    """Persist the raw submission alongside how its fields were mapped."""
    submission = FormSubmission(
        tenant_id=tenant_id,
        form_type=form_type,
        data=json.dumps(data, default=str),
        mapping_log=json.dumps(mapping_log),
        unmapped_fields=json.dumps(unmapped_fields, default=str),
    )
    db.add(submission)
    db.flush()
    return submission


def link_submission_to_lead(db: Session, submission: FormSubmission, lead: Lead) -> None:
    submission.lead_id = lead.id
    db.flush()


# ── Lead ─────────────────────────────────────────────────────────────────────

def create_lead(
    db: Session,
    tenant_id: str,
    source: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    course_interest: Optional[str] = None,
    score: int = 0,
) -> Lead:
    """Create and persist a new Lead with status NEW."""
    lead = Lead(
        tenant_id=tenant_id,
        name=name,
        email=email,
        phone=phone,
        source=source,
        course_interest=course_interest,
        status=LeadStatus.NEW,
        score=score,
    )
    db.add(lead)
    db.flush()
    logger.info("Lead created: %s via %s (score=%d)", name, source, score)
    return lead


def get_leads_by_status(db: Session, tenant_id: str, status: LeadStatus, limit: int = 50) -> list[Lead]:
    """Fetch a tenant's leads filtered by status."""
    return (
        db.query(Lead)
        .filter(Lead.tenant_id == tenant_id, Lead.status == status)
        .order_by(Lead.created_at.asc())
        .limit(limit)
        .all()
    )


def get_top_scored_leads(db: Session, tenant_id: str, limit: int = 20) -> list[Lead]:
    """A tenant's highest-scoring NEW leads, i.e. the telecaller call queue."""
    return (
        db.query(Lead)
        .filter(Lead.tenant_id == tenant_id, Lead.status == LeadStatus.NEW)
        .order_by(Lead.score.desc(), Lead.id.asc())
        .limit(limit)
        .all()
    )


def update_lead_status(db: Session, lead_id: int, status: LeadStatus) -> None:
    """Update the status of a lead."""
    db.query(Lead).filter(Lead.id == lead_id).update({"status": status})
    logger.debug("Lead %d status → %s", lead_id, status)


# ── Lead score ────────────────────────────────────────────────────────────────

def record_lead_score(db: Session, lead: Lead, result: ScoringResult) -> LeadScore:
    """Store a scoring snapshot and copy the total onto the lead."""
    snapshot = LeadScore(
        lead_id=lead.id,
        score=result.score,
        max_score=result.max_score,
        percentage=result.percentage,
        breakdown=json.dumps(result.breakdown.to_dict()),
        factors=json.dumps(result.factors),
        recommendations=json.dumps(result.recommendations),
    )
    lead.score = result.score
    db.add(snapshot)
    db.flush()
    logger.debug("Lead %d scored %d/%d", lead.id, result.score, result.max_score)
    return snapshot


def get_latest_lead_score(db: Session, lead_id: int) -> Optional[LeadScore]:
    """Most recent scoring snapshot of a lead."""
    return (
        db.query(LeadScore)
        .filter(LeadScore.lead_id == lead_id)
        .order_by(LeadScore.id.desc())
        .first()
    )
