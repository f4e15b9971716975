"""
admission_leads/db/models.py — SQLAlchemy ORM models for admission lead scoring.

Tables:
  - ScoringConfigRecord → a tenant's lead scoring weight table
  - Lead                → a prospective student, with their latest score
  - FormSubmission      → the raw form post a Lead was created from
  - LeadScore           → a scoring snapshot (breakdown, factors, recommendations)
"""

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, relationship


# ── Base ─────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ── Enums ────────────────────────────────────────────────────────────────────

class LeadStatus(str, enum.Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    INTERESTED = "interested"
    ENROLLED = "enrolled"
    LOST = "lost"


# ── Models ───────────────────────────────────────────────────────────────────

class ScoringConfigRecord(Base):
    __tablename__ = "scoring_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, unique=True)
    config = Column(Text, nullable=False)                 # camelCase JSON weight table
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<ScoringConfigRecord tenant_id={self.tenant_id!r}>"


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    source = Column(String(255), nullable=False)
    course_interest = Column(String(255), nullable=True)

    status = Column(Enum(LeadStatus), default=LeadStatus.NEW, nullable=False)
    score = Column(Integer, default=0, nullable=False)   # latest total score

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    submissions = relationship("FormSubmission", back_populates="lead")
    scores = relationship("LeadScore", back_populates="lead", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Lead id={self.id} status={self.status} score={self.score}>"


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="SET NULL"), nullable=True)
    form_type = Column(String(255), nullable=False)
    data = Column(Text, nullable=False)                   # raw submission JSON
    mapping_log = Column(Text, nullable=True)             # JSON list stored as text
    unmapped_fields = Column(Text, nullable=True)         # JSON object stored as text
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Relationships
    lead = relationship("Lead", back_populates="submissions")

    def __repr__(self) -> str:
        return f"<FormSubmission id={self.id} form_type={self.form_type!r} lead_id={self.lead_id}>"


class LeadScore(Base):
    __tablename__ = "lead_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    score = Column(Integer, nullable=False)
    max_score = Column(Integer, nullable=False)
    percentage = Column(Integer, nullable=False)
    breakdown = Column(Text, nullable=False)              # JSON object stored as text
    factors = Column(Text, nullable=False)                # JSON list stored as text
    recommendations = Column(Text, nullable=False)        # JSON list stored as text
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Relationships
    lead = relationship("Lead", back_populates="scores")

    def __repr__(self) -> str:
        return f"<LeadScore id={self.id} lead_id={self.lead_id} score={self.score}/{self.max_score}>"
