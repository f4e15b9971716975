"""
admission_leads/scoring/weights.py — Lead scoring weight tables.

A ScoringConfig holds six weight categories. Keyword maps (form type, source,
course interest) are ordered: the first keyword that matches a lead wins, so
insertion order is match priority.

Configs are accepted in camelCase (as stored in tenant settings) or snake_case.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, NonNegativeInt, ValidationError, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Ordered keyword → weight map
WeightMap = dict[str, NonNegativeInt]


class ConfigurationError(ValueError):
    """Raised when a weight table is missing a category/bucket or has invalid weights."""


# ── Fixed-shape categories ────────────────────────────────────────────────────

class FieldCompletenessWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    required: NonNegativeInt    # per required field present (name, email, phone)
    optional: NonNegativeInt    # per optional field present


class ResponseTimeWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    immediate: NonNegativeInt   # ≤ 1 hour
    fast: NonNegativeInt        # ≤ 24 hours
    normal: NonNegativeInt      # ≤ 72 hours, or response time unknown
    slow: NonNegativeInt        # > 72 hours

    @model_validator(mode="before")
    @classmethod
    def _rename_legacy_bucket(cls, data: Any) -> Any:
        # Older tenant configs call the 72h bucket "lead"
        if isinstance(data, Mapping) and "lead" in data and "normal" not in data:
            logger.warning("Response-time bucket 'lead' is deprecated; reading it as 'normal'.")
            data = {("normal" if key == "lead" else key): value for key, value in data.items()}
        return data


class BudgetWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    high: NonNegativeInt
    medium: NonNegativeInt
    low: NonNegativeInt


# ── Full config ───────────────────────────────────────────────────────────────

class ScoringConfig(BaseModel):
    """Immutable weighting table used by LeadScoringService."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    form_type: WeightMap
    field_completeness: FieldCompletenessWeights
    response_time: ResponseTimeWeights
    source: WeightMap
    course_interest: WeightMap
    budget: BudgetWeights

    def to_dict(self) -> dict[str, Any]:
        """camelCase JSON-ready dict, the shape stored in tenant settings."""
        return self.model_dump(by_alias=True)


DEFAULT_SCORING_CONFIG = ScoringConfig(
    form_type={
        "admission": 25,
        "inquiry": 20,
        "application": 30,
        "registration": 35,
        "scholarship": 15,
        "default": 10,
    },
    field_completeness=FieldCompletenessWeights(required=20, optional=10),
    response_time=ResponseTimeWeights(immediate=25, fast=20, normal=15, slow=5),
    source={
        "website": 15,
        "google_ads": 20,
        "facebook_ads": 18,
        "referral": 25,
        "walk_in": 30,
        "phone": 20,
        "email": 15,
        "social_media": 12,
        "default": 10,
    },
    course_interest={
        "engineering": 20,
        "medicine": 25,
        "management": 18,
        "arts": 12,
        "science": 15,
        "commerce": 10,
        "default": 8,
    },
    budget=BudgetWeights(high=25, medium=15, low=5),
)


# ── Helpers ───────────────────────────────────────────────────────────────────

# Accept both "formType" and "form_type" as update keys
_CATEGORY_KEYS: dict[str, str] = {
    **{name: name for name in ScoringConfig.model_fields},
    **{to_camel(name): name for name in ScoringConfig.model_fields},
}


def parse_scoring_config(data: Mapping[str, Any]) -> ScoringConfig:
    """
    Validate a raw weight table into a ScoringConfig.

    Raises:
        ConfigurationError: If a category or bucket is missing, a weight is
                            negative/non-integer, or an unknown key is present.
    """
    try:
        return ScoringConfig.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid scoring config: {e}") from e


def merge_config(current: ScoringConfig, partial: Mapping[str, Any]) -> ScoringConfig:
    """
    Shallow merge: every top-level category present in `partial` replaces the
    current one wholesale. Nested weight maps are never merged key by key, so
    callers must send complete categories.

    Returns a new ScoringConfig; `current` is left untouched.
    """
    if not isinstance(partial, Mapping):
        raise ConfigurationError(
            f"Scoring config update must be a mapping, got {type(partial).__name__}"
        )

    updates: dict[str, Any] = {}
    for key, value in partial.items():
        name = _CATEGORY_KEYS.get(key)
        if name is None:
            raise ConfigurationError(f"Unknown scoring category: {key!r}")
        updates[name] = value

    merged = {name: getattr(current, name) for name in ScoringConfig.model_fields}
    merged.update(updates)
    return parse_scoring_config(merged)


def load_scoring_config(path: str | Path) -> ScoringConfig:
    """Read a JSON weight table from disk."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read scoring config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Scoring config {path} must be a JSON object.")

    logger.info("Loaded scoring config from %s", path)
    return parse_scoring_config(data)
