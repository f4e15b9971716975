"""
admission_leads/scoring/engine.py — Deterministic multi-factor lead scoring.

A lead's score is the sum of six component scores:
  form type + field completeness + response time + source + course interest + budget

Each component is looked up in the engine's ScoringConfig. The result also
carries the theoretical max score, a percentage, human-readable factors and
follow-up recommendations.

Build one LeadScoringService per tenant (see services.scoring_service) rather
than sharing a module-level instance.
"""

import logging
import math
import re
import threading
from collections.abc import Mapping
from typing import Any

from admission_leads.scoring.schemas import ScoreBreakdown, ScoringInput, ScoringResult
from admission_leads.scoring.weights import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfig,
    WeightMap,
    merge_config,
    parse_scoring_config,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "email", "phone")
OPTIONAL_FIELDS = (
    "course",
    "qualification",
    "address",
    "city",
    "state",
    "pincode",
    "dateOfBirth",
    "gender",
    "parentName",
    "parentPhone",
    "parentEmail",
    "source",
    "interest",
    "budget",
    "experience",
    "notes",
)
COMPLETENESS_CAP = 100

# Used when a keyword map has no "default" entry
FORM_TYPE_FALLBACK = 10
SOURCE_FALLBACK = 10
COURSE_INTEREST_FALLBACK = 8

# Budget tiers, checked in order; first tier with a keyword hit wins
BUDGET_TIERS = (
    ("high", ("high", "premium", "expensive")),
    ("medium", ("medium", "moderate", "average")),
    ("low", ("low", "budget", "affordable")),
)

ADMISSION_FORM_TYPES = ("admission", "application")

_SEPARATORS = re.compile(r"[_\s-]")


# ── Component scores ──────────────────────────────────────────────────────────

def normalize_keyword(value: str) -> str:
    """Lowercase and drop underscores, hyphens and whitespace: 'Walk-In' → 'walkin'."""
    return _SEPARATORS.sub("", value.lower())


def match_weight(value: str, weights: WeightMap) -> int | None:
    """
    Return the weight of the first keyword (in map order) where either the
    normalized value contains the keyword or the keyword contains the value.
    None if nothing matches.
    """
    normalized = normalize_keyword(value)
    for keyword, weight in weights.items():
        candidate = normalize_keyword(keyword)
        if candidate in normalized or normalized in candidate:
            return weight
    return None


def _keyword_score(value: str, weights: WeightMap, fallback: int) -> int:
    weight = match_weight(value, weights)
    if weight is not None:
        return weight
    default = weights.get("default")
    return default if default is not None else fallback


def _has_value(value: Any) -> bool:
    return bool(value) and str(value).strip() != ""


def score_completeness(form_data: Mapping[str, Any], config: ScoringConfig) -> int:
    weights = config.field_completeness
    score = sum(weights.required for f in REQUIRED_FIELDS if _has_value(form_data.get(f)))
    score += sum(weights.optional for f in OPTIONAL_FIELDS if _has_value(form_data.get(f)))
    return min(score, COMPLETENESS_CAP)


def score_response_time(response_time: float | None, config: ScoringConfig) -> int:
    buckets = config.response_time
    if not response_time or math.isnan(response_time):
        return buckets.normal

    hours = response_time / 60
    if hours <= 1:
        return buckets.immediate
    if hours <= 24:
        return buckets.fast
    if hours <= 72:
        return buckets.normal
    return buckets.slow


def score_course_interest(course_interest: str | None, config: ScoringConfig) -> int:
    if not course_interest:
        return 0
    return _keyword_score(course_interest, config.course_interest, COURSE_INTEREST_FALLBACK)


def score_budget(budget: str | None, config: ScoringConfig) -> int:
    if not budget:
        return 0

    normalized = budget.lower()
    for tier, keywords in BUDGET_TIERS:
        if any(keyword in normalized for keyword in keywords):
            return getattr(config.budget, tier)
    return 0


def calculate_max_score(config: ScoringConfig) -> int:
    """
    Best achievable score under `config`.

    The completeness term is 3×required + 16×optional and is not capped at
    COMPLETENESS_CAP, so with large completeness weights even a perfect lead
    stays under 100%.
    """
    max_completeness = (
        len(REQUIRED_FIELDS) * config.field_completeness.required
        + len(OPTIONAL_FIELDS) * config.field_completeness.optional
    )
    return (
        max(config.form_type.values(), default=0)
        + max_completeness
        + max(config.response_time.model_dump().values())
        + max(config.source.values(), default=0)
        + max(config.course_interest.values(), default=0)
        + max(config.budget.model_dump().values())
    )


def identify_factors(breakdown: ScoreBreakdown, data: ScoringInput) -> list[str]:
    factors = []
    if breakdown.form_type > 20:
        factors.append(f"High-value form type: {data.form_type}")
    if breakdown.completeness > 50:
        factors.append("Complete form submission")
    if breakdown.response_time > 20:
        factors.append("Quick response time")
    if breakdown.source > 20:
        factors.append(f"High-quality source: {data.source}")
    if breakdown.course_interest > 15:
        factors.append(f"High-demand course: {data.course_interest}")
    if breakdown.budget > 20:
        factors.append("High budget capacity")
    return factors


def generate_recommendations(breakdown: ScoreBreakdown, data: ScoringInput) -> list[str]:
    recommendations = []
    if breakdown.completeness < 30:
        recommendations.append("Follow up to collect missing information")
    if breakdown.response_time > 20:
        recommendations.append("Prioritize immediate contact - high engagement")
    if breakdown.source > 20:
        recommendations.append("High-quality lead - assign to experienced telecaller")
    if breakdown.course_interest > 15:
        recommendations.append("Course-specific follow-up strategy")
    if breakdown.budget > 20:
        recommendations.append("Premium service offering")
    # Exact, un-normalized match on purpose: only the canonical form types
    if data.form_type in ADMISSION_FORM_TYPES:
        recommendations.append("Admission-focused follow-up")
    return recommendations


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ── Service ───────────────────────────────────────────────────────────────────

class LeadScoringService:
    """
    Scores leads against a ScoringConfig.

    calculate_score() and get_config() only read the current config and are
    safe to call from several threads. update_config() builds the merged config
    aside and swaps it in under a lock, so a concurrent reader sees either the
    old or the new table, never a mix.
    """

    def __init__(self, config: ScoringConfig | Mapping[str, Any] | None = None):
        if config is None:
            config = DEFAULT_SCORING_CONFIG
        elif not isinstance(config, ScoringConfig):
            config = parse_scoring_config(config)
        self._config = config
        self._lock = threading.Lock()

    def calculate_score(self, data: ScoringInput | Mapping[str, Any]) -> ScoringResult:
        """
        Score one lead.

        Args:
            data: A ScoringInput, or a dict that validates into one.

        Returns:
            ScoringResult with score, max score, percentage, breakdown,
            factors and recommendations.

        Raises:
            pydantic.ValidationError: If `data` is a dict that fails validation.
        """
        if not isinstance(data, ScoringInput):
            data = ScoringInput.model_validate(data)

        config = self._config  # one snapshot for the whole call

        breakdown = ScoreBreakdown(
            form_type=_keyword_score(data.form_type, config.form_type, FORM_TYPE_FALLBACK),
            completeness=score_completeness(data.form_data, config),
            response_time=score_response_time(data.response_time, config),
            source=_keyword_score(data.source, config.source, SOURCE_FALLBACK),
            course_interest=score_course_interest(data.course_interest, config),
            budget=score_budget(data.budget, config),
        )

        score = breakdown.total
        max_score = calculate_max_score(config)
        percentage = _round_half_up(score / max_score * 100) if max_score else 0

        result = ScoringResult(
            score=score,
            max_score=max_score,
            percentage=percentage,
            breakdown=breakdown,
            factors=identify_factors(breakdown, data),
            recommendations=generate_recommendations(breakdown, data),
        )

        logger.debug(
            "Scored lead form_type=%r source=%r: %d/%d (%d%%)",
            data.form_type, data.source, score, max_score, percentage,
        )
        return result

    def update_config(self, partial: Mapping[str, Any]) -> None:
        """
        Replace whole categories of the config, e.g. {"source": {...}}.

        Categories not named in `partial` are kept as-is. A category that is
        named is replaced entirely, not merged key by key.

        Raises:
            ConfigurationError: If a key is unknown or a category is invalid.
                                The current config is left unchanged.
        """
        with self._lock:
            self._config = merge_config(self._config, partial)
        logger.info("Scoring config updated: %s", sorted(partial))

    def get_config(self) -> ScoringConfig:
        """
        Shallow copy of the current config. Nested weight maps are shared with
        the engine, so treat the returned object as read-only.
        """
        return self._config.model_copy()
