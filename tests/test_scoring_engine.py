"""
tests/test_scoring_engine.py — Unit tests for the lead scoring engine.

Pure computation: no DB, no network.
"""

import threading
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from admission_leads.scoring.engine import (
    LeadScoringService,
    calculate_max_score,
    match_weight,
    normalize_keyword,
)
from admission_leads.scoring.schemas import ScoringInput
from admission_leads.scoring.weights import DEFAULT_SCORING_CONFIG, ConfigurationError


NOW = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


def make_input(**overrides) -> ScoringInput:
    fields = {
        "form_type": "admission",
        "form_data": {"name": "A", "email": "a@b.com", "phone": "123"},
        "submission_time": NOW,
        "source": "walk_in",
        "response_time": 30,
        "course_interest": "engineering",
        "budget": "high premium",
    }
    fields.update(overrides)
    return ScoringInput(**fields)


def config_dict(**overrides) -> dict:
    data = DEFAULT_SCORING_CONFIG.to_dict()
    data.update(overrides)
    return data


# ── Worked example ────────────────────────────────────────────────────────────

class TestHighValueAdmissionLead:
    def setup_method(self):
        self.result = LeadScoringService().calculate_score(make_input())

    def test_breakdown(self):
        b = self.result.breakdown
        assert b.form_type == 25
        assert b.completeness == 60
        assert b.response_time == 25
        assert b.source == 30
        assert b.course_interest == 20
        assert b.budget == 25

    def test_totals(self):
        assert self.result.score == 185
        assert self.result.max_score == 360
        assert self.result.percentage == 51

    def test_factors(self):
        assert self.result.factors == [
            "High-value form type: admission",
            "Complete form submission",
            "Quick response time",
            "High-quality source: walk_in",
            "High-demand course: engineering",
            "High budget capacity",
        ]

    def test_recommendations(self):
        assert self.result.recommendations == [
            "Prioritize immediate contact - high engagement",
            "High-quality lead - assign to experienced telecaller",
            "Course-specific follow-up strategy",
            "Premium service offering",
            "Admission-focused follow-up",
        ]

    def test_to_dict_uses_camel_case(self):
        data = self.result.to_dict()
        assert data["maxScore"] == 360
        assert data["breakdown"] == {
            "formType": 25,
            "completeness": 60,
            "responseTime": 25,
            "source": 30,
            "courseInterest": 20,
            "budget": 25,
        }


# ── General properties ────────────────────────────────────────────────────────

class TestScoreProperties:
    def test_deterministic(self):
        service = LeadScoringService()
        data = make_input(source="google ads", budget="moderate")
        first = service.calculate_score(data)
        assert first == service.calculate_score(data)
        assert first.breakdown.source == 20
        assert first.breakdown.budget == 15

    def test_score_is_sum_of_breakdown(self):
        result = LeadScoringService().calculate_score(
            make_input(form_type="inquiry", source="Referral", budget="affordable")
        )
        b = result.breakdown
        assert result.score == (
            b.form_type + b.completeness + b.response_time
            + b.source + b.course_interest + b.budget
        )

    def test_percentage_matches_score_over_max(self):
        result = LeadScoringService().calculate_score(make_input(form_type="scholarship"))
        assert result.percentage == round(result.score / result.max_score * 100)

    def test_unrecognized_keywords_use_defaults(self):
        result = LeadScoringService().calculate_score({
            "formType": "xyz-unrecognized",
            "source": "xyz-unrecognized",
            "formData": {},
            "submissionTime": NOW,
        })
        assert result.breakdown.form_type == DEFAULT_SCORING_CONFIG.form_type["default"]
        assert result.breakdown.source == DEFAULT_SCORING_CONFIG.source["default"]
        assert result.breakdown.course_interest == 0
        assert result.breakdown.budget == 0
        assert result.score == 35
        assert result.percentage == 10
        assert result.recommendations == ["Follow up to collect missing information"]

    def test_accepts_snake_case_dict(self):
        result = LeadScoringService().calculate_score({
            "form_type": "inquiry",
            "form_data": {},
            "source": "website",
        })
        assert result.breakdown.form_type == 20
        assert result.breakdown.source == 15

    def test_empty_form_type_is_rejected(self):
        with pytest.raises(ValidationError):
            LeadScoringService().calculate_score({"formType": "", "formData": {}, "source": "web"})

    def test_missing_form_data_is_rejected(self):
        with pytest.raises(ValidationError):
            LeadScoringService().calculate_score({"formType": "inquiry", "source": "web"})


# ── Keyword matching ──────────────────────────────────────────────────────────

class TestKeywordMatching:
    def test_normalize_keyword(self):
        assert normalize_keyword("Walk-In  Visit_2") == "walkinvisit2"

    def test_input_containing_keyword_matches(self):
        result = LeadScoringService().calculate_score(make_input(form_type="Admission Form 2026"))
        assert result.breakdown.form_type == 25

    def test_keyword_containing_input_matches(self):
        # "regis" is inside "registration"
        result = LeadScoringService().calculate_score(make_input(form_type="regis"))
        assert result.breakdown.form_type == 35

    def test_separators_ignored_on_both_sides(self):
        for source in ("walk_in", "Walk-In", "walk in", "WALKIN"):
            result = LeadScoringService().calculate_score(make_input(source=source))
            assert result.breakdown.source == 30, source

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("google_ads", 20),
            ("Facebook Ads", 18),
            ("social-media", 12),
        ],
    )
    def test_underscored_keys_match(self, source, expected):
        result = LeadScoringService().calculate_score(make_input(source=source))
        assert result.breakdown.source == expected

    def test_first_match_in_map_order_wins(self):
        assert match_weight("application", {"app": 5, "application": 30}) == 5
        assert match_weight("application", {"application": 30, "app": 5}) == 30

    def test_no_match_returns_none(self):
        assert match_weight("zzz", {"admission": 25}) is None

    def test_hardcoded_fallback_without_default_key(self):
        service = LeadScoringService(config_dict(
            formType={"admission": 25},
            source={"website": 15},
            courseInterest={"medicine": 25},
        ))
        result = service.calculate_score(make_input(
            form_type="zzz", source="zzz", course_interest="zzz",
        ))
        assert result.breakdown.form_type == 10
        assert result.breakdown.source == 10
        assert result.breakdown.course_interest == 8

    def test_zero_default_is_honoured(self):
        service = LeadScoringService(config_dict(formType={"admission": 25, "default": 0}))
        result = service.calculate_score(make_input(form_type="zzz"))
        assert result.breakdown.form_type == 0

    def test_admission_recommendation_needs_exact_form_type(self):
        result = LeadScoringService().calculate_score(make_input(form_type="Admission"))
        assert result.breakdown.form_type == 25
        assert "Admission-focused follow-up" not in result.recommendations

    def test_application_gets_admission_recommendation(self):
        result = LeadScoringService().calculate_score(make_input(form_type="application"))
        assert "Admission-focused follow-up" in result.recommendations


# ── Completeness ──────────────────────────────────────────────────────────────

class TestCompleteness:
    def test_required_and_optional_fields(self):
        form = {"name": "A", "email": "a@b.com", "phone": "1", "city": "Pune", "notes": "hi"}
        result = LeadScoringService().calculate_score(make_input(form_data=form))
        assert result.breakdown.completeness == 3 * 20 + 2 * 10

    def test_blank_and_falsy_values_do_not_count(self):
        form = {"name": "   ", "email": "", "phone": None, "city": 0, "state": False}
        result = LeadScoringService().calculate_score(make_input(form_data=form))
        assert result.breakdown.completeness == 0

    def test_non_string_values_count(self):
        form = {"pincode": 411001, "experience": 3}
        result = LeadScoringService().calculate_score(make_input(form_data=form))
        assert result.breakdown.completeness == 20

    def test_unknown_fields_ignored(self):
        form = {"favourite_colour": "blue"}
        result = LeadScoringService().calculate_score(make_input(form_data=form))
        assert result.breakdown.completeness == 0

    def test_capped_at_100(self):
        service = LeadScoringService(config_dict(fieldCompleteness={"required": 40, "optional": 40}))
        form = {"name": "A", "email": "a@b.com", "phone": "1", "city": "Pune"}
        result = service.calculate_score(make_input(form_data=form))
        assert result.breakdown.completeness == 100

    def test_max_score_does_not_cap_completeness(self):
        service = LeadScoringService(config_dict(fieldCompleteness={"required": 40, "optional": 40}))
        # 3×40 + 16×40 = 760 for the completeness term
        assert calculate_max_score(service.get_config()) == 35 + 760 + 25 + 30 + 25 + 25


# ── Response time ─────────────────────────────────────────────────────────────

class TestResponseTime:
    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (None, 15),     # unknown → normal bucket
            (0, 15),
            (float("nan"), 15),
            (1, 25),
            (60, 25),
            (61, 20),
            (24 * 60, 20),
            (24 * 60 + 1, 15),
            (72 * 60, 15),
            (72 * 60 + 1, 5),
        ],
    )
    def test_buckets(self, minutes, expected):
        result = LeadScoringService().calculate_score(make_input(response_time=minutes))
        assert result.breakdown.response_time == expected

    def test_unknown_response_time_does_not_poison_score(self):
        result = LeadScoringService().calculate_score(make_input(response_time=None))
        assert result.score == 185 - 25 + 15


# ── Course interest & budget ──────────────────────────────────────────────────

class TestCourseInterestAndBudget:
    def test_missing_course_interest_scores_zero(self):
        result = LeadScoringService().calculate_score(make_input(course_interest=None))
        assert result.breakdown.course_interest == 0

    def test_unknown_course_uses_default(self):
        result = LeadScoringService().calculate_score(make_input(course_interest="Astrophysics PhD"))
        assert result.breakdown.course_interest == 8

    @pytest.mark.parametrize(
        "budget, expected",
        [
            ("High", 25),
            ("premium package", 25),
            ("moderate", 15),
            ("Average fees", 15),
            ("affordable", 5),
            ("low", 5),
            ("tight budget", 5),
            ("low but premium is fine", 25),   # high tier checked first
            ("not sure", 0),
            (None, 0),
            ("", 0),
        ],
    )
    def test_budget_tiers(self, budget, expected):
        result = LeadScoringService().calculate_score(make_input(budget=budget))
        assert result.breakdown.budget == expected


# ── Config management ─────────────────────────────────────────────────────────

class TestConfigManagement:
    def test_default_config(self):
        assert LeadScoringService().get_config() == DEFAULT_SCORING_CONFIG

    def test_update_replaces_only_named_category(self):
        service = LeadScoringService()
        service.update_config({"formType": {"admission": 50, "default": 1}})

        config = service.get_config()
        assert config.form_type == {"admission": 50, "default": 1}
        assert config.source == DEFAULT_SCORING_CONFIG.source
        assert config.budget == DEFAULT_SCORING_CONFIG.budget
        assert config.response_time == DEFAULT_SCORING_CONFIG.response_time

    def test_update_affects_later_scores(self):
        service = LeadScoringService()
        service.update_config({"source": {"walk_in": 99}})
        assert service.calculate_score(make_input()).breakdown.source == 99
        # Keys dropped from the category are gone, not merged back in
        assert service.calculate_score(make_input(source="referral")).breakdown.source == 10

    def test_update_accepts_snake_case_keys(self):
        service = LeadScoringService()
        service.update_config({"course_interest": {"nursing": 22}})
        assert service.get_config().course_interest == {"nursing": 22}

    def test_partial_category_is_rejected(self):
        service = LeadScoringService()
        with pytest.raises(ConfigurationError):
            service.update_config({"budget": {"high": 40}})
        assert service.get_config().budget == DEFAULT_SCORING_CONFIG.budget

    def test_unknown_category_is_rejected(self):
        service = LeadScoringService()
        with pytest.raises(ConfigurationError):
            service.update_config({"ageBand": {"young": 5}})
        assert service.get_config() == DEFAULT_SCORING_CONFIG

    def test_non_mapping_update_is_rejected(self):
        service = LeadScoringService()
        with pytest.raises(ConfigurationError):
            service.update_config([("source", {"walk_in": 1})])
        assert service.get_config() == DEFAULT_SCORING_CONFIG

    def test_update_does_not_touch_other_engines(self):
        a, b = LeadScoringService(), LeadScoringService()
        a.update_config({"source": {"walk_in": 1}})
        assert b.get_config().source == DEFAULT_SCORING_CONFIG.source

    def test_missing_response_time_bucket_is_rejected(self):
        with pytest.raises(ConfigurationError):
            LeadScoringService(config_dict(responseTime={"immediate": 25, "fast": 20, "slow": 5}))

    def test_legacy_lead_bucket_read_as_normal(self):
        service = LeadScoringService(config_dict(
            responseTime={"immediate": 25, "fast": 20, "lead": 12, "slow": 5},
        ))
        assert service.get_config().response_time.normal == 12
        assert service.calculate_score(make_input(response_time=None)).breakdown.response_time == 12

    def test_negative_weight_is_rejected(self):
        with pytest.raises(ConfigurationError):
            LeadScoringService(config_dict(source={"website": -5}))

    def test_all_zero_config_gives_zero_percentage(self):
        service = LeadScoringService({
            "formType": {},
            "fieldCompleteness": {"required": 0, "optional": 0},
            "responseTime": {"immediate": 0, "fast": 0, "normal": 0, "slow": 0},
            "source": {"default": 0},
            "courseInterest": {"default": 0},
            "budget": {"high": 0, "medium": 0, "low": 0},
        })
        result = service.calculate_score(make_input(form_type="zzz"))
        assert result.max_score == 0
        assert result.percentage == 0

    def test_concurrent_updates_expose_whole_configs_only(self):
        service = LeadScoringService()
        config_a = {"source": {"walk_in": 30}, "budget": {"high": 25, "medium": 15, "low": 5}}
        config_b = {"source": {"walk_in": 1}, "budget": {"high": 2, "medium": 1, "low": 0}}
        seen = set()
        stop = threading.Event()

        def writer():
            for i in range(200):
                service.update_config(config_a if i % 2 else config_b)
            stop.set()

        def reader():
            while not stop.is_set():
                b = service.calculate_score(make_input()).breakdown
                seen.add((b.source, b.budget))

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert seen <= {(30, 25), (1, 2)}
