"""
scripts/score_submission.py — CLI to score a form submission stored as JSON.

Usage:
    python scripts/score_submission.py submission.json --form-type admission
    python scripts/score_submission.py submission.json --form-type inquiry --response-time 90
    python scripts/score_submission.py submission.json --tenant acme-college --save

Without --save the submission is only scored (nothing is written). With
--save it goes through the full pipeline and is stored as a new lead.
"""

import sys
import os
import argparse
import json
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("score_submission")

from admission_leads.db.session import get_session
from admission_leads.ingestion.field_mapping import map_form_data_to_lead, unwrap_form_values
from admission_leads.scoring.schemas import ScoringResult
from admission_leads.services.scoring_service import (
    SubmissionRejected,
    build_scoring_input,
    build_scoring_service,
    score_submission,
)


def print_result(result: ScoringResult) -> None:
    print("\n" + "="*55)
    print(f"  🎯  Score: {result.score} / {result.max_score}  ({result.percentage}%)")
    print("="*55)

    print("\n📊 Breakdown:")
    for name, value in result.breakdown.to_dict().items():
        print(f"      {name:<16} {value:>4}")

    print("\n✅ Factors:")
    for factor in result.factors or ["(none)"]:
        print(f"      - {factor}")

    print("\n📞 Recommendations:")
    for rec in result.recommendations or ["(none)"]:
        print(f"      - {rec}")
    print()


def run(path: str, tenant_id: str, form_type: str, response_time: float | None, save: bool) -> int:
    with open(path, encoding="utf-8") as f:
        form_data = json.load(f)

    with get_session() as db:
        if save:
            try:
                outcome = score_submission(
                    db, tenant_id, form_type, form_data, response_time=response_time,
                )
            except SubmissionRejected as e:
                print(f"❌ {e} (completeness {e.completeness}%)")
                return 1
            print(f"💾 Saved as lead {outcome.lead.id}.")
            result = outcome.result
        else:
            service = build_scoring_service(db, tenant_id)
            values = unwrap_form_values(form_data)
            scoring_input = build_scoring_input(
                form_type, map_form_data_to_lead(values), values, response_time=response_time,
            )
            result = service.calculate_score(scoring_input)

    print_result(result)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Score a lead submission.")
    parser.add_argument("path", help="JSON file holding the submitted form values")
    parser.add_argument("--form-type", default="inquiry", help="Form title (default: inquiry)")
    parser.add_argument("--tenant", default="default", help="Tenant whose weight table to use")
    parser.add_argument(
        "--response-time", type=float, default=None,
        help="Minutes until first contact (omit if not contacted yet)",
    )
    parser.add_argument("--save", action="store_true", help="Store the submission as a new lead")
    args = parser.parse_args()

    sys.exit(run(args.path, args.tenant, args.form_type, args.response_time, args.save))


if __name__ == "__main__":
    main()
