#!/usr/bin/env python
"""
Run the economic governor and funnel diagnostician on a scorecard export.

Usage:
    python scripts/diagnose_scorecard.py
    python scripts/diagnose_scorecard.py --input scorecard.tsv
    python scripts/diagnose_scorecard.py --input scorecard.csv --tier2-store data/tier2_inputs.json
    python scripts/diagnose_scorecard.py --export weeks.csv
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from governor.config import config, configure_logging
from governor.data.defaults import DEFAULT_SCORECARD_TSV
from governor.data.schema import validate_weeks_frame, weeks_to_frame
from governor.data.sheets import ScorecardParseError
from governor.data.loader import load_weeks
from governor.metrics.economic_governor import evaluate_economics, has_usable_weeks
from governor.metrics.funnel_diagnostician import evaluate_funnel


STATUS_MARKS = {"pass": "✓", "warning": "⚠", "fail": "✗", "no_data": "-"}


def main():
    parser = argparse.ArgumentParser(description="Diagnose a Traction Scorecard export")
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Scorecard file (TSV or CSV). Defaults to the bundled scorecard."
    )
    parser.add_argument(
        "--tier2-store",
        type=str,
        default=None,
        help="Tier 2 inputs JSON to overlay (defaults to DATA_DIR/tier2_inputs.json)"
    )
    parser.add_argument(
        "--export",
        type=str,
        default=None,
        help="Write the parsed weeks (one row per week) to this CSV"
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override LOG_LEVEL")

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.input:
        text = Path(args.input).read_text(encoding="utf-8")
        source = args.input
    else:
        text = DEFAULT_SCORECARD_TSV
        source = "bundled scorecard"

    store_path = Path(args.tier2_store) if args.tier2_store else config.tier2_store_path

    print("=" * 60)
    print("Economic Governor + Funnel Diagnostician")
    print("=" * 60)
    print(f"Source: {source}")
    print()

    try:
        weeks = load_weeks(text, store_path)
    except ScorecardParseError as e:
        print(f"✗ Could not parse scorecard: {e}")
        sys.exit(2)

    frame = weeks_to_frame(weeks)
    schema_result = validate_weeks_frame(frame, strict=False)
    print(f"Weeks: {schema_result['total_rows']} ({schema_result['weeks_with_data']} with data)")
    if schema_result["is_valid"]:
        print("  ✓ Schema valid")
    else:
        print("  ✗ Schema invalid")
        print(f"    Missing required: {schema_result['missing_required']}")
        print(f"    Non-numeric: {schema_result['non_numeric']}")
        sys.exit(2)

    if args.export:
        frame.to_csv(args.export, index=False)
        print(f"  ✓ Exported: {args.export}")
    print()

    if not has_usable_weeks(weeks):
        print("✗ Insufficient data: no week has Ad Spend, CM actuals or 1st Order Count")
        sys.exit(1)

    governor = evaluate_economics(weeks)
    funnel = evaluate_funnel(governor)

    print(f"Anchor week: {governor.latest_week.display_label}")
    print(f"Verdict: {governor.verdict}")
    print(f"  {governor.verdict_explanation}")
    print(f"Scale permission: {governor.scale_permission}")
    print(f"  {governor.scale_reason}")
    if governor.cm_mirage:
        print(f"⚠ CM mirage: {governor.cm_mirage_explanation}")
    if governor.biggest_leak is not None:
        print(f"Biggest leak: {governor.biggest_leak.description}")
    print()

    print(f"Allowed scope: {funnel.allowed_scope}")
    print("-" * 40)
    for step in funnel.steps:
        print(f"  {STATUS_MARKS[step.status]} {step.step}. {step.title}: {step.finding}")
    print()

    rca = funnel.rca_summary
    print("Root cause analysis")
    print("-" * 40)
    print(f"  Action: {rca.action}")
    print(f"  Root cause: {rca.root_cause}")
    print(f"  Discussion: {rca.discussion}")
    print(f"  Solve: {rca.solve}")
    print(f"  Do NOT do: {rca.do_not_do}")
    print()

    for warning in governor.warnings:
        print(f"⚠ {warning}")

    sys.exit(0)


if __name__ == "__main__":
    main()
