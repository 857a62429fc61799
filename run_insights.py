#!/usr/bin/env python3
"""
CutTracker - Insight CLI Script

Command-line entry point that reads a JSON insight request, runs the engine
and prints either a human-readable summary or the raw JSON result.
"""

import argparse
import json
import logging
import os
import sys

from jsonschema import ValidationError

from conversions import lbs_to_kg, oz_to_ml
from insights_api import compute_insights
from phase_planning import recommend_protocol, weight_checkpoints
from request_schema import decode_request, get_schema_errors
from safety import max_safe_weekly_loss_lbs
from weight_logs import daily_weights

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI function with argument parsing."""
    parser = argparse.ArgumentParser(
        description="CutTracker weight cut projection and coaching insights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_insights.py request.json            # Human-readable summary
  python run_insights.py request.json --json     # Full InsightResult as JSON
  python run_insights.py request.json --days     # Include daily weight table

JSON request format:
  {
    "profile": {
      "current_weight_lbs": 136.0,
      "target_weight_class_lbs": 133.0,
      "protocol": 2,                  // 1-6
      "weigh_in_date": "2024-01-13",
      "weigh_in_time": "07:00"        // optional, default 07:00
    },
    "logs": [
      {"id": "1", "timestamp": "2024-01-11T22:00:00Z",
       "weight_lbs": 137.4, "log_type": "before-bed"}
    ],
    "daily_tracking": {"date": "2024-01-12", "water_consumed_oz": 20},
    "now": "2024-01-12T06:45:00Z"      // optional, defaults to current time
  }
        """,
    )

    parser.add_argument("request_file", help="Path to JSON request file")

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON instead of a summary",
    )

    parser.add_argument(
        "--days",
        action="store_true",
        help="Include a per-day weight summary of the log",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only log warnings and errors",
    )

    args = parser.parse_args(argv)

    if args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    if not os.path.exists(args.request_file):
        print(f"Error: Request file not found: {args.request_file}")
        return 1

    try:
        with open(args.request_file, "r") as f:
            request = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Failed to parse JSON: {e}")
        return 1

    errors = get_schema_errors(request)
    if errors:
        print(f"Invalid request ({len(errors)} errors):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")
        return 1

    try:
        profile, logs, tracking, now, config = decode_request(request)
    except (ValidationError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    result = compute_insights(profile, logs, tracking, now=now, config=config)

    if args.json:
        print(result.to_json(indent=2))
        return 0 if result.configured else 1

    if not result.configured:
        print(f"Not configured: {result.reason}")
        return 1

    print_summary(result, profile)
    if args.days:
        print()
        print("Daily weights")
        print("-------------")
        print(daily_weights(logs).to_string())
    return 0


def print_summary(result, profile):
    """Print a human-readable summary of an InsightResult."""
    metrics = result.derived_metrics
    plan = result.guidance_plan
    score = result.cut_score

    def fmt(value, unit=""):
        return "n/a" if value is None else f"{value:.2f}{unit}"

    def weight(lbs):
        return f"{lbs:.1f} lbs ({lbs_to_kg(lbs):.1f} kg)"

    print()
    print("Weight")
    print("------")
    print(f"  Current:            {weight(metrics.current_weight_lbs)}")
    print(f"  Target class:       {weight(profile.target_weight_class_lbs)}")
    print(f"  Days to weigh-in:   {metrics.days_until_weigh_in} ({metrics.phase.value})")
    print(f"  Projected weigh-in: {weight(metrics.projected_weigh_in_weight_lbs)}")
    print(f"  Projected gap:      {metrics.projected_gap_lbs:.1f} lbs ({metrics.pace_status})")
    print(f"  Overnight drift:    {fmt(metrics.overnight_drift_lbs, ' lbs')}")
    print(f"  Sweat rate:         {fmt(metrics.session_sweat_rate_lbs_per_hr, ' lbs/hr')}")

    print()
    print("Guidance")
    print("--------")
    if plan.is_empty:
        print("  Nothing to change today.")
    if plan.fluid_allowance_oz is not None:
        print(
            f"  Fluids:  {plan.fluid_allowance_oz} oz "
            f"({oz_to_ml(plan.fluid_allowance_oz):.0f} ml) until {plan.fluid_cutoff_time}"
        )
    if plan.food_ceiling_lbs is not None:
        print(f"  Food:    {plan.food_ceiling_lbs} lbs until {plan.food_cutoff_time}")
    if plan.food_intake_multiplier is not None:
        print(f"  Intake:  {plan.food_intake_multiplier:.0%} of normal food")
    if plan.sodium_target_mg is not None:
        print(f"  Sodium:  {plan.sodium_target_mg} mg max")
    if plan.workout_guidance is not None:
        print(
            f"  Workout: {plan.workout_minutes} min "
            f"(~{plan.workout_expected_loss_lbs} lbs)"
        )
    if plan.tradeoff_note:
        print(f"  Note:    {plan.tradeoff_note}")
    if plan.rehydration is not None:
        r = plan.rehydration
        print(
            f"  Rehydrate: {r.fluid_oz_min}-{r.fluid_oz_max} oz fluid, "
            f"{r.sodium_mg_min}-{r.sodium_mg_max} mg sodium"
        )

    print()
    print(f"Cut score: {score.score} ({score.label}, {score.zone})")
    print(f"  {score.rationale}")
    print(f"Safety:    {result.safety.level.value} - {result.safety.message}")

    recommendation = recommend_protocol(
        metrics.current_weight_lbs, profile.target_weight_class_lbs
    )
    print()
    print(f"Suggested protocol: {recommendation.protocol.value} ({recommendation.reason})")
    if recommendation.warning:
        print(f"  {recommendation.warning}")
    print(
        f"Max sustainable weekly loss: "
        f"{max_safe_weekly_loss_lbs(metrics.current_weight_lbs)} lbs"
    )
    for name, (low, high) in weight_checkpoints(profile.target_weight_class_lbs).items():
        print(f"  {name.replace('_', ' ')}: {low}-{high} lbs")

    for note in metrics.data_quality_notes:
        print(f"Data quality: {note}")


if __name__ == "__main__":
    sys.exit(main())
