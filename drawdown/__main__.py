"""CLI entry point for the withdrawal engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .engine import plan_period
from .errors import DrawdownError
from .plan import SpendingPlan
from .schema import SchemaError, load_period
from .validate import SEQUENCERS, STRATEGY_TYPES, validate_period


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plan one period of retirement withdrawals")
    parser.add_argument("period", help="Path to period JSON file")
    parser.add_argument("--validate", action="store_true", help="Validate JSON only")
    parser.add_argument("--json", action="store_true", help="Print the spending plan as JSON")
    parser.add_argument("--strategy", choices=sorted(STRATEGY_TYPES), help="Override the spending strategy")
    parser.add_argument("--sequencer", choices=sorted(SEQUENCERS), help="Override the account sequencer")
    parser.add_argument("--no-rmd", action="store_true", help="Do not raise withdrawals to the required minimum distribution")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log rule decisions at DEBUG level")
    return parser


def _print_validation(errors: list[str], warnings: list[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}", file=sys.stderr)


def _print_summary(plan: SpendingPlan) -> None:
    print(f"Strategy: {plan.strategy_used}")
    print(f"Target withdrawal: ${plan.target_withdrawal:,.2f}")
    print(f"Adjusted withdrawal: ${plan.adjusted_withdrawal:,.2f}")
    for withdrawal in plan.account_withdrawals:
        print(f"  {withdrawal.account_name}: ${withdrawal.amount:,.2f} (balance ${withdrawal.new_balance:,.2f})")
    if not plan.meets_target:
        print(f"Shortfall: ${plan.shortfall:,.2f}")
    for key, value in plan.metadata.items():
        print(f"  {key}: {value}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        period = load_period(args.period)
    except (SchemaError, OSError, ValueError) as exc:
        print(f"Failed to load period: {exc}", file=sys.stderr)
        return 2

    validation = validate_period(period)
    _print_validation(validation.errors, validation.warnings)
    if not validation.is_valid:
        return 1

    if args.validate:
        print("Period is valid.")
        return 0

    try:
        plan = plan_period(
            period,
            strategy_override=args.strategy,
            sequencer_override=args.sequencer,
            enforce_rmd=False if args.no_rmd else None,
        )
    except DrawdownError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(plan.to_dict(), indent=2))
    else:
        _print_summary(plan)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
