"""Semantic and cross-reference validation for period inputs."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal, InvalidOperation
import re
from typing import Any, Iterable

from .accounts import ACCOUNT_TYPE_KEYS
from .guardrails import PRESETS, GuardrailsConfiguration
from .rmd import RmdCalculator
from .schema import Period

DATE_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

STRATEGY_TYPES = {"static", "income_gap", "guardrails"}
SEQUENCERS = {"auto", "tax_efficient", "rmd_first"}

FILING_STATUS = {
    "single",
    "married_filing_jointly",
    "married_filing_separately",
    "head_of_household",
    "qualifying_surviving_spouse",
}

GUARDRAIL_FIELDS = {f.name for f in fields(GuardrailsConfiguration)}
GUARDRAIL_RATE_FIELDS = {"initial_withdrawal_rate", "inflation_rate", "increase_adjustment", "decrease_adjustment"}
GUARDRAIL_OPTIONAL_FIELDS = {
    "upper_threshold_multiplier",
    "lower_threshold_multiplier",
    "absolute_floor",
    "absolute_ceiling",
}
GUARDRAIL_YEAR_FIELDS = {"minimum_years_between_ratchets", "years_before_cap_preservation_ends"}
GUARDRAIL_FLAG_FIELDS = {"allow_spending_cuts", "skip_inflation_on_down_years"}


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_enum(result: ValidationResult, path: str, value: str, allowed: Iterable[str]) -> None:
    allowed_set = set(allowed)
    if value not in allowed_set:
        expected = ", ".join(sorted(allowed_set))
        result.errors.append(f"{path}: '{value}' is not valid; expected one of [{expected}]")


def _check_date(result: ValidationResult, path: str, value: str) -> bool:
    if not isinstance(value, str) or not DATE_RE.match(value):
        result.errors.append(f"{path}: '{value}' is not valid; expected YYYY-MM-DD")
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        result.errors.append(f"{path}: '{value}' is not a calendar date")
        return False
    return True


def _decimal(result: ValidationResult, path: str, value: str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        number = Decimal(value)
    except InvalidOperation:
        result.errors.append(f"{path}: '{value}' is not a number")
        return None
    if not number.is_finite():
        result.errors.append(f"{path}: '{value}' is not a finite number")
        return None
    return number


def _check_non_negative(result: ValidationResult, path: str, value: str | None) -> Decimal | None:
    number = _decimal(result, path, value)
    if number is not None and number < 0:
        result.errors.append(f"{path}: must be >= 0")
    return number


def _check_rate(result: ValidationResult, path: str, value: str | None, *, inclusive_max: bool = True) -> None:
    number = _check_non_negative(result, path, value)
    if number is None:
        return
    if inclusive_max and number > 1:
        result.errors.append(f"{path}: must be <= 1")
    elif not inclusive_max and number >= 1:
        result.errors.append(f"{path}: must be < 1")


def _check_guardrail_override(result: ValidationResult, key: str, value: Any) -> None:
    path = f"strategy.guardrails.{key}"
    if key not in GUARDRAIL_FIELDS:
        result.errors.append(f"{path}: unknown guardrails setting")
    elif key in GUARDRAIL_FLAG_FIELDS:
        if not isinstance(value, bool):
            result.errors.append(f"{path}: expected true or false")
    elif key in GUARDRAIL_YEAR_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int):
            result.errors.append(f"{path}: expected whole number of years")
        elif value < 0:
            result.errors.append(f"{path}: must be >= 0")
    elif value is None and key in GUARDRAIL_OPTIONAL_FIELDS:
        return
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        result.errors.append(f"{path}: expected number")
    elif key in GUARDRAIL_RATE_FIELDS:
        _check_rate(result, path, str(value))
    else:
        _check_non_negative(result, path, str(value))


def validate_period(period: Period, rmd_calculator: RmdCalculator | None = None) -> ValidationResult:
    result = ValidationResult()
    rmd_calculator = rmd_calculator or RmdCalculator()

    date_ok = _check_date(result, "date", period.date)
    start_ok = _check_date(result, "person.retirement_start", period.person.retirement_start)
    if date_ok and start_ok and period.person.retirement_start > period.date:
        result.errors.append("person.retirement_start/date: retirement_start must be <= date")

    if period.person.age < 0:
        result.errors.append("person.age: must be >= 0")
    if period.person.filing_status is not None:
        _check_enum(result, "person.filing_status", period.person.filing_status, FILING_STATUS)

    expenses = _check_non_negative(result, "total_expenses", period.total_expenses)
    other_income = _check_non_negative(result, "other_income", period.other_income)
    _check_non_negative(result, "current_taxable_income", period.current_taxable_income)
    if expenses is not None and other_income is not None and other_income >= expenses:
        result.warnings.append("other_income: covers total_expenses; no withdrawal will be needed")

    if not period.accounts:
        result.errors.append("accounts: at least one account is required")

    account_ids: set[str] = set()
    for idx, account in enumerate(period.accounts):
        base = f"accounts[{idx}]"
        if account.id in account_ids:
            result.errors.append(f"{base}.id: duplicate account id '{account.id}'")
        account_ids.add(account.id)
        _check_enum(result, f"{base}.type", account.type, ACCOUNT_TYPE_KEYS)
        _check_non_negative(result, f"{base}.balance", account.balance)
        if account.allocation is not None:
            parts = [
                _check_non_negative(result, f"{base}.allocation.{name}", getattr(account.allocation, name))
                for name in ("stocks", "bonds", "cash")
            ]
            if all(p is not None for p in parts) and sum(parts) != 100:
                result.errors.append(f"{base}.allocation: percentages must sum to 100")

    history = period.history
    _check_non_negative(result, "history.initial_balance", history.initial_balance)
    prior_spending = _check_non_negative(result, "history.prior_year_spending", history.prior_year_spending)
    _decimal(result, "history.prior_year_return", history.prior_year_return)
    _check_non_negative(result, "history.cumulative_withdrawals", history.cumulative_withdrawals)
    _check_non_negative(result, "history.high_water_mark", history.high_water_mark)
    if history.last_ratchet_month is not None:
        if not MONTH_RE.match(str(history.last_ratchet_month)):
            result.errors.append(f"history.last_ratchet_month: '{history.last_ratchet_month}' is not valid; expected YYYY-MM")
        elif date_ok and history.last_ratchet_month > period.date[:7]:
            result.errors.append("history.last_ratchet_month: must not be after date")

    strategy = period.strategy
    _check_enum(result, "strategy.type", strategy.type, STRATEGY_TYPES)
    _check_rate(result, "strategy.withdrawal_rate", strategy.withdrawal_rate)
    _check_rate(result, "strategy.inflation_rate", strategy.inflation_rate)
    _check_rate(result, "strategy.marginal_tax_rate", strategy.marginal_tax_rate, inclusive_max=False)
    if strategy.guardrails.preset is not None:
        _check_enum(result, "strategy.guardrails.preset", strategy.guardrails.preset, PRESETS)
    for key, value in strategy.guardrails.overrides.items():
        _check_guardrail_override(result, key, value)
    if strategy.type != "guardrails" and (strategy.guardrails.preset or strategy.guardrails.overrides):
        result.warnings.append(f"strategy.guardrails: ignored for strategy type '{strategy.type}'")
    if strategy.type == "guardrails" and prior_spending == 0:
        result.warnings.append("history.prior_year_spending: zero; guardrails will use first-year rules")

    _check_enum(result, "sequencer", period.sequencer, SEQUENCERS)
    rmd_due = rmd_calculator.is_rmd_required(period.person.age, period.person.birth_year)
    if period.sequencer == "rmd_first" and not rmd_due:
        result.warnings.append("sequencer: 'rmd_first' selected before RMD age")
    if rmd_due and not period.enforce_rmd:
        result.warnings.append("enforce_rmd: disabled although RMDs are required at this age")

    return result
