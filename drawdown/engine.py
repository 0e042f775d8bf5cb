"""Assemble context, strategy, sequencer and orchestrator for one period."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
import logging

from .accounts import AccountSnapshot, AccountType, AssetAllocation
from .context import SimulationSnapshot, SpendingContext
from .errors import ConfigurationError
from .guardrails import PRESETS
from .orchestrator import DefaultSpendingOrchestrator, RmdAwareOrchestrator
from .plan import SpendingPlan
from .rmd import RmdCalculator
from .schema import Account, Period, StrategySettings
from .sequencers import AccountSequencer, RmdFirstSequencer, TaxEfficientSequencer
from .strategies import GuardrailsSpendingStrategy, IncomeGapStrategy, SpendingStrategy, StaticSpendingStrategy

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "guyton_klinger"


def _parse_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def _parse_month(value: str | None) -> date | None:
    if value is None:
        return None
    parsed = datetime.strptime(value, "%Y-%m")
    return date(parsed.year, parsed.month, 1)


def _optional_decimal(value: str | None) -> Decimal | None:
    return None if value is None else Decimal(value)


def build_account(account: Account) -> AccountSnapshot:
    allocation = None
    if account.allocation is not None:
        allocation = AssetAllocation(
            stocks=Decimal(account.allocation.stocks),
            bonds=Decimal(account.allocation.bonds),
            cash=Decimal(account.allocation.cash),
        )
    return AccountSnapshot.from_account_type(
        account_id=account.id,
        account_name=account.name,
        account_type=AccountType.from_key(account.type),
        balance=Decimal(account.balance),
        allocation=allocation,
    )


def build_simulation(period: Period) -> SimulationSnapshot:
    history = period.history
    return SimulationSnapshot(
        accounts=tuple(build_account(a) for a in period.accounts),
        initial_balance=_optional_decimal(history.initial_balance),
        prior_spending=Decimal(history.prior_year_spending),
        prior_return=Decimal(history.prior_year_return),
        last_ratchet=_parse_month(history.last_ratchet_month),
        withdrawals_to_date=Decimal(history.cumulative_withdrawals),
        high_water_mark=_optional_decimal(history.high_water_mark),
    )


def build_context(period: Period) -> SpendingContext:
    return SpendingContext(
        simulation=build_simulation(period),
        date=_parse_date(period.date),
        retirement_start_date=_parse_date(period.person.retirement_start),
        total_expenses=Decimal(period.total_expenses),
        other_income=Decimal(period.other_income),
        age=period.person.age,
        birth_year=period.person.birth_year,
        current_taxable_income=Decimal(period.current_taxable_income),
        filing_status=period.person.filing_status,
        strategy_params=period.strategy_params,
    )


def build_guardrails_strategy(settings: StrategySettings) -> GuardrailsSpendingStrategy:
    preset = settings.guardrails.preset or DEFAULT_PRESET
    if preset not in PRESETS:
        raise ConfigurationError(f"strategy.guardrails.preset: unknown preset '{preset}'")
    overrides = dict(settings.guardrails.overrides)
    if settings.inflation_rate is not None:
        overrides.setdefault("inflation_rate", settings.inflation_rate)
    try:
        config = replace(PRESETS[preset](), **overrides)
    except TypeError as exc:
        raise ConfigurationError(f"strategy.guardrails: {exc}") from exc
    return GuardrailsSpendingStrategy(config)


def build_strategy(settings: StrategySettings) -> SpendingStrategy:
    if settings.type == "static":
        return StaticSpendingStrategy(
            withdrawal_rate=settings.withdrawal_rate,
            inflation_rate=settings.inflation_rate,
            adjust_for_inflation=settings.adjust_for_inflation,
        )
    if settings.type == "income_gap":
        return IncomeGapStrategy(marginal_tax_rate=settings.marginal_tax_rate)
    if settings.type == "guardrails":
        return build_guardrails_strategy(settings)
    raise ConfigurationError(f"strategy.type: unknown strategy '{settings.type}'")


def build_sequencer(name: str, rmd_calculator: RmdCalculator) -> AccountSequencer | None:
    """Return the named sequencer, or None for 'auto' so the orchestrator picks one."""
    if name == "auto":
        return None
    if name == "tax_efficient":
        return TaxEfficientSequencer()
    if name == "rmd_first":
        return RmdFirstSequencer(rmd_calculator)
    raise ConfigurationError(f"sequencer: unknown sequencer '{name}'")


def plan_period(
    period: Period,
    strategy_override: str | None = None,
    sequencer_override: str | None = None,
    enforce_rmd: bool | None = None,
    rmd_calculator: RmdCalculator | None = None,
) -> SpendingPlan:
    rmd_calculator = rmd_calculator or RmdCalculator()
    settings = period.strategy
    if strategy_override is not None:
        settings = replace(settings, type=strategy_override)

    context = build_context(period)
    strategy = build_strategy(settings)
    sequencer = build_sequencer(sequencer_override or period.sequencer, rmd_calculator)
    if enforce_rmd is None:
        enforce_rmd = period.enforce_rmd

    if enforce_rmd:
        orchestrator = RmdAwareOrchestrator(rmd_calculator)
    else:
        orchestrator = DefaultSpendingOrchestrator(rmd_calculator)
    logger.debug("planning %s with %s via %s", period.date, strategy.name, type(orchestrator).__name__)
    return orchestrator.execute(strategy, context, sequencer)
