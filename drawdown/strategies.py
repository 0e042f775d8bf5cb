"""Spending strategies: how much to withdraw this period."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Protocol

from .context import SpendingContext
from .errors import InvalidValueError
from .guardrails import DEFAULT_INFLATION, GuardrailsConfiguration
from .money import ONE, ZERO, fmt_money, fmt_rate, gross_up, monthly, quantize, to_decimal
from .plan import SpendingPlan

logger = logging.getLogger(__name__)

DEFAULT_WITHDRAWAL_RATE = Decimal("0.04")
DEFAULT_INFLATION_RATE = DEFAULT_INFLATION

PARAM_INFLATION_RATE = "inflationRate"


class SpendingStrategy(Protocol):
    name: str
    description: str
    is_dynamic: bool
    requires_prior_year_state: bool

    def calculate_withdrawal(self, context: SpendingContext) -> SpendingPlan: ...


def _percent(rate: Decimal, places: int) -> str:
    return format((rate * 100).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP), "f")


def _capped_plan(
    context: SpendingContext,
    target: Decimal,
    strategy_used: str,
    metadata: dict[str, str],
) -> SpendingPlan:
    # Provisional execution: the whole portfolio is the most that can be drawn.
    balance = context.current_portfolio_balance()
    adjusted = target if balance >= target else max(ZERO, balance)
    return SpendingPlan(
        target_withdrawal=target,
        adjusted_withdrawal=adjusted,
        strategy_used=strategy_used,
        metadata=metadata,
    )


class StaticSpendingStrategy:
    """Constant percentage of the initial balance, optionally indexed to inflation.

    Year 1 annual amount is ``initial_balance * withdrawal_rate``; year N
    grows it by ``(1 + inflation_rate) ** years_in_retirement``. The monthly
    figure is capped at the income gap.
    """

    is_dynamic = False
    requires_prior_year_state = False

    def __init__(
        self,
        withdrawal_rate: Decimal | float | str | None = None,
        inflation_rate: Decimal | float | str | None = None,
        adjust_for_inflation: bool = True,
    ) -> None:
        self.withdrawal_rate = to_decimal(withdrawal_rate, DEFAULT_WITHDRAWAL_RATE)
        self.inflation_rate = to_decimal(inflation_rate, DEFAULT_INFLATION_RATE)
        self.adjust_for_inflation = adjust_for_inflation
        if self.withdrawal_rate < ZERO:
            raise InvalidValueError("withdrawal_rate", "must be >= 0")

    @property
    def name(self) -> str:
        return f"Static {_percent(self.withdrawal_rate, 0)}%"

    @property
    def description(self) -> str:
        text = f"Withdraws {_percent(self.withdrawal_rate, 1)}% of initial portfolio balance annually"
        if self.adjust_for_inflation:
            text += f", adjusted for {_percent(self.inflation_rate, 1)}% inflation"
        return text

    def calculate_withdrawal(self, context: SpendingContext) -> SpendingPlan:
        year1_annual = context.initial_portfolio_balance() * self.withdrawal_rate
        years = context.years_in_retirement()

        annual = year1_annual
        if self.adjust_for_inflation and years > 0:
            annual = year1_annual * quantize((ONE + self.inflation_rate) ** years)

        rule_monthly = monthly(annual)
        income_gap = context.income_gap()
        target = min(rule_monthly, income_gap)

        return _capped_plan(
            context,
            target,
            self.name,
            {
                "withdrawalRate": str(self.withdrawal_rate),
                "inflationRate": str(self.inflation_rate),
                "adjustForInflation": str(self.adjust_for_inflation).lower(),
                "yearsInRetirement": str(years),
                "year1AnnualAmount": fmt_money(year1_annual),
                "currentAnnualAmount": fmt_money(annual),
                "ruleBasedMonthly": fmt_money(rule_monthly),
                "incomeGap": fmt_money(income_gap),
            },
        )


class IncomeGapStrategy:
    """Withdraw exactly the gap between expenses and other income.

    With a marginal tax rate the gap is grossed up so the net amount left
    after tax still covers the gap.
    """

    name = "Income Gap"
    is_dynamic = False
    requires_prior_year_state = False

    def __init__(self, marginal_tax_rate: Decimal | float | str | None = None) -> None:
        self.marginal_tax_rate = to_decimal(marginal_tax_rate)
        self.gross_up_for_taxes = self.marginal_tax_rate > ZERO
        # Fail at construction for rates the gross-up cannot handle.
        gross_up(ZERO, self.marginal_tax_rate)

    @property
    def description(self) -> str:
        text = "Withdraws exactly the gap between expenses and other income"
        if self.gross_up_for_taxes:
            text += f", grossed up for {_percent(self.marginal_tax_rate, 0)}% taxes"
        return text

    def calculate_withdrawal(self, context: SpendingContext) -> SpendingPlan:
        income_gap = context.income_gap()
        target = income_gap
        if self.gross_up_for_taxes and income_gap > ZERO:
            target = gross_up(income_gap, self.marginal_tax_rate)

        return _capped_plan(
            context,
            target,
            self.name,
            {
                "incomeGap": fmt_money(income_gap),
                "totalExpenses": fmt_money(context.total_expenses),
                "otherIncome": fmt_money(context.other_income),
                "grossUpForTaxes": str(self.gross_up_for_taxes).lower(),
                "marginalTaxRate": str(self.marginal_tax_rate),
            },
        )


def _months_since(earlier: date, later: date) -> int:
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


class GuardrailsSpendingStrategy:
    """Dynamic spending that reacts to the current withdrawal rate.

    Rules are evaluated in order each period after the first: inflation
    (possibly skipped in a down year), the prosperity rule, the capital
    preservation rule, then the absolute floor and ceiling. Every decision
    is recorded in the plan metadata. History such as the last ratchet
    month is read from the simulation view; the strategy keeps no state.
    """

    name = "Guardrails"
    description = "Dynamic spending with guardrails-based adjustments for portfolio performance"
    is_dynamic = True
    requires_prior_year_state = True

    def __init__(self, config: GuardrailsConfiguration | None = None) -> None:
        self.config = config if config is not None else GuardrailsConfiguration.guyton_klinger()

    def calculate_withdrawal(self, context: SpendingContext) -> SpendingPlan:
        inflation_rate = self._inflation_rate(context)
        prior_spending = context.simulation.prior_year_spending()
        if prior_spending == ZERO:
            return self._first_year(context, inflation_rate)

        metadata: dict[str, str] = {"priorYearSpending": fmt_money(prior_spending)}
        base_spending = self._apply_inflation(prior_spending, context, inflation_rate, metadata)
        metadata["baseAfterInflation"] = fmt_money(base_spending)

        balance = context.current_portfolio_balance()
        if balance <= ZERO:
            metadata["reason"] = "portfolio depleted"
            logger.debug("guardrails skipped: portfolio depleted")
            adjusted = base_spending
        else:
            current_rate = base_spending / balance
            metadata["currentRate"] = fmt_rate(current_rate)
            adjusted = self._apply_guardrails(base_spending, current_rate, context, metadata)

        target = min(monthly(adjusted), context.income_gap())
        return _capped_plan(context, target, self.name, metadata)

    def _first_year(self, context: SpendingContext, inflation_rate: Decimal) -> SpendingPlan:
        annual = context.initial_portfolio_balance() * self.config.initial_withdrawal_rate
        target = min(monthly(annual), context.income_gap())
        return _capped_plan(
            context,
            target,
            self.name,
            {
                "firstYear": "true",
                "initialRate": str(self.config.initial_withdrawal_rate),
                "inflationRate": str(inflation_rate),
            },
        )

    def _apply_inflation(
        self,
        prior_spending: Decimal,
        context: SpendingContext,
        inflation_rate: Decimal,
        metadata: dict[str, str],
    ) -> Decimal:
        if (
            self.config.skip_inflation_on_down_years
            and context.simulation.prior_year_return() < ZERO
            and context.current_withdrawal_rate() > self.config.initial_withdrawal_rate
        ):
            metadata["inflationSkipped"] = "true"
            metadata["inflationReason"] = "negative prior year return with rate above initial"
            logger.debug("guardrails: inflation skipped after down year")
            return prior_spending
        return prior_spending * (ONE + inflation_rate)

    def _apply_guardrails(
        self,
        base_spending: Decimal,
        current_rate: Decimal,
        context: SpendingContext,
        metadata: dict[str, str],
    ) -> Decimal:
        config = self.config
        initial_rate = config.initial_withdrawal_rate
        adjusted = base_spending

        if config.has_upper_guardrail and current_rate < initial_rate * config.upper_threshold_multiplier:
            if self._can_ratchet(context):
                adjusted = adjusted * (ONE + config.increase_adjustment)
                metadata["adjustment"] = "increase"
                metadata["reason"] = "prosperity rule triggered"
                logger.debug("guardrails: prosperity rule raised spending to %s", adjusted)
            else:
                metadata["ratchet"] = "blocked"
                metadata["ratchetReason"] = "minimum years between ratchets not elapsed"

        if config.has_lower_guardrail and current_rate > initial_rate * config.lower_threshold_multiplier:
            years = context.years_in_retirement()
            sunset = config.years_before_cap_preservation_ends
            if sunset == 0 or years < sunset:
                adjusted = adjusted * (ONE - config.decrease_adjustment)
                metadata["adjustment"] = "decrease"
                metadata["reason"] = "capital preservation rule triggered"
                logger.debug("guardrails: capital preservation cut spending to %s", adjusted)
            else:
                metadata["capitalPreservation"] = "expired"

        if config.has_absolute_floor and adjusted < config.absolute_floor:
            adjusted = config.absolute_floor
            metadata["constraint"] = "floor applied"
        if config.has_absolute_ceiling and adjusted > config.absolute_ceiling:
            adjusted = config.absolute_ceiling
            metadata["constraint"] = "ceiling applied"

        return adjusted

    def _can_ratchet(self, context: SpendingContext) -> bool:
        min_years = self.config.minimum_years_between_ratchets
        if min_years <= 1:
            return True
        last_ratchet = context.simulation.last_ratchet_month()
        if last_ratchet is None:
            return True
        return _months_since(last_ratchet, context.date) >= min_years * 12

    def _inflation_rate(self, context: SpendingContext) -> Decimal:
        return to_decimal(context.strategy_param(PARAM_INFLATION_RATE), self.config.inflation_rate)
