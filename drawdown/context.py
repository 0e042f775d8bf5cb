"""Simulation view and per-period spending context."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Protocol, Sequence

from .accounts import AccountSnapshot
from .errors import require
from .money import ZERO, to_decimal

if TYPE_CHECKING:
    from .plan import SpendingPlan


class SimulationView(Protocol):
    """Read-only state the simulation driver exposes to strategies and sequencers."""

    def total_portfolio_balance(self) -> Decimal: ...

    def initial_portfolio_balance(self) -> Decimal: ...

    def account_snapshots(self) -> Sequence[AccountSnapshot]: ...

    def account_balance(self, account_id: str) -> Decimal: ...

    def prior_year_spending(self) -> Decimal: ...

    def prior_year_return(self) -> Decimal: ...

    def last_ratchet_month(self) -> date | None: ...

    def cumulative_withdrawals(self) -> Decimal: ...

    def high_water_mark_balance(self) -> Decimal: ...


@dataclass(frozen=True, slots=True)
class SimulationSnapshot:
    """In-memory SimulationView built from account snapshots and history values."""

    accounts: tuple[AccountSnapshot, ...] = ()
    initial_balance: Decimal | None = None
    prior_spending: Decimal = ZERO
    prior_return: Decimal = ZERO
    last_ratchet: date | None = None
    withdrawals_to_date: Decimal = ZERO
    high_water_mark: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", tuple(self.accounts))
        total = sum((a.balance for a in self.accounts), ZERO)
        object.__setattr__(self, "initial_balance", to_decimal(self.initial_balance, total))
        object.__setattr__(self, "prior_spending", to_decimal(self.prior_spending))
        object.__setattr__(self, "prior_return", to_decimal(self.prior_return))
        object.__setattr__(self, "withdrawals_to_date", to_decimal(self.withdrawals_to_date))
        object.__setattr__(self, "high_water_mark", max(to_decimal(self.high_water_mark, total), total))

    def total_portfolio_balance(self) -> Decimal:
        return sum((a.balance for a in self.accounts), ZERO)

    def initial_portfolio_balance(self) -> Decimal:
        return self.initial_balance

    def account_snapshots(self) -> tuple[AccountSnapshot, ...]:
        return self.accounts

    def account_balance(self, account_id: str) -> Decimal:
        for account in self.accounts:
            if account.account_id == account_id:
                return account.balance
        return ZERO

    def prior_year_spending(self) -> Decimal:
        return self.prior_spending

    def prior_year_return(self) -> Decimal:
        return self.prior_return

    def last_ratchet_month(self) -> date | None:
        return self.last_ratchet

    def cumulative_withdrawals(self) -> Decimal:
        return self.withdrawals_to_date

    def high_water_mark_balance(self) -> Decimal:
        return self.high_water_mark

    def after_plan(self, plan: "SpendingPlan") -> "SimulationSnapshot":
        """Return the snapshot that results from executing `plan` against this one."""
        new_balances = {w.account_id: w.new_balance for w in plan.account_withdrawals}
        accounts = tuple(
            replace(a, balance=new_balances[a.account_id]) if a.account_id in new_balances else a
            for a in self.accounts
        )
        return replace(
            self,
            accounts=accounts,
            withdrawals_to_date=self.withdrawals_to_date + plan.adjusted_withdrawal,
        )


def _months_between(start: date, end: date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


@dataclass(frozen=True, slots=True)
class SpendingContext:
    """Everything a strategy or sequencer may consult for one period.

    Built once per simulated period by the caller and discarded afterwards.
    Amounts are monthly; history values come from the simulation view.
    """

    simulation: SimulationView
    date: date
    retirement_start_date: date
    total_expenses: Decimal = ZERO
    other_income: Decimal = ZERO
    age: int = 0
    birth_year: int = 0
    current_taxable_income: Decimal = ZERO
    filing_status: str | None = None
    strategy_params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require(self.simulation, "simulation")
        require(self.date, "date")
        require(self.retirement_start_date, "retirement_start_date")
        object.__setattr__(self, "total_expenses", to_decimal(self.total_expenses))
        object.__setattr__(self, "other_income", to_decimal(self.other_income))
        object.__setattr__(self, "current_taxable_income", to_decimal(self.current_taxable_income))
        object.__setattr__(self, "strategy_params", MappingProxyType(dict(self.strategy_params or {})))

    def months_in_retirement(self) -> int:
        return _months_between(self.retirement_start_date, self.date)

    def years_in_retirement(self) -> int:
        return max(0, self.months_in_retirement() // 12)

    def income_gap(self) -> Decimal:
        return max(ZERO, self.total_expenses - self.other_income)

    def current_portfolio_balance(self) -> Decimal:
        return self.simulation.total_portfolio_balance()

    def initial_portfolio_balance(self) -> Decimal:
        return self.simulation.initial_portfolio_balance()

    def current_withdrawal_rate(self) -> Decimal:
        balance = self.current_portfolio_balance()
        if balance == ZERO:
            return ZERO
        rate = self.simulation.prior_year_spending() / balance
        return rate.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)

    def strategy_param(self, key: str, default: Any = None) -> Any:
        value = self.strategy_params.get(key)
        return default if value is None else value
