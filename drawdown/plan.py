"""Spending plan value types."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .accounts import AccountSnapshot, AccountType, TaxTreatment
from .errors import InvalidValueError, require
from .money import ZERO, fmt_money, to_decimal


@dataclass(frozen=True, slots=True)
class AccountWithdrawal:
    account_id: str
    account_name: str
    account_type: AccountType
    amount: Decimal
    prior_balance: Decimal
    tax_treatment: TaxTreatment | None = None

    def __post_init__(self) -> None:
        require(self.account_id, "account_id")
        require(self.account_type, "account_type")
        amount = to_decimal(self.amount)
        prior = to_decimal(self.prior_balance)
        if amount < ZERO:
            raise InvalidValueError("amount", "must be >= 0")
        if amount > prior:
            raise InvalidValueError("amount", f"{amount} exceeds prior balance {prior} of '{self.account_id}'")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "prior_balance", prior)
        if self.tax_treatment is None:
            object.__setattr__(self, "tax_treatment", self.account_type.tax_treatment)

    @classmethod
    def from_snapshot(cls, account: AccountSnapshot, amount: Decimal) -> "AccountWithdrawal":
        return cls(
            account_id=account.account_id,
            account_name=account.account_name,
            account_type=account.account_type,
            amount=amount,
            prior_balance=account.balance,
            tax_treatment=account.tax_treatment,
        )

    @property
    def new_balance(self) -> Decimal:
        return self.prior_balance - self.amount

    @property
    def is_taxable(self) -> bool:
        return self.tax_treatment is TaxTreatment.PRE_TAX

    @property
    def is_depleted(self) -> bool:
        return self.new_balance == ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "account_type": self.account_type.key,
            "tax_treatment": self.tax_treatment.value,
            "amount": fmt_money(self.amount),
            "prior_balance": fmt_money(self.prior_balance),
            "new_balance": fmt_money(self.new_balance),
        }


@dataclass(frozen=True, slots=True)
class SpendingPlan:
    """Outcome of a strategy calculation or an orchestrated withdrawal pass.

    `shortfall` and `meets_target` are derived from the target and the
    executed amount, so they can never disagree with each other.
    """

    target_withdrawal: Decimal = ZERO
    adjusted_withdrawal: Decimal = ZERO
    account_withdrawals: tuple[AccountWithdrawal, ...] = ()
    strategy_used: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "target_withdrawal", to_decimal(self.target_withdrawal))
        object.__setattr__(self, "adjusted_withdrawal", to_decimal(self.adjusted_withdrawal))
        object.__setattr__(self, "account_withdrawals", tuple(self.account_withdrawals))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def no_withdrawal_needed(cls, strategy_used: str | None) -> "SpendingPlan":
        return cls(strategy_used=strategy_used, metadata={"reason": "no withdrawal needed"})

    @property
    def shortfall(self) -> Decimal:
        return max(ZERO, self.target_withdrawal - self.adjusted_withdrawal)

    @property
    def meets_target(self) -> bool:
        return self.shortfall == ZERO

    def total_withdrawn(self) -> Decimal:
        return _sum(w.amount for w in self.account_withdrawals)

    def total_taxable_amount(self) -> Decimal:
        return _sum(w.amount for w in self.account_withdrawals if w.is_taxable)

    def total_tax_free_amount(self) -> Decimal:
        return _sum(w.amount for w in self.account_withdrawals if not w.is_taxable)

    def depleted_account_count(self) -> int:
        return sum(1 for w in self.account_withdrawals if w.is_depleted)

    def has_depleted_accounts(self) -> bool:
        return self.depleted_account_count() > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy_used,
            "target_withdrawal": fmt_money(self.target_withdrawal),
            "adjusted_withdrawal": fmt_money(self.adjusted_withdrawal),
            "meets_target": self.meets_target,
            "shortfall": fmt_money(self.shortfall),
            "account_withdrawals": [w.to_dict() for w in self.account_withdrawals],
            "metadata": dict(self.metadata),
        }


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)
