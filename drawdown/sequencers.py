"""Account sequencers: which accounts to draw from first."""

from __future__ import annotations

from typing import Iterable, Protocol

from .accounts import AccountSnapshot, TaxTreatment
from .context import SpendingContext
from .errors import require
from .rmd import RmdCalculator

TAX_TREATMENT_RANK: dict[TaxTreatment, int] = {
    TaxTreatment.TAXABLE: 0,
    TaxTreatment.PRE_TAX: 1,
    TaxTreatment.ROTH: 2,
    TaxTreatment.HSA: 3,
}


class AccountSequencer(Protocol):
    name: str
    description: str
    is_rmd_aware: bool
    is_tax_aware: bool

    def sequence(self, context: SpendingContext) -> list[AccountSnapshot]: ...


def _with_balance(accounts: Iterable[AccountSnapshot]) -> list[AccountSnapshot]:
    return [a for a in accounts if a.has_balance]


class TaxEfficientSequencer:
    """Taxable, then pre-tax, then Roth, then HSA; smallest balance first within a tier."""

    name = "Tax-Efficient"
    description = (
        "Withdraws from taxable accounts first, then pre-tax, then Roth. "
        "Optimizes for tax-deferred growth."
    )
    is_rmd_aware = False
    is_tax_aware = True

    def sequence(self, context: SpendingContext) -> list[AccountSnapshot]:
        require(context, "context")
        return self.sequence_accounts(context.simulation.account_snapshots())

    def sequence_accounts(self, accounts: Iterable[AccountSnapshot]) -> list[AccountSnapshot]:
        return sorted(
            _with_balance(accounts),
            key=lambda a: (TAX_TREATMENT_RANK[a.tax_treatment], a.balance),
        )


class RmdFirstSequencer:
    """RMD-subject accounts first (largest balance first), then tax-efficient order."""

    name = "RMD-First"
    description = (
        "Prioritizes accounts subject to Required Minimum Distributions, "
        "then follows tax-efficient ordering for remaining accounts."
    )
    is_rmd_aware = True
    is_tax_aware = True

    def __init__(self, rmd_calculator: RmdCalculator) -> None:
        self.rmd_calculator = require(rmd_calculator, "rmd_calculator")
        self._fallback = TaxEfficientSequencer()

    def sequence(self, context: SpendingContext) -> list[AccountSnapshot]:
        require(context, "context")
        return self.sequence_accounts(context.simulation.account_snapshots())

    def sequence_accounts(self, accounts: Iterable[AccountSnapshot]) -> list[AccountSnapshot]:
        rmd_accounts: list[AccountSnapshot] = []
        other_accounts: list[AccountSnapshot] = []
        for account in _with_balance(accounts):
            if self.rmd_calculator.is_subject_to_rmd(account.account_type):
                rmd_accounts.append(account)
            else:
                other_accounts.append(account)
        rmd_accounts.sort(key=lambda a: a.balance, reverse=True)
        return rmd_accounts + self._fallback.sequence_accounts(other_accounts)
