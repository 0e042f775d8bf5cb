"""Greedy in-order withdrawal pass."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Iterable

from .accounts import AccountSnapshot
from .money import ZERO
from .plan import AccountWithdrawal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WithdrawalPass:
    withdrawals: tuple[AccountWithdrawal, ...]
    remaining: Decimal

    @property
    def total_withdrawn(self) -> Decimal:
        return sum((w.amount for w in self.withdrawals), ZERO)


def withdraw_in_order(target: Decimal, ordered_accounts: Iterable[AccountSnapshot]) -> WithdrawalPass:
    """Draw `target` from accounts in the given order.

    Each account gives up the lesser of its balance and what is still
    needed. Stops as soon as the need is met; whatever cannot be covered is
    returned as `remaining`.
    """
    remaining = target
    withdrawals: list[AccountWithdrawal] = []
    seen: set[str] = set()
    for account in ordered_accounts:
        if remaining <= ZERO:
            break
        if account.account_id in seen or not account.has_balance:
            continue
        seen.add(account.account_id)

        amount = min(remaining, account.balance)
        withdrawals.append(AccountWithdrawal.from_snapshot(account, amount))
        remaining -= amount
        logger.debug("withdrew %s from %s (%s left to cover)", amount, account.account_name, max(ZERO, remaining))

    return WithdrawalPass(withdrawals=tuple(withdrawals), remaining=max(ZERO, remaining))
