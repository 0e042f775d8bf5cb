from decimal import Decimal

import pytest

from drawdown.accounts import AccountType
from drawdown.errors import InvalidValueError
from drawdown.plan import AccountWithdrawal, SpendingPlan
from tests.helpers import make_account


def _withdrawal(account_type: AccountType, amount: str, prior: str) -> AccountWithdrawal:
    return AccountWithdrawal.from_snapshot(make_account(account_type.key, account_type, prior), Decimal(amount))


def test_withdrawal_new_balance_and_depletion():
    w = _withdrawal(AccountType.TRADITIONAL_IRA, "500", "500")
    assert w.new_balance == Decimal("0")
    assert w.is_depleted
    assert w.is_taxable


@pytest.mark.parametrize(("amount", "prior"), [("-1", "100"), ("101", "100")])
def test_withdrawal_amount_bounded_by_prior_balance(amount, prior):
    with pytest.raises(InvalidValueError, match="amount"):
        AccountWithdrawal("a", "A", AccountType.ROTH_IRA, Decimal(amount), Decimal(prior))


def test_plan_shortfall_and_meets_target_agree():
    short = SpendingPlan(target_withdrawal=Decimal("100"), adjusted_withdrawal=Decimal("60"))
    assert short.shortfall == Decimal("40")
    assert not short.meets_target

    met = SpendingPlan(target_withdrawal=Decimal("100"), adjusted_withdrawal=Decimal("100"))
    assert met.shortfall == Decimal("0")
    assert met.meets_target


def test_plan_totals_split_by_tax_treatment():
    plan = SpendingPlan(
        target_withdrawal=Decimal("600"),
        adjusted_withdrawal=Decimal("600"),
        account_withdrawals=(
            _withdrawal(AccountType.TAXABLE_BROKERAGE, "100", "100"),
            _withdrawal(AccountType.TRADITIONAL_401K, "300", "1000"),
            _withdrawal(AccountType.ROTH_IRA, "200", "1000"),
        ),
    )
    assert plan.total_withdrawn() == Decimal("600")
    assert plan.total_taxable_amount() == Decimal("300")
    assert plan.total_tax_free_amount() == Decimal("300")
    assert plan.depleted_account_count() == 1
    assert plan.has_depleted_accounts()


def test_no_withdrawal_needed_plan():
    plan = SpendingPlan.no_withdrawal_needed("Income Gap")
    assert plan.target_withdrawal == Decimal("0")
    assert plan.account_withdrawals == ()
    assert plan.meets_target
    assert plan.metadata["reason"] == "no withdrawal needed"


def test_metadata_is_read_only_and_ordered():
    plan = SpendingPlan(metadata={"b": "1", "a": "2"})
    assert list(plan.metadata) == ["b", "a"]
    with pytest.raises(TypeError):
        plan.metadata["c"] = "3"


def test_to_dict_formats_money():
    plan = SpendingPlan(
        target_withdrawal=Decimal("100"),
        adjusted_withdrawal=Decimal("75.5"),
        account_withdrawals=(_withdrawal(AccountType.HSA, "75.5", "75.5"),),
        strategy_used="Income Gap",
    )
    data = plan.to_dict()
    assert data["adjusted_withdrawal"] == "75.50"
    assert data["shortfall"] == "24.50"
    assert data["meets_target"] is False
    assert data["account_withdrawals"][0]["account_type"] == "hsa"
    assert data["account_withdrawals"][0]["new_balance"] == "0.00"
