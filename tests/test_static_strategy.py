from datetime import date
from decimal import Decimal

import pytest

from drawdown.accounts import AccountType
from drawdown.errors import InvalidValueError
from drawdown.money import cents
from drawdown.strategies import StaticSpendingStrategy
from tests.helpers import make_account, make_context


def _million(**kwargs):
    accounts = [make_account("Brokerage", AccountType.TAXABLE_BROKERAGE, 1000000)]
    return make_context(accounts, **kwargs)


def test_year_zero_monthly_target():
    context = _million(on=date(2020, 1, 1), retired=date(2020, 1, 1))
    plan = StaticSpendingStrategy(Decimal("0.04"), Decimal("0.025")).calculate_withdrawal(context)

    assert cents(plan.target_withdrawal) == Decimal("3333.33")
    assert plan.adjusted_withdrawal == plan.target_withdrawal
    assert plan.strategy_used == "Static 4%"
    assert plan.metadata["yearsInRetirement"] == "0"
    assert plan.metadata["year1AnnualAmount"] == "40000.00"
    assert plan.metadata["ruleBasedMonthly"] == "3333.33"


def test_inflation_compounds_by_whole_years():
    context = _million(on=date(2025, 6, 1), retired=date(2020, 1, 1))
    plan = StaticSpendingStrategy().calculate_withdrawal(context)

    assert plan.metadata["yearsInRetirement"] == "5"
    assert plan.metadata["currentAnnualAmount"] == "45256.33"
    assert cents(plan.target_withdrawal) == Decimal("3771.36")


def test_no_inflation_adjustment_keeps_year_one_amount():
    context = _million(on=date(2025, 6, 1), retired=date(2020, 1, 1))
    plan = StaticSpendingStrategy(adjust_for_inflation=False).calculate_withdrawal(context)

    assert plan.metadata["adjustForInflation"] == "false"
    assert cents(plan.target_withdrawal) == Decimal("3333.33")


def test_target_capped_at_income_gap():
    context = _million(expenses="2500", other_income="500")
    plan = StaticSpendingStrategy().calculate_withdrawal(context)
    assert plan.target_withdrawal == Decimal("2000")
    assert plan.metadata["incomeGap"] == "2000.00"


def test_adjusted_capped_at_current_balance():
    accounts = [make_account("Roth", AccountType.ROTH_IRA, 1000)]
    context = make_context(accounts, initial_balance=1000000)
    plan = StaticSpendingStrategy().calculate_withdrawal(context)

    assert cents(plan.target_withdrawal) == Decimal("3333.33")
    assert plan.adjusted_withdrawal == Decimal("1000")
    assert not plan.meets_target


def test_name_and_description():
    strategy = StaticSpendingStrategy(Decimal("0.035"), Decimal("0.03"))
    assert strategy.name == "Static 4%"
    assert strategy.description == (
        "Withdraws 3.5% of initial portfolio balance annually, adjusted for 3.0% inflation"
    )
    assert not strategy.is_dynamic
    assert not strategy.requires_prior_year_state


def test_negative_rate_rejected():
    with pytest.raises(InvalidValueError, match="withdrawal_rate"):
        StaticSpendingStrategy(Decimal("-0.01"))
