from decimal import Decimal

import pytest

from drawdown.accounts import AccountType
from drawdown.errors import ConfigurationError, InvalidValueError
from drawdown.money import gross_up
from drawdown.strategies import IncomeGapStrategy
from tests.helpers import make_account, make_context


def _context(expenses: str, other_income: str, balance=500000):
    accounts = [make_account("Brokerage", AccountType.TAXABLE_BROKERAGE, balance)]
    return make_context(accounts, expenses=expenses, other_income=other_income)


def test_target_is_income_gap():
    plan = IncomeGapStrategy().calculate_withdrawal(_context("5000", "2000"))
    assert plan.target_withdrawal == Decimal("3000")
    assert plan.strategy_used == "Income Gap"
    assert plan.metadata["grossUpForTaxes"] == "false"
    assert plan.metadata["totalExpenses"] == "5000.00"
    assert plan.metadata["otherIncome"] == "2000.00"


def test_no_gap_gives_zero_target():
    plan = IncomeGapStrategy().calculate_withdrawal(_context("2000", "5000"))
    assert plan.target_withdrawal == Decimal("0")
    assert plan.adjusted_withdrawal == Decimal("0")


def test_gross_up_for_taxes():
    strategy = IncomeGapStrategy(Decimal("0.25"))
    plan = strategy.calculate_withdrawal(_context("5000", "2000"))
    assert plan.target_withdrawal == Decimal("4000")
    assert plan.metadata["incomeGap"] == "3000.00"
    assert plan.metadata["grossUpForTaxes"] == "true"
    assert strategy.description.endswith("grossed up for 25% taxes")


def test_adjusted_limited_by_balance():
    plan = IncomeGapStrategy().calculate_withdrawal(_context("5000", "0", balance=1200))
    assert plan.target_withdrawal == Decimal("5000")
    assert plan.adjusted_withdrawal == Decimal("1200")
    assert plan.shortfall == Decimal("3800")


def test_marginal_rate_of_one_is_configuration_error():
    with pytest.raises(ConfigurationError, match="marginal_tax_rate"):
        IncomeGapStrategy(Decimal("1"))
    with pytest.raises(ConfigurationError):
        gross_up(Decimal("100"), Decimal("1.5"))


def test_negative_marginal_rate_rejected():
    with pytest.raises(InvalidValueError, match="marginal_tax_rate"):
        IncomeGapStrategy(Decimal("-0.1"))
