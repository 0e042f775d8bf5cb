from datetime import date
from decimal import Decimal

import pytest

from drawdown.accounts import AccountType
from drawdown.errors import MissingRequiredFieldError
from drawdown.orchestrator import DefaultSpendingOrchestrator
from drawdown.sequencers import RmdFirstSequencer, TaxEfficientSequencer
from drawdown.strategies import IncomeGapStrategy, StaticSpendingStrategy
from tests.helpers import make_account, make_context


def _accounts():
    return [
        make_account("Roth", AccountType.ROTH_IRA, 100000),
        make_account("Trad-401k", AccountType.TRADITIONAL_401K, 200000),
        make_account("Brokerage", AccountType.TAXABLE_BROKERAGE, 2000),
    ]


def test_withdraws_in_tax_efficient_order():
    context = make_context(_accounts(), expenses="5000")
    plan = DefaultSpendingOrchestrator().execute(IncomeGapStrategy(), context, TaxEfficientSequencer())

    assert [w.account_name for w in plan.account_withdrawals] == ["Brokerage", "Trad-401k"]
    assert [w.amount for w in plan.account_withdrawals] == [Decimal("2000"), Decimal("3000")]
    assert plan.adjusted_withdrawal == Decimal("5000")
    assert plan.meets_target
    assert plan.metadata["sequencer"] == "Tax-Efficient"
    assert plan.metadata["accountsUsed"] == "2"
    assert plan.metadata["incomeGap"] == "5000.00"


def test_sum_of_withdrawals_equals_adjusted():
    context = make_context(_accounts(), initial_balance=1000000, on=date(2020, 1, 1), retired=date(2020, 1, 1))
    plan = DefaultSpendingOrchestrator().execute(StaticSpendingStrategy(), context)

    assert plan.total_withdrawn() == plan.adjusted_withdrawal
    assert plan.strategy_used == "Static 4%"
    for withdrawal in plan.account_withdrawals:
        assert withdrawal.amount <= withdrawal.prior_balance


def test_zero_target_means_no_withdrawal():
    context = make_context(_accounts(), expenses="1000", other_income="2000")
    plan = DefaultSpendingOrchestrator().execute(IncomeGapStrategy(), context)

    assert plan.account_withdrawals == ()
    assert plan.metadata["reason"] == "no withdrawal needed"
    assert plan.strategy_used == "Income Gap"
    assert plan.meets_target


def test_shortfall_when_portfolio_too_small(caplog):
    accounts = [
        make_account("Roth", AccountType.ROTH_IRA, 700),
        make_account("Brokerage", AccountType.TAXABLE_BROKERAGE, 300),
    ]
    context = make_context(accounts, expenses="4000")
    with caplog.at_level("WARNING"):
        plan = DefaultSpendingOrchestrator().execute(IncomeGapStrategy(), context)

    assert plan.target_withdrawal == Decimal("4000")
    assert plan.adjusted_withdrawal == Decimal("1000")
    assert plan.shortfall == Decimal("3000")
    assert not plan.meets_target
    assert plan.depleted_account_count() == 2
    assert "shortfall" in caplog.text


def test_default_sequencer_depends_on_rmd_age():
    orchestrator = DefaultSpendingOrchestrator()
    assert isinstance(orchestrator.select_default_sequencer(make_context(age=65, birth_year=1960)), TaxEfficientSequencer)
    assert isinstance(orchestrator.select_default_sequencer(make_context(age=76, birth_year=1949)), RmdFirstSequencer)


def test_execute_is_deterministic():
    context = make_context(_accounts(), expenses="150000")
    orchestrator = DefaultSpendingOrchestrator()
    first = orchestrator.execute(IncomeGapStrategy(), context)
    second = orchestrator.execute(IncomeGapStrategy(), context)
    assert first.to_dict() == second.to_dict()
    assert first.shortfall == Decimal("0")


def test_missing_inputs_raise():
    orchestrator = DefaultSpendingOrchestrator()
    with pytest.raises(MissingRequiredFieldError, match="strategy"):
        orchestrator.execute(None, make_context())
    with pytest.raises(MissingRequiredFieldError, match="context"):
        orchestrator.execute(IncomeGapStrategy(), None)
