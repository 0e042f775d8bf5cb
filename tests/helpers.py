import copy
from datetime import date
from decimal import Decimal
import json
from pathlib import Path

from drawdown.accounts import AccountSnapshot, AccountType
from drawdown.context import SimulationSnapshot, SpendingContext


def write_period(tmp_path: Path, data: dict, filename: str = "period.json") -> Path:
    path = tmp_path / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def clone_period(data: dict) -> dict:
    return copy.deepcopy(data)


def make_account(name: str, account_type: AccountType, balance, account_id: str | None = None) -> AccountSnapshot:
    return AccountSnapshot(
        account_id=account_id or name,
        account_name=name,
        account_type=account_type,
        balance=Decimal(str(balance)),
    )


def make_context(
    accounts=(),
    *,
    on: date = date(2025, 6, 1),
    retired: date = date(2020, 1, 1),
    expenses="10000",
    other_income="0",
    age: int = 65,
    birth_year: int = 1960,
    initial_balance=None,
    prior_spending="0",
    prior_return="0",
    last_ratchet: date | None = None,
    params: dict | None = None,
) -> SpendingContext:
    simulation = SimulationSnapshot(
        accounts=tuple(accounts),
        initial_balance=None if initial_balance is None else Decimal(str(initial_balance)),
        prior_spending=Decimal(str(prior_spending)),
        prior_return=Decimal(str(prior_return)),
        last_ratchet=last_ratchet,
    )
    return SpendingContext(
        simulation=simulation,
        date=on,
        retirement_start_date=retired,
        total_expenses=Decimal(str(expenses)),
        other_income=Decimal(str(other_income)),
        age=age,
        birth_year=birth_year,
        strategy_params=params or {},
    )
