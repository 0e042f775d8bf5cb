"""Period input dataclasses and JSON loading."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any


class SchemaError(ValueError):
    """Raised when raw JSON cannot be parsed into schema objects."""


_JSON_KINDS = {dict: "object", list: "array"}


def _expect(value: Any, kind: type, path: str) -> Any:
    if not isinstance(value, kind):
        raise SchemaError(f"{path}: expected {_JSON_KINDS[kind]}")
    return value


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise SchemaError(f"{path}.{key}: missing required field")
    return data[key]


def _optional(data: dict[str, Any], key: str, default: Any = None) -> Any:
    return data.get(key, default)


def _number(value: Any, path: str) -> str:
    # Keep the literal text so Decimal conversion later is exact.
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise SchemaError(f"{path}: expected number")
    return str(value)


def _optional_number(data: dict[str, Any], key: str, path: str) -> str | None:
    value = _optional(data, key)
    if value is None:
        return None
    return _number(value, f"{path}.{key}")


@dataclass(slots=True)
class Person:
    age: int
    birth_year: int
    retirement_start: str
    filing_status: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "person") -> "Person":
        return cls(
            age=int(_require(data, "age", path)),
            birth_year=int(_require(data, "birth_year", path)),
            retirement_start=_require(data, "retirement_start", path),
            filing_status=_optional(data, "filing_status"),
        )


@dataclass(slots=True)
class Allocation:
    stocks: str
    bonds: str
    cash: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Allocation":
        return cls(
            stocks=_number(_optional(data, "stocks", 60), f"{path}.stocks"),
            bonds=_number(_optional(data, "bonds", 40), f"{path}.bonds"),
            cash=_number(_optional(data, "cash", 0), f"{path}.cash"),
        )


@dataclass(slots=True)
class Account:
    id: str
    name: str
    type: str
    balance: str
    allocation: Allocation | None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Account":
        allocation_raw = _optional(data, "allocation")
        allocation = None
        if allocation_raw is not None:
            allocation = Allocation.from_dict(_expect(allocation_raw, dict, f"{path}.allocation"), f"{path}.allocation")
        name = _require(data, "name", path)
        return cls(
            id=str(_optional(data, "id", name)),
            name=name,
            type=_require(data, "type", path),
            balance=_number(_require(data, "balance", path), f"{path}.balance"),
            allocation=allocation,
        )


@dataclass(slots=True)
class History:
    initial_balance: str | None = None
    prior_year_spending: str = "0"
    prior_year_return: str = "0"
    last_ratchet_month: str | None = None
    cumulative_withdrawals: str = "0"
    high_water_mark: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "history") -> "History":
        return cls(
            initial_balance=_optional_number(data, "initial_balance", path),
            prior_year_spending=_number(_optional(data, "prior_year_spending", 0), f"{path}.prior_year_spending"),
            prior_year_return=_number(_optional(data, "prior_year_return", 0), f"{path}.prior_year_return"),
            last_ratchet_month=_optional(data, "last_ratchet_month"),
            cumulative_withdrawals=_number(
                _optional(data, "cumulative_withdrawals", 0), f"{path}.cumulative_withdrawals"
            ),
            high_water_mark=_optional_number(data, "high_water_mark", path),
        )


@dataclass(slots=True)
class GuardrailsSettings:
    preset: str | None = None
    overrides: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "strategy.guardrails") -> "GuardrailsSettings":
        overrides = dict(data)
        preset = overrides.pop("preset", None)
        return cls(preset=preset, overrides=overrides)


@dataclass(slots=True)
class StrategySettings:
    type: str = "static"
    withdrawal_rate: str | None = None
    inflation_rate: str | None = None
    adjust_for_inflation: bool = True
    marginal_tax_rate: str | None = None
    guardrails: GuardrailsSettings = field(default_factory=GuardrailsSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "strategy") -> "StrategySettings":
        return cls(
            type=_optional(data, "type", "static"),
            withdrawal_rate=_optional_number(data, "withdrawal_rate", path),
            inflation_rate=_optional_number(data, "inflation_rate", path),
            adjust_for_inflation=bool(_optional(data, "adjust_for_inflation", True)),
            marginal_tax_rate=_optional_number(data, "marginal_tax_rate", path),
            guardrails=GuardrailsSettings.from_dict(
                _expect(_optional(data, "guardrails", {}), dict, f"{path}.guardrails"), f"{path}.guardrails"
            ),
        )


@dataclass(slots=True)
class Period:
    date: str
    person: Person
    total_expenses: str
    other_income: str
    current_taxable_income: str
    accounts: list[Account]
    history: History
    strategy: StrategySettings
    sequencer: str
    enforce_rmd: bool
    strategy_params: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Period":
        return cls(
            date=_require(data, "date", "period"),
            person=Person.from_dict(_expect(_require(data, "person", "period"), dict, "person")),
            total_expenses=_number(_require(data, "total_expenses", "period"), "total_expenses"),
            other_income=_number(_optional(data, "other_income", 0), "other_income"),
            current_taxable_income=_number(_optional(data, "current_taxable_income", 0), "current_taxable_income"),
            accounts=[
                Account.from_dict(_expect(item, dict, f"accounts[{idx}]"), f"accounts[{idx}]")
                for idx, item in enumerate(_expect(_require(data, "accounts", "period"), list, "accounts"))
            ],
            history=History.from_dict(_expect(_optional(data, "history", {}), dict, "history")),
            strategy=StrategySettings.from_dict(_expect(_optional(data, "strategy", {}), dict, "strategy")),
            sequencer=_optional(data, "sequencer", "auto"),
            enforce_rmd=bool(_optional(data, "enforce_rmd", True)),
            strategy_params=dict(_expect(_optional(data, "strategy_params", {}), dict, "strategy_params")),
        )


def load_period(path: str | Path) -> Period:
    """Load period JSON into strongly-typed dataclasses."""
    source = Path(path)
    raw = json.loads(source.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise SchemaError("period: root must be a JSON object")
    return Period.from_dict(raw)
