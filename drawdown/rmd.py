"""Required Minimum Distribution helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .accounts import AccountType
from .errors import InvalidValueError
from .money import ZERO, cents, to_decimal

# IRS Uniform Lifetime Table (2022 update).
UNIFORM_LIFETIME_DIVISORS: dict[int, Decimal] = {
    age: Decimal(divisor)
    for age, divisor in {
        72: "27.4",
        73: "26.5",
        74: "25.5",
        75: "24.6",
        76: "23.7",
        77: "22.9",
        78: "22.0",
        79: "21.1",
        80: "20.2",
        81: "19.4",
        82: "18.5",
        83: "17.7",
        84: "16.8",
        85: "16.0",
        86: "15.2",
        87: "14.4",
        88: "13.7",
        89: "12.9",
        90: "12.2",
        91: "11.5",
        92: "10.8",
        93: "10.1",
        94: "9.5",
        95: "8.9",
        96: "8.4",
        97: "7.8",
        98: "7.3",
        99: "6.8",
        100: "6.4",
        101: "6.0",
        102: "5.6",
        103: "5.2",
        104: "4.9",
        105: "4.6",
        106: "4.3",
        107: "4.1",
        108: "3.9",
        109: "3.7",
        110: "3.5",
        111: "3.4",
        112: "3.3",
        113: "3.1",
        114: "3.0",
        115: "2.9",
        116: "2.8",
        117: "2.7",
        118: "2.5",
        119: "2.3",
        120: "2.0",
    }.items()
}

# SECURE 2.0 start ages: (birth_year_min, birth_year_max, start_age); None is open-ended.
RMD_START_AGES: tuple[tuple[int | None, int | None, int], ...] = (
    (None, 1950, 72),
    (1951, 1959, 73),
    (1960, None, 75),
)

DEFAULT_START_AGE = 75


@dataclass(frozen=True, slots=True)
class RmdProjection:
    year: int
    prior_year_end_balance: Decimal
    age: int
    required: bool
    amount: Decimal
    distribution_factor: Decimal
    first_year: bool

    @classmethod
    def not_required(cls, year: int, balance: Decimal, age: int) -> "RmdProjection":
        return cls(
            year=year,
            prior_year_end_balance=balance,
            age=age,
            required=False,
            amount=ZERO,
            distribution_factor=ZERO,
            first_year=False,
        )


class RmdCalculator:
    """Uniform Lifetime Table lookups and SECURE 2.0 start-age rules."""

    def __init__(
        self,
        divisors: dict[int, Decimal] | None = None,
        start_ages: tuple[tuple[int | None, int | None, int], ...] | None = None,
    ) -> None:
        self._divisors = dict(divisors if divisors is not None else UNIFORM_LIFETIME_DIVISORS)
        self._start_ages = start_ages if start_ages is not None else RMD_START_AGES

    def rmd_start_age(self, birth_year: int) -> int:
        for low, high, start_age in self._start_ages:
            if (low is None or birth_year >= low) and (high is None or birth_year <= high):
                return start_age
        return DEFAULT_START_AGE

    def first_rmd_year(self, birth_year: int) -> int:
        return birth_year + self.rmd_start_age(birth_year)

    def is_rmd_required(self, age: int, birth_year: int) -> bool:
        return age >= self.rmd_start_age(birth_year)

    def is_subject_to_rmd(self, account_type: AccountType) -> bool:
        return account_type.subject_to_rmd

    def distribution_factor(self, age: int) -> Decimal:
        if age in self._divisors:
            return self._divisors[age]
        if self._divisors and age > max(self._divisors):
            return self._divisors[max(self._divisors)]
        return ZERO

    def calculate_rmd(self, balance: Decimal | int | str, age: int) -> Decimal:
        """Annual RMD for a prior year-end balance, rounded to cents."""
        amount = to_decimal(balance)
        if amount < ZERO:
            raise InvalidValueError("balance", "must be >= 0")
        factor = self.distribution_factor(age)
        if factor == ZERO or amount == ZERO:
            return ZERO
        return cents(amount / factor)

    def project(self, balance: Decimal | int | str, age: int, birth_year: int, year: int) -> RmdProjection:
        prior_balance = to_decimal(balance)
        start_age = self.rmd_start_age(birth_year)
        if age < start_age:
            return RmdProjection.not_required(year, prior_balance, age)
        return RmdProjection(
            year=year,
            prior_year_end_balance=prior_balance,
            age=age,
            required=True,
            amount=self.calculate_rmd(prior_balance, age),
            distribution_factor=self.distribution_factor(age),
            first_year=age == start_age,
        )
