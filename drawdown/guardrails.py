"""Guardrails policy parameters and published presets."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import InvalidValueError
from .money import ZERO, to_decimal

DEFAULT_INFLATION = Decimal("0.025")

_DECIMAL_FIELDS = (
    "initial_withdrawal_rate",
    "inflation_rate",
    "upper_threshold_multiplier",
    "increase_adjustment",
    "lower_threshold_multiplier",
    "decrease_adjustment",
    "absolute_floor",
    "absolute_ceiling",
)


@dataclass(frozen=True, slots=True)
class GuardrailsConfiguration:
    """Parameters for guardrails-based dynamic spending.

    Threshold multipliers are relative to the initial withdrawal rate; a
    multiplier of None disables that guardrail. Floor and ceiling are annual
    amounts. `years_before_cap_preservation_ends` of 0 keeps the capital
    preservation rule active for the whole retirement.
    """

    initial_withdrawal_rate: Decimal = Decimal("0.04")
    inflation_rate: Decimal = DEFAULT_INFLATION
    upper_threshold_multiplier: Decimal | None = None
    increase_adjustment: Decimal = Decimal("0.10")
    lower_threshold_multiplier: Decimal | None = None
    decrease_adjustment: Decimal = Decimal("0.10")
    absolute_floor: Decimal | None = None
    absolute_ceiling: Decimal | None = None
    allow_spending_cuts: bool = True
    skip_inflation_on_down_years: bool = False
    minimum_years_between_ratchets: int = 1
    years_before_cap_preservation_ends: int = 0

    def __post_init__(self) -> None:
        for name in _DECIMAL_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            value = to_decimal(value)
            if value < ZERO:
                raise InvalidValueError(name, "must be >= 0")
            object.__setattr__(self, name, value)
        if self.minimum_years_between_ratchets < 0:
            raise InvalidValueError("minimum_years_between_ratchets", "must be >= 0")
        if self.years_before_cap_preservation_ends < 0:
            raise InvalidValueError("years_before_cap_preservation_ends", "must be >= 0")

    @classmethod
    def guyton_klinger(cls) -> "GuardrailsConfiguration":
        """Guyton-Klinger decision rules.

        Skip inflation in down years when the rate exceeds the initial rate,
        cut 10% when the rate exceeds 120% of initial, raise 10% when it
        drops below 80% of initial. Capital preservation stops after 15 years.
        """
        return cls(
            initial_withdrawal_rate=Decimal("0.052"),
            upper_threshold_multiplier=Decimal("0.80"),
            increase_adjustment=Decimal("0.10"),
            lower_threshold_multiplier=Decimal("1.20"),
            decrease_adjustment=Decimal("0.10"),
            allow_spending_cuts=True,
            skip_inflation_on_down_years=True,
            minimum_years_between_ratchets=1,
            years_before_cap_preservation_ends=15,
        )

    @classmethod
    def vanguard_dynamic(cls) -> "GuardrailsConfiguration":
        """Vanguard dynamic spending: +5% ceiling, -2.5% floor on annual changes."""
        return cls(
            initial_withdrawal_rate=Decimal("0.04"),
            increase_adjustment=Decimal("0.05"),
            decrease_adjustment=Decimal("0.025"),
        )

    @classmethod
    def kitces_ratcheting(cls) -> "GuardrailsConfiguration":
        """One-way ratchet: +10% once the portfolio reaches 150% of start, at most every 3 years."""
        return cls(
            initial_withdrawal_rate=Decimal("0.04"),
            upper_threshold_multiplier=Decimal("0.667"),
            increase_adjustment=Decimal("0.10"),
            decrease_adjustment=ZERO,
            allow_spending_cuts=False,
            minimum_years_between_ratchets=3,
        )

    @property
    def has_upper_guardrail(self) -> bool:
        return self.upper_threshold_multiplier is not None

    @property
    def has_lower_guardrail(self) -> bool:
        return self.lower_threshold_multiplier is not None and self.allow_spending_cuts

    @property
    def has_absolute_floor(self) -> bool:
        return self.absolute_floor is not None

    @property
    def has_absolute_ceiling(self) -> bool:
        return self.absolute_ceiling is not None


PRESETS = {
    "guyton_klinger": GuardrailsConfiguration.guyton_klinger,
    "vanguard_dynamic": GuardrailsConfiguration.vanguard_dynamic,
    "kitces_ratcheting": GuardrailsConfiguration.kitces_ratcheting,
}
