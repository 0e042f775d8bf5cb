"""Decimal helpers for currency and rate arithmetic."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .errors import ConfigurationError, InvalidValueError

ZERO = Decimal("0")
ONE = Decimal("1")
TWELVE = Decimal("12")
CENT = Decimal("0.01")
SCALE = Decimal("0.0000000001")


def to_decimal(value: Decimal | int | float | str | None, default: Decimal = ZERO) -> Decimal:
    """Coerce a number to Decimal; floats go through str() so 0.04 stays 0.04."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize(value: Decimal) -> Decimal:
    return value.quantize(SCALE, rounding=ROUND_HALF_UP)


def cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def fmt_money(value: Decimal) -> str:
    return format(cents(value), "f")


def fmt_rate(value: Decimal, places: int = 4) -> str:
    return format(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP), "f")


def monthly(annual: Decimal) -> Decimal:
    return quantize(annual / TWELVE)


def gross_up(net: Decimal, marginal_rate: Decimal) -> Decimal:
    """Return the gross amount that leaves `net` after tax at `marginal_rate`.

    Gross = net / (1 - rate). A rate of 100% or more has no solution and is
    rejected rather than clamped.
    """
    if marginal_rate < ZERO:
        raise InvalidValueError("marginal_tax_rate", "must be >= 0")
    if marginal_rate >= ONE:
        raise ConfigurationError(f"marginal_tax_rate: {marginal_rate} must be < 1")
    return quantize(net / (ONE - marginal_rate))
