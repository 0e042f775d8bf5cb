"""Error types raised by the withdrawal engine."""

from __future__ import annotations

from typing import Any


class DrawdownError(Exception):
    """Base class for engine errors."""


class MissingRequiredFieldError(DrawdownError, ValueError):
    """Raised when a required input is missing."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"{field_name}: missing required field")
        self.field_name = field_name


class InvalidValueError(DrawdownError, ValueError):
    """Raised when an input is present but outside its allowed range."""

    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class ConfigurationError(DrawdownError, ValueError):
    """Raised when the caller supplies an inconsistent configuration."""


def require(value: Any, field_name: str) -> Any:
    if value is None:
        raise MissingRequiredFieldError(field_name)
    return value
