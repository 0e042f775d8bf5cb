"""Account types and immutable account snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from .errors import InvalidValueError, MissingRequiredFieldError, require
from .money import ZERO, to_decimal


class TaxTreatment(Enum):
    TAXABLE = "taxable"
    PRE_TAX = "pre_tax"
    ROTH = "roth"
    HSA = "hsa"


class AccountType(Enum):
    # key, display name, tax treatment, employer sponsored, subject to RMD
    TRADITIONAL_401K = ("traditional_401k", "Traditional 401(k)", TaxTreatment.PRE_TAX, True, True)
    ROTH_401K = ("roth_401k", "Roth 401(k)", TaxTreatment.ROTH, True, True)
    TRADITIONAL_IRA = ("traditional_ira", "Traditional IRA", TaxTreatment.PRE_TAX, False, True)
    ROTH_IRA = ("roth_ira", "Roth IRA", TaxTreatment.ROTH, False, False)
    HSA = ("hsa", "Health Savings Account", TaxTreatment.HSA, False, False)
    TAXABLE_BROKERAGE = ("taxable_brokerage", "Taxable Brokerage", TaxTreatment.TAXABLE, False, False)
    TRADITIONAL_403B = ("traditional_403b", "Traditional 403(b)", TaxTreatment.PRE_TAX, True, True)
    ROTH_403B = ("roth_403b", "Roth 403(b)", TaxTreatment.ROTH, True, True)
    TRADITIONAL_457B = ("traditional_457b", "Traditional 457(b)", TaxTreatment.PRE_TAX, True, True)

    def __init__(
        self,
        key: str,
        display_name: str,
        tax_treatment: TaxTreatment,
        employer_sponsored: bool,
        subject_to_rmd: bool,
    ) -> None:
        self.key = key
        self.display_name = display_name
        self.tax_treatment = tax_treatment
        self.employer_sponsored = employer_sponsored
        self.subject_to_rmd = subject_to_rmd

    @classmethod
    def from_key(cls, key: str) -> "AccountType":
        for member in cls:
            if member.key == key:
                return member
        raise InvalidValueError("account_type", f"'{key}' is not a known account type")


ACCOUNT_TYPE_KEYS = frozenset(member.key for member in AccountType)


@dataclass(frozen=True, slots=True)
class AssetAllocation:
    stocks: Decimal = Decimal("60")
    bonds: Decimal = Decimal("40")
    cash: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("stocks", "bonds", "cash"):
            value = to_decimal(getattr(self, name))
            if value < ZERO:
                raise InvalidValueError(f"allocation.{name}", "must be >= 0")
            object.__setattr__(self, name, value)
        total = self.stocks + self.bonds + self.cash
        if total != Decimal("100"):
            raise InvalidValueError("allocation", f"percentages must sum to 100, got {total}")

    @classmethod
    def balanced(cls) -> "AssetAllocation":
        return cls()


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """Read-only view of one account as of the current period.

    Produced fresh each period by the simulation driver. Tax treatment and
    RMD eligibility default to those of the account type but may be
    overridden (e.g. an inherited account).
    """

    account_id: str
    account_name: str
    account_type: AccountType
    balance: Decimal
    tax_treatment: TaxTreatment | None = None
    subject_to_rmd: bool | None = None
    allocation: AssetAllocation = field(default_factory=AssetAllocation)

    def __post_init__(self) -> None:
        require(self.account_id, "account_id")
        require(self.account_name, "account_name")
        require(self.account_type, "account_type")
        if self.balance is None:
            raise MissingRequiredFieldError("balance")
        balance = to_decimal(self.balance)
        if balance < ZERO:
            raise InvalidValueError("balance", f"must be >= 0 for account '{self.account_id}'")
        object.__setattr__(self, "balance", balance)
        if self.tax_treatment is None:
            object.__setattr__(self, "tax_treatment", self.account_type.tax_treatment)
        if self.subject_to_rmd is None:
            object.__setattr__(self, "subject_to_rmd", self.account_type.subject_to_rmd)

    @classmethod
    def from_account_type(
        cls,
        account_id: str,
        account_name: str,
        account_type: AccountType | str,
        balance: Decimal | int | float | str,
        allocation: AssetAllocation | None = None,
    ) -> "AccountSnapshot":
        if isinstance(account_type, str):
            account_type = AccountType.from_key(account_type)
        return cls(
            account_id=account_id,
            account_name=account_name,
            account_type=account_type,
            balance=balance,
            allocation=allocation if allocation is not None else AssetAllocation.balanced(),
        )

    @property
    def has_balance(self) -> bool:
        return self.balance > ZERO

    @property
    def is_taxable(self) -> bool:
        """True when withdrawals count as ordinary income."""
        return self.tax_treatment is TaxTreatment.PRE_TAX

    @property
    def is_employer_sponsored(self) -> bool:
        return self.account_type.employer_sponsored
