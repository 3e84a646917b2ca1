from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal, Union

EntryKind = Literal["interest", "disbursement", "repayment"]


@dataclass(frozen=True)
class InterestAccrual:
    date: date
    amount: Decimal
    rate: Decimal  # fractional, 0.0595 == 5.95%
    kind: Literal["interest"] = "interest"


@dataclass(frozen=True)
class LoanDisbursement:
    date: date
    amount: Decimal
    kind: Literal["disbursement"] = "disbursement"


@dataclass(frozen=True)
class Repayment:
    date: date
    amount: Decimal
    kind: Literal["repayment"] = "repayment"


BalanceChange = Union[InterestAccrual, LoanDisbursement, Repayment]


@dataclass(frozen=True)
class Statement:
    period_from: date
    period_to: date
    opening_debit_balance: Decimal
    total_borrowed_in_period: Decimal
    interests: tuple[InterestAccrual, ...] = ()
    payments: tuple[LoanDisbursement, ...] = ()
    repayments: tuple[Repayment, ...] = ()

    def changes(self) -> list[BalanceChange]:
        """Events in extraction order: interests, then payments, then repayments."""
        return [*self.interests, *self.payments, *self.repayments]


@dataclass(frozen=True)
class LedgerEntry:
    """One extracted event plus the fields derived while building the ledger.

    Running totals are the post-update snapshot. The repayment-only fields stay
    None for other kinds, for a repayment made while nothing was outstanding
    (share) and when the rate table was not loaded (conversion).
    """

    change: BalanceChange
    interest_outstanding: Decimal
    principal_outstanding: Decimal
    principal_share_percent: Decimal | None = None
    principal_portion: Decimal | None = None  # rounded to pennies
    conversion_rate: Decimal | None = None
    amount_in_reference_currency: Decimal | None = None
    rate_found: bool | None = None
    rate_observed_on: date | None = None

    @property
    def date(self) -> date:
        return self.change.date

    @property
    def amount(self) -> Decimal:
        return self.change.amount

    @property
    def kind(self) -> EntryKind:
        return self.change.kind

    @property
    def total_outstanding(self) -> Decimal:
        return self.principal_outstanding + self.interest_outstanding

    @property
    def interest_portion(self) -> Decimal | None:
        p = self.principal_portion
        if p is None:
            return None
        return self.amount - p

    @property
    def principal_portion_in_reference(self) -> Decimal | None:
        if self.principal_share_percent is None or self.amount_in_reference_currency is None:
            return None
        return self.amount_in_reference_currency * self.principal_share_percent

    @property
    def interest_portion_in_reference(self) -> Decimal | None:
        p = self.principal_portion_in_reference
        if p is None:
            return None
        return self.amount_in_reference_currency - p
