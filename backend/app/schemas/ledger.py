from pydantic import BaseModel
from datetime import date
from typing import Literal

from app.schemas.rate import RateSyncStatusOut
from app.schemas.statement import DocumentFailureOut
from app.services.entries import LedgerEntry


def _f(v) -> float | None:
    return float(v) if v is not None else None


class LedgerRow(BaseModel):
    date: date
    kind: Literal["interest", "disbursement", "repayment"]
    amount: float
    interest_rate: float | None = None
    principal_outstanding: float
    interest_outstanding: float
    total_outstanding: float
    principal_share_percent: float | None = None
    principal_portion: float | None = None
    interest_portion: float | None = None
    conversion_rate: float | None = None
    amount_in_reference_currency: float | None = None
    rate_found: bool | None = None
    rate_observed_on: date | None = None

    @classmethod
    def from_entry(cls, e: LedgerEntry) -> "LedgerRow":
        return cls(
            date=e.date,
            kind=e.kind,
            amount=float(e.amount),
            interest_rate=_f(getattr(e.change, "rate", None)),
            principal_outstanding=float(e.principal_outstanding),
            interest_outstanding=float(e.interest_outstanding),
            total_outstanding=float(e.total_outstanding),
            principal_share_percent=_f(e.principal_share_percent),
            principal_portion=_f(e.principal_portion),
            interest_portion=_f(e.interest_portion),
            conversion_rate=_f(e.conversion_rate),
            amount_in_reference_currency=_f(e.amount_in_reference_currency),
            rate_found=e.rate_found,
            rate_observed_on=e.rate_observed_on,
        )


class LedgerOut(BaseModel):
    entries: list[LedgerRow]
    years: list[int]
    failures: list[DocumentFailureOut]
    rates: RateSyncStatusOut
