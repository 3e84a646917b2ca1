from datetime import date
from typing import Literal

from pydantic import BaseModel

from app.services.entries import Statement
from app.services.statement_parser import DocumentFailure


class BalanceChangeOut(BaseModel):
    kind: Literal["interest", "disbursement", "repayment"]
    date: date
    amount: float
    rate: float | None = None


class StatementOut(BaseModel):
    period_from: date
    period_to: date
    opening_debit_balance: float
    total_borrowed_in_period: float
    interests: list[BalanceChangeOut]
    payments: list[BalanceChangeOut]
    repayments: list[BalanceChangeOut]

    @classmethod
    def from_statement(cls, st: Statement) -> "StatementOut":
        def _row(c) -> BalanceChangeOut:
            rate = getattr(c, "rate", None)
            return BalanceChangeOut(
                kind=c.kind,
                date=c.date,
                amount=float(c.amount),
                rate=float(rate) if rate is not None else None,
            )

        return cls(
            period_from=st.period_from,
            period_to=st.period_to,
            opening_debit_balance=float(st.opening_debit_balance),
            total_borrowed_in_period=float(st.total_borrowed_in_period),
            interests=[_row(c) for c in st.interests],
            payments=[_row(c) for c in st.payments],
            repayments=[_row(c) for c in st.repayments],
        )


class DocumentFailureOut(BaseModel):
    filename: str
    code: str
    detail: str | None = None

    @classmethod
    def from_failure(cls, f: DocumentFailure) -> "DocumentFailureOut":
        return cls(filename=f.filename, code=f.code, detail=f.detail)


class StatementsOut(BaseModel):
    statements: list[StatementOut]
    failures: list[DocumentFailureOut]
