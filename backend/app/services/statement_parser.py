from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Sequence

import pdfplumber

from app.core.errors import ExtractionError
from app.services.entries import BalanceChange, InterestAccrual, LoanDisbursement, Repayment, Statement
from app.utils.timezone import today_local

log = logging.getLogger(__name__)

_DATE = r"(\d{2}/\d{2}/\d{4})"
_AMOUNT = r"(\d[\d,]*\.\d{2})"

PERIOD_RE = re.compile(
    r"This statement is for the following period:\s+" + _DATE + r"\s+-\s+" + _DATE,
    re.IGNORECASE,
)
OPENING_BALANCE_RE = re.compile(r"Opening debit balance on \d{2}/\d{2}/\d{4}\s+" + _AMOUNT, re.IGNORECASE)
TOTAL_BORROWED_RE = re.compile(
    r"Total loan\(?s?\)? borrowed(?: during statement period)?\s+" + _AMOUNT,
    re.IGNORECASE,
)


def parse_day(v: str) -> date:
    """DD/MM/YYYY -> date."""
    return datetime.strptime(v, "%d/%m/%Y").date()


def parse_amount(v: str) -> Decimal:
    return Decimal(v.replace(",", ""))


@dataclass(frozen=True)
class EntryRule:
    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], BalanceChange]


def _interest(m: re.Match[str]) -> InterestAccrual:
    return InterestAccrual(
        date=parse_day(m.group(1)),
        amount=parse_amount(m.group(3)),
        rate=Decimal(m.group(2)) / Decimal("100"),
    )


def _payment(m: re.Match[str]) -> LoanDisbursement:
    return LoanDisbursement(date=parse_day(m.group(1)), amount=parse_amount(m.group(2)))


def _repayment(m: re.Match[str]) -> Repayment:
    return Repayment(date=parse_day(m.group(1)), amount=parse_amount(m.group(2)))


# Recognised statement lines. Each rule scans the whole document independently.
ENTRY_RULES: tuple[EntryRule, ...] = (
    EntryRule(
        "interest",
        re.compile(_DATE + r"\s+Interest\s+(\d+(?:\.\d+)?)%\s+" + _AMOUNT),
        _interest,
    ),
    EntryRule(
        "disbursement",
        re.compile(_DATE + r"\s+Tuition Fee Loan Payment\s+" + _AMOUNT),
        _payment,
    ),
    EntryRule(
        "repayment",
        re.compile(_DATE + r"\s+Repayment Received\s+" + _AMOUNT),
        _repayment,
    ),
)


def _scan(rule: EntryRule, text: str) -> list[BalanceChange]:
    return [rule.build(m) for m in rule.pattern.finditer(text)]


def parse_statement(page_texts: Sequence[str]) -> Statement:
    """Build a Statement from the ordered page texts of one document.

    Missing header values degrade to defaults (today for the period, zero for
    balances); lines matching no rule are ignored.
    """
    text = " ".join(page_texts)

    try:
        m = PERIOD_RE.search(text)
        if m:
            period_from, period_to = parse_day(m.group(1)), parse_day(m.group(2))
        else:
            period_from = period_to = today_local()

        m = OPENING_BALANCE_RE.search(text)
        opening = parse_amount(m.group(1)) if m else Decimal("0")

        m = TOTAL_BORROWED_RE.search(text)
        borrowed = parse_amount(m.group(1)) if m else Decimal("0")

        found = {rule.name: _scan(rule, text) for rule in ENTRY_RULES}

        return Statement(
            period_from=period_from,
            period_to=period_to,
            opening_debit_balance=opening,
            total_borrowed_in_period=borrowed,
            interests=tuple(found["interest"]),
            payments=tuple(found["disbursement"]),
            repayments=tuple(found["repayment"]),
        )
    except (ValueError, ArithmeticError) as e:
        raise ExtractionError(detail=str(e)) from e


def _collapse_ws(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def read_page_texts(pdf_bytes: bytes) -> list[str]:
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            return [_collapse_ws(p.extract_text() or "") for p in pdf.pages]
    except Exception as e:
        raise ExtractionError("document_unreadable", str(e)) from e


@dataclass(frozen=True)
class DocumentFailure:
    filename: str
    code: str
    detail: str | None = None


def parse_documents(
    documents: Iterable[tuple[str, bytes]],
    *,
    reader: Callable[[bytes], list[str]] | None = None,
) -> tuple[list[Statement], list[DocumentFailure]]:
    """Extract every document on its own; one bad file does not stop the batch."""
    read = reader or read_page_texts
    statements: list[Statement] = []
    failures: list[DocumentFailure] = []
    for filename, data in documents:
        try:
            statements.append(parse_statement(read(data)))
        except ExtractionError as e:
            log.warning("statement %s skipped: %s", filename, e)
            failures.append(DocumentFailure(filename=filename, code=e.code, detail=e.detail))
    return statements, failures
