from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from app.core.errors import EmptyInputError
from app.services.entries import BalanceChange, LedgerEntry, Statement
from app.services.exchange_rates import ExchangeRateTable

log = logging.getLogger(__name__)

Q2 = Decimal("0.01")


def d2(x: Decimal) -> Decimal:
    return x.quantize(Q2, rounding=ROUND_HALF_UP)


def flatten_changes(statements: Sequence[Statement]) -> list[BalanceChange]:
    out: list[BalanceChange] = []
    for st in statements:
        out.extend(st.changes())
    return out


def build_ledger(statements: Sequence[Statement], rates: ExchangeRateTable | None = None) -> list[LedgerEntry]:
    """Merge all statement events into one dated ledger with running totals.

    Events are ordered by date with a stable sort, so same-day events keep
    statement order and, within a statement, interests before payments before
    repayments. Each repayment is split between principal and interest in the
    proportion outstanding at that moment; totals are not clamped at zero.
    """
    if not statements:
        raise EmptyInputError()

    changes = sorted(flatten_changes(statements), key=lambda c: c.date)

    convert = rates is not None and rates.loaded
    if not convert and any(c.kind == "repayment" for c in changes):
        log.warning("exchange rates unavailable, repayments left unconverted")

    interest = Decimal("0")
    principal = Decimal("0")
    rows: list[LedgerEntry] = []

    for c in changes:
        extra: dict = {}

        if c.kind == "interest":
            interest += c.amount
        elif c.kind == "disbursement":
            principal += c.amount
        elif c.kind == "repayment":
            outstanding = principal + interest
            if outstanding > 0:
                share = principal / outstanding
                principal_part = d2(c.amount * share)
                interest_part = c.amount - principal_part
                principal -= principal_part
                interest -= interest_part
                extra["principal_share_percent"] = share
                extra["principal_portion"] = principal_part

            if convert:
                hit = rates.lookup(c.date)
                extra["conversion_rate"] = hit.rate
                extra["amount_in_reference_currency"] = c.amount / hit.rate
                extra["rate_found"] = hit.found
                extra["rate_observed_on"] = hit.observed_on
        else:
            raise ValueError(f"unknown balance change kind: {c.kind!r}")

        rows.append(
            LedgerEntry(
                change=c,
                interest_outstanding=interest,
                principal_outstanding=principal,
                **extra,
            )
        )

    return rows
