from datetime import date
from decimal import Decimal, DefaultContext, localcontext

import pytest

from app.core.errors import EmptyInputError
from app.services.entries import InterestAccrual, LoanDisbursement, Repayment, Statement
from app.services.exchange_rates import ExchangeRateTable, RateObservation
from app.services.ledger import build_ledger


def _st(interests=(), payments=(), repayments=()) -> Statement:
    return Statement(
        period_from=date(2023, 9, 1),
        period_to=date(2024, 8, 31),
        opening_debit_balance=Decimal("0"),
        total_borrowed_in_period=Decimal("0"),
        interests=tuple(interests),
        payments=tuple(payments),
        repayments=tuple(repayments),
    )


def _interest(d: date, amount: str, rate: str = "0.0595") -> InterestAccrual:
    return InterestAccrual(date=d, amount=Decimal(amount), rate=Decimal(rate))


def _pay(d: date, amount: str) -> LoanDisbursement:
    return LoanDisbursement(date=d, amount=Decimal(amount))


def _repay(d: date, amount: str) -> Repayment:
    return Repayment(date=d, amount=Decimal(amount))


def _loaded_table(*pairs) -> ExchangeRateTable:
    return ExchangeRateTable(
        [RateObservation(day=d, rate=Decimal(r)) for d, r in pairs],
        loaded=True,
        fallback_days=10,
        default_rate=Decimal("1"),
    )


def test_empty_input_rejected():
    with pytest.raises(EmptyInputError):
        build_ledger([])


def test_entries_sorted_across_statements():
    s1 = _st(payments=[_pay(date(2024, 1, 10), "1000.00")], repayments=[_repay(date(2023, 12, 1), "10.00")])
    s2 = _st(interests=[_interest(date(2023, 11, 1), "3.00")])

    rows = build_ledger([s1, s2])

    assert [r.date for r in rows] == [date(2023, 11, 1), date(2023, 12, 1), date(2024, 1, 10)]
    for a, b in zip(rows, rows[1:]):
        assert a.date <= b.date


def test_same_day_entries_keep_extraction_order():
    d = date(2024, 1, 1)
    s1 = _st(
        interests=[_interest(d, "1.00")],
        payments=[_pay(d, "100.00")],
        repayments=[_repay(d, "5.00")],
    )
    s2 = _st(repayments=[_repay(d, "6.00")], interests=[_interest(d, "2.00")])

    rows = build_ledger([s1, s2])

    assert [(r.kind, r.amount) for r in rows] == [
        ("interest", Decimal("1.00")),
        ("disbursement", Decimal("100.00")),
        ("repayment", Decimal("5.00")),
        ("interest", Decimal("2.00")),
        ("repayment", Decimal("6.00")),
    ]


def test_running_totals_grow_by_exact_amounts():
    rows = build_ledger(
        [
            _st(
                payments=[_pay(date(2023, 9, 5), "2312.50"), _pay(date(2024, 1, 5), "2312.50")],
                interests=[_interest(date(2023, 9, 30), "11.31"), _interest(date(2023, 10, 31), "23.07")],
            )
        ]
    )

    assert [(r.principal_outstanding, r.interest_outstanding) for r in rows] == [
        (Decimal("2312.50"), Decimal("0")),
        (Decimal("2312.50"), Decimal("11.31")),
        (Decimal("2312.50"), Decimal("34.38")),
        (Decimal("4625.00"), Decimal("34.38")),
    ]


def test_repayment_split_by_outstanding_ratio():
    rows = build_ledger(
        [
            _st(
                payments=[_pay(date(2024, 1, 1), "750.00")],
                interests=[_interest(date(2024, 1, 2), "250.00")],
                repayments=[_repay(date(2024, 2, 1), "100.00")],
            )
        ]
    )

    rep = rows[-1]
    assert rep.kind == "repayment"
    assert rep.principal_share_percent == Decimal("0.75")
    assert rep.principal_portion == Decimal("75.00")
    assert rep.interest_portion == Decimal("25.00")
    assert rep.principal_portion + rep.interest_portion == rep.amount
    assert rep.principal_outstanding == Decimal("675.00")
    assert rep.interest_outstanding == Decimal("225.00")


def test_repayment_with_nothing_outstanding_changes_nothing():
    rows = build_ledger(
        [
            _st(
                repayments=[_repay(date(2024, 1, 1), "50.00")],
                payments=[_pay(date(2024, 2, 1), "100.00")],
            )
        ]
    )

    rep = rows[0]
    assert rep.principal_share_percent is None
    assert rep.principal_portion is None
    assert rep.principal_outstanding == Decimal("0")
    assert rep.interest_outstanding == Decimal("0")
    assert rows[1].principal_outstanding == Decimal("100.00")


def test_overshooting_repayment_is_not_clamped():
    rows = build_ledger(
        [
            _st(
                payments=[_pay(date(2024, 1, 1), "80.00")],
                interests=[_interest(date(2024, 1, 1), "20.00")],
                repayments=[_repay(date(2024, 1, 2), "200.00")],
            )
        ]
    )

    rep = rows[-1]
    assert rep.principal_outstanding == Decimal("-80.00")
    assert rep.interest_outstanding == Decimal("-20.00")

    # Nothing positive left to apportion against.
    more = build_ledger(
        [
            _st(
                payments=[_pay(date(2024, 1, 1), "80.00")],
                interests=[_interest(date(2024, 1, 1), "20.00")],
                repayments=[_repay(date(2024, 1, 2), "200.00"), _repay(date(2024, 1, 3), "5.00")],
            )
        ]
    )
    assert more[-1].principal_share_percent is None
    assert more[-1].total_outstanding == Decimal("-100.00")


def test_conversion_uses_rate_for_repayment_day():
    table = _loaded_table((date(2024, 2, 1), "0.85"))
    rows = build_ledger(
        [_st(payments=[_pay(date(2024, 1, 1), "1000.00")], repayments=[_repay(date(2024, 2, 1), "85.00")])],
        table,
    )

    rep = rows[-1]
    assert rep.conversion_rate == Decimal("0.85")
    assert rep.amount_in_reference_currency == Decimal("100")
    assert rep.rate_found is True
    assert rep.rate_observed_on == date(2024, 2, 1)
    assert rep.principal_portion_in_reference == Decimal("100")
    assert rep.interest_portion_in_reference == Decimal("0")
    assert rows[0].conversion_rate is None


def test_conversion_falls_back_to_earlier_rate():
    table = _loaded_table((date(2024, 2, 2), "0.80"))
    rows = build_ledger(
        [_st(payments=[_pay(date(2024, 1, 1), "1000.00")], repayments=[_repay(date(2024, 2, 4), "40.00")])],
        table,
    )

    rep = rows[-1]
    assert rep.conversion_rate == Decimal("0.80")
    assert rep.rate_observed_on == date(2024, 2, 2)
    assert rep.amount_in_reference_currency == Decimal("50")


def test_missing_rate_uses_default_and_is_flagged():
    table = _loaded_table((date(2020, 1, 1), "0.80"))
    rows = build_ledger([_st(repayments=[_repay(date(2024, 2, 4), "40.00")])], table)

    rep = rows[-1]
    assert rep.conversion_rate == Decimal("1")
    assert rep.amount_in_reference_currency == Decimal("40.00")
    assert rep.rate_found is False
    assert rep.rate_observed_on is None


def test_unloaded_table_leaves_repayments_unconverted():
    table = ExchangeRateTable([RateObservation(day=date(2024, 2, 1), rate=Decimal("0.85"))], loaded=False)
    rows = build_ledger(
        [_st(payments=[_pay(date(2024, 1, 1), "1000.00")], repayments=[_repay(date(2024, 2, 1), "85.00")])],
        table,
    )

    rep = rows[-1]
    assert rep.principal_share_percent == Decimal("1")
    assert rep.conversion_rate is None
    assert rep.amount_in_reference_currency is None
    assert rep.rate_found is None


def test_statements_are_not_modified():
    st = _st(payments=[_pay(date(2024, 1, 1), "10.00")], repayments=[_repay(date(2024, 1, 2), "5.00")])
    before = st.changes()

    build_ledger([st])

    assert st.changes() == before
    assert st.repayments[0] == Repayment(date=date(2024, 1, 2), amount=Decimal("5.00"))


def test_repayment_portions_are_whole_pennies():
    rows = build_ledger(
        [
            _st(
                payments=[_pay(date(2024, 1, 1), "1000.00")],
                interests=[_interest(date(2024, 1, 1), "1.00")],
                repayments=[_repay(date(2024, 2, 1), "7.00")],
            )
        ]
    )

    rep = rows[-1]
    assert rep.principal_share_percent == Decimal("1000.00") / Decimal("1001.00")
    assert rep.principal_portion == Decimal("6.99")
    assert rep.interest_portion == Decimal("0.01")
    assert rep.principal_outstanding == Decimal("993.01")
    assert rep.interest_outstanding == Decimal("0.99")


def test_totals_stay_exact_after_uneven_split_at_default_precision():
    with localcontext(DefaultContext):
        rows = build_ledger(
            [
                _st(
                    payments=[_pay(date(2024, 1, 1), "1000.00"), _pay(date(2024, 3, 1), "9999999.99")],
                    interests=[_interest(date(2024, 1, 1), "1.00"), _interest(date(2024, 3, 2), "30.81")],
                    repayments=[_repay(date(2024, 2, 1), "7.00")],
                )
            ]
        )

    assert rows[-2].kind == "disbursement"
    assert rows[-2].principal_outstanding == Decimal("10000993.00")
    assert rows[-1].interest_outstanding == Decimal("31.80")
    assert rows[-1].total_outstanding == Decimal("10001024.80")
