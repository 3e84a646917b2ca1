from __future__ import annotations

import io
import zipfile
from datetime import date, datetime, time
from typing import Iterable, Sequence

import xlsxwriter

from app.core.config import settings
from app.services.entries import LedgerEntry
from app.utils.timezone import now_local, today_local

TOTAL_LABEL = "TOTAL"
HEADER_ROW = 3
FIRST_DATA_ROW = 4


def years_spanned(entries: Iterable[LedgerEntry], today: date | None = None) -> list[int]:
    """Every calendar year from the earliest to the latest entry, inclusive."""
    years = [e.date.year for e in entries]
    if not years:
        return [(today or today_local()).year]
    return list(range(min(years), max(years) + 1))


def window(entries: Iterable[LedgerEntry], start: date, end: date) -> list[LedgerEntry]:
    return sorted((e for e in entries if start <= e.date <= end), key=lambda e: e.date)


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def report_filename(year: int) -> str:
    return f"loan_summary_{year}.xlsx"


def bundle_filename(years: Sequence[int]) -> str:
    if not years:
        return "loan_summaries.zip"
    return f"loan_summaries_{min(years)}-{max(years)}.zip"


def rate_source(e: LedgerEntry) -> str:
    if e.kind != "repayment":
        return ""
    if e.conversion_rate is None:
        return "unavailable"
    if not e.rate_found:
        return "default 1:1"
    return str(e.rate_observed_on)


def _headers() -> list[str]:
    cur = settings.rate_currency
    ref = settings.rate_reference_currency
    return [
        "Date",
        "Interest Rate",
        "Interest Added",
        "Payment",
        "Outstanding Principal",
        "Outstanding Interest",
        "Total Outstanding",
        "Principal %",
        "Interest %",
        f"Paid Principal ({cur})",
        f"Paid Interest ({cur})",
        f"Paid Principal ({ref})",
        f"Paid Interest ({ref})",
        "Conversion Rate",
        "Rate Source",
    ]


def build_ledger_report(entries: Sequence[LedgerEntry], start: date, end: date, out_file) -> None:
    """Render already-windowed ledger entries into one workbook."""
    wb = xlsxwriter.Workbook(out_file, {"in_memory": True})
    base_font = "Calibri"

    meta_label = wb.add_format({"bold": True, "font_name": base_font, "font_size": 11, "font_color": "#334155"})
    meta_value = wb.add_format({"font_name": base_font, "font_size": 11, "font_color": "#0f172a"})
    subtle = wb.add_format({"font_name": base_font, "font_size": 10, "font_color": "#64748b"})

    header = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F1F5F9",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
            "text_wrap": True,
        }
    )

    date_fmt = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "dd/mm/yyyy", "border": 1})
    money2 = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "#,##0.00", "border": 1, "align": "right"}
    )
    pct2 = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "0.00%", "border": 1, "align": "right"})
    rate5 = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "0.00000", "border": 1, "align": "right"}
    )
    text_cell = wb.add_format({"font_name": base_font, "font_size": 11, "border": 1, "align": "left"})
    blank_cell = wb.add_format({"border": 1})

    total_label = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F8FAFC",
            "border": 1,
            "align": "left",
        }
    )
    total_money2 = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F8FAFC",
            "border": 1,
            "num_format": "#,##0.00",
            "align": "right",
        }
    )

    # Zebra stripes only change the background
    stripe = wb.add_format({"bg_color": "#FBFDFF"})

    ws = wb.add_worksheet("Loan Summary")

    ws.set_column(0, 0, 12)  # Date
    ws.set_column(1, 2, 14)  # Interest
    ws.set_column(3, 3, 14)  # Payment
    ws.set_column(4, 6, 18)  # Outstanding
    ws.set_column(7, 8, 12)  # Shares
    ws.set_column(9, 12, 18)  # Paid portions
    ws.set_column(13, 14, 14)  # Rate

    ws.write(0, 0, "Range", meta_label)
    ws.write(0, 1, f"{start} to {end}", meta_value)

    ws.write(1, 0, "Currency", meta_label)
    ws.write(1, 1, f"{settings.rate_currency} -> {settings.rate_reference_currency}", meta_value)

    ws.write(2, 0, "Generated", meta_label)
    ws.write(2, 1, now_local().strftime("%Y-%m-%d %H:%M"), subtle)

    headers = _headers()
    ws.set_row(HEADER_ROW, 32)
    for c, h in enumerate(headers):
        ws.write(HEADER_ROW, c, h, header)

    ws.freeze_panes(FIRST_DATA_ROW, 1)

    r = FIRST_DATA_ROW
    for e in entries:
        ws.write_datetime(r, 0, datetime.combine(e.date, time.min), date_fmt)
        for c in range(1, len(headers)):
            ws.write_blank(r, c, None, blank_cell)

        if e.kind == "interest":
            ws.write_number(r, 1, float(e.change.rate), pct2)
            ws.write_number(r, 2, float(e.amount), money2)
        else:
            ws.write_number(r, 3, float(e.amount), money2)

        total = e.total_outstanding
        ws.write_number(r, 4, float(e.principal_outstanding), money2)
        ws.write_number(r, 5, float(e.interest_outstanding), money2)
        ws.write_number(r, 6, float(total), money2)
        if total > 0:
            ws.write_number(r, 7, float(e.principal_outstanding / total), pct2)
            ws.write_number(r, 8, float(e.interest_outstanding / total), pct2)

        if e.kind == "repayment":
            if e.principal_portion is not None:
                ws.write_number(r, 9, float(e.principal_portion), money2)
                ws.write_number(r, 10, float(e.interest_portion), money2)
            if e.principal_portion_in_reference is not None:
                ws.write_number(r, 11, float(e.principal_portion_in_reference), money2)
                ws.write_number(r, 12, float(e.interest_portion_in_reference), money2)
            if e.conversion_rate is not None:
                ws.write_number(r, 13, float(e.conversion_rate), rate5)
            else:
                ws.write(r, 13, "N/A", text_cell)
            ws.write(r, 14, rate_source(e), text_cell)
        r += 1

    last_data_row = r - 1
    total_row = r + 1  # one blank spacer row

    ws.write(total_row, 0, TOTAL_LABEL, total_label)
    for c in range(1, len(headers)):
        ws.write_blank(total_row, c, None, total_label)

    if last_data_row >= FIRST_DATA_ROW:
        ws.autofilter(HEADER_ROW, 0, last_data_row, len(headers) - 1)
        ws.conditional_format(
            FIRST_DATA_ROW,
            0,
            last_data_row,
            len(headers) - 1,
            {"type": "formula", "criteria": "=MOD(ROW(),2)=0", "format": stripe},
        )

        first_excel = FIRST_DATA_ROW + 1
        last_excel = last_data_row + 1
        for c, col in ((9, "J"), (10, "K"), (11, "L"), (12, "M")):
            ws.write_formula(total_row, c, f"=SUM({col}{first_excel}:{col}{last_excel})", total_money2)
    else:
        for c in (9, 10, 11, 12):
            ws.write_number(total_row, c, 0.0, total_money2)

    ws.set_landscape()
    ws.fit_to_pages(1, 0)

    summary = wb.add_worksheet("Summary")
    summary.set_column(0, 0, 26)
    summary.set_column(1, 1, 36)

    title = wb.add_format({"bold": True, "font_name": base_font, "font_size": 14, "font_color": "#0f172a"})
    summary.write(0, 0, "Repayment Summary", title)

    summary.write(2, 0, "Range", meta_label)
    summary.write(2, 1, f"{start} to {end}", subtle)

    repayments = [e for e in entries if e.kind == "repayment"]
    degraded = [e for e in repayments if e.conversion_rate is None or not e.rate_found]

    summary.write(3, 0, "Repayments", meta_label)
    summary.write_number(3, 1, len(repayments), meta_value)

    totals_excel_row = total_row + 1
    for i, (c, col) in enumerate(((9, "J"), (10, "K"), (11, "L"), (12, "M"))):
        summary.write(5 + i, 0, headers[c], meta_label)
        summary.write_formula(5 + i, 1, f"='Loan Summary'!{col}{totals_excel_row}", money2)

    if degraded:
        summary.write(10, 0, "Note", meta_label)
        summary.write(
            10,
            1,
            f"{len(degraded)} repayment(s) without a published rate; see the Rate Source column.",
            subtle,
        )

    wb.close()


def build_year_report(entries: Sequence[LedgerEntry], year: int, out_file) -> None:
    start, end = year_bounds(year)
    build_ledger_report(window(entries, start, end), start, end, out_file)


def build_report_bundle(entries: Sequence[LedgerEntry], out_file, years: Sequence[int] | None = None) -> list[int]:
    """Write one workbook per year into a zip archive; returns the years written."""
    ys = list(years) if years is not None else years_spanned(entries)
    with zipfile.ZipFile(out_file, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for year in ys:
            buf = io.BytesIO()
            build_year_report(entries, year, buf)
            zf.writestr(report_filename(year), buf.getvalue())
    return ys
