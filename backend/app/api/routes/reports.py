from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from io import BytesIO
import re

from app.api.deps import rate_sync, read_uploads
from app.core.errors import EmptyInputError
from app.services import statement_parser
from app.services.ledger import build_ledger
from app.services.rate_sync import RateSync
from app.services.reports import (
    build_report_bundle,
    build_year_report,
    bundle_filename,
    report_filename,
    years_spanned,
)

router = APIRouter(prefix="/reports", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _safe_part(v: str) -> str:
    s = (v or "").strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", s)
    s = re.sub(r"_+", "_", s).strip("_")
    return (s[:40] or "unknown")


@router.post("")
def report(
    files: list[UploadFile] | None = File(None),
    year: int | None = Query(None, ge=1900, le=2999),
    rates: RateSync = Depends(rate_sync),
):
    statements, failures = statement_parser.parse_documents(read_uploads(files))
    try:
        entries = build_ledger(statements, rates.table)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=e.code)

    years = [year] if year is not None else years_spanned(entries)
    headers = {}
    if failures:
        headers["X-Failed-Documents"] = ",".join(_safe_part(f.filename) for f in failures)

    buf = BytesIO()
    if len(years) == 1:
        build_year_report(entries, years[0], buf)
        filename, media_type = report_filename(years[0]), XLSX_MEDIA_TYPE
    else:
        build_report_bundle(entries, buf, years)
        filename, media_type = bundle_filename(years), "application/zip"
    buf.seek(0)

    headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return StreamingResponse(buf, media_type=media_type, headers=headers)
