from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.api.deps import rate_sync, read_uploads
from app.core.errors import EmptyInputError
from app.schemas.ledger import LedgerOut, LedgerRow
from app.schemas.statement import DocumentFailureOut
from app.services import statement_parser
from app.services.ledger import build_ledger
from app.services.rate_sync import RateSync
from app.services.reports import years_spanned

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("", response_model=LedgerOut)
def ledger(files: list[UploadFile] | None = File(None), rates: RateSync = Depends(rate_sync)):
    statements, failures = statement_parser.parse_documents(read_uploads(files))

    # Repayments go unconverted while the rate table is still loading.
    try:
        entries = build_ledger(statements, rates.table)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=e.code)

    return LedgerOut(
        entries=[LedgerRow.from_entry(e) for e in entries],
        years=years_spanned(entries),
        failures=[DocumentFailureOut.from_failure(f) for f in failures],
        rates=rates.get_status(),
    )
