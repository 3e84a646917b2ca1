from __future__ import annotations

from fastapi import APIRouter, File, UploadFile

from app.api.deps import read_uploads
from app.schemas.statement import DocumentFailureOut, StatementOut, StatementsOut
from app.services import statement_parser

router = APIRouter(prefix="/statements", tags=["statements"])


@router.post("", response_model=StatementsOut)
def parse_statements(files: list[UploadFile] | None = File(None)):
    statements, failures = statement_parser.parse_documents(read_uploads(files))
    return StatementsOut(
        statements=[StatementOut.from_statement(st) for st in statements],
        failures=[DocumentFailureOut.from_failure(f) for f in failures],
    )
