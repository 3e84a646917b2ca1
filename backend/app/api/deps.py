from fastapi import HTTPException, Request, UploadFile
from app.services.rate_sync import RateSync

def rate_sync(request: Request) -> RateSync:
    return request.app.state.rate_sync

def read_uploads(files: list[UploadFile] | None) -> list[tuple[str, bytes]]:
    if not files:
        raise HTTPException(status_code=400, detail="no_documents")
    return [(f.filename or f"document_{i + 1}.pdf", f.file.read()) for i, f in enumerate(files)]
