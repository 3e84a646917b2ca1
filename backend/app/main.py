import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.exchange_rate import ExchangeRate  # noqa: F401
from app.api.routes.statements import router as statements_router
from app.api.routes.ledger import router as ledger_router
from app.api.routes.reports import router as reports_router
from app.api.routes.rates import router as rates_router
from app.services.rate_sync import RateSync

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Student Loan Ledger")
app.state.rate_sync = RateSync(SessionLocal)

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(statements_router)
app.include_router(ledger_router)
app.include_router(reports_router)
app.include_router(rates_router)

@app.on_event("startup")
def _start_rate_sync():
    if settings.db_auto_create:
        Base.metadata.create_all(engine)
    if settings.rate_sync_enabled:
        app.state.rate_sync.ensure_started()
