from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import rate_sync
from app.schemas.rate import RateLookupOut, RateSyncStatusOut
from app.services.rate_sync import RateSync

router = APIRouter(prefix="/rates", tags=["rates"])


@router.get("/status", response_model=RateSyncStatusOut)
def status(rates: RateSync = Depends(rate_sync)):
    return rates.get_status()


@router.get("/resolve", response_model=RateLookupOut)
def resolve(day: date = Query(...), rates: RateSync = Depends(rate_sync)):
    table = rates.table
    hit = table.lookup(day)
    return RateLookupOut(
        day=day,
        currency=rates.currency,
        reference_currency=rates.reference_currency,
        rate=float(hit.rate),
        found=hit.found,
        observed_on=hit.observed_on,
        loaded=table.loaded,
    )
