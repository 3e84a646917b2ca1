from pydantic import BaseModel
from datetime import date
from typing import Literal, Optional


class RateSyncStatusOut(BaseModel):
    status: Literal["idle", "running", "done", "error"] = "idle"
    observations: int = 0
    fetched: int = 0
    first_day: Optional[str] = None
    last_day: Optional[str] = None
    started_at: Optional[str] = None
    updated_at: Optional[str] = None
    message: Optional[str] = None


class RateLookupOut(BaseModel):
    day: date
    currency: str
    reference_currency: str
    rate: float
    found: bool
    observed_on: date | None = None
    loaded: bool
