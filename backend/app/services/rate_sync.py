from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.exchange_rate import ExchangeRate
from app.services.exchange_rates import ExchangeRateTable, RateObservation, fetch_rate_observations
from app.utils.timezone import today_local

log = logging.getLogger(__name__)

Fetcher = Callable[[date, date], list[RateObservation]]


def _iso_now() -> str:
    return datetime.utcnow().replace(microsecond=0).isoformat() + "Z"


@dataclass
class _Job:
    status: str = "idle"  # idle|running|done|error
    observations: int = 0
    fetched: int = 0
    first_day: Optional[str] = None
    last_day: Optional[str] = None
    started_at: Optional[str] = None
    updated_at: Optional[str] = None
    message: Optional[str] = None


def _cached_days(s: Session, currency: str, reference_currency: str) -> set[date]:
    rows = (
        s.execute(
            select(ExchangeRate.day).where(
                ExchangeRate.currency == currency,
                ExchangeRate.reference_currency == reference_currency,
            )
        )
        .scalars()
        .all()
    )
    return set(rows)


def _cached_observations(s: Session, currency: str, reference_currency: str) -> list[RateObservation]:
    rows = (
        s.execute(
            select(ExchangeRate)
            .where(
                ExchangeRate.currency == currency,
                ExchangeRate.reference_currency == reference_currency,
            )
            .order_by(ExchangeRate.day.asc())
        )
        .scalars()
        .all()
    )
    return [RateObservation(day=r.day, rate=r.rate) for r in rows]


def store_observations(
    s: Session,
    observations: list[RateObservation],
    currency: str,
    reference_currency: str,
) -> int:
    have = _cached_days(s, currency, reference_currency)
    added = 0
    for o in observations:
        if o.day in have:
            continue
        s.add(ExchangeRate(currency=currency, reference_currency=reference_currency, day=o.day, rate=o.rate))
        have.add(o.day)
        added += 1
    s.commit()
    return added


class RateSync:
    """Loads the exchange-rate table once per process.

    New observations are fetched for the days after the newest cached one and
    written to the ``exchange_rates`` cache; the table is then built from the
    whole cache. A failed load is final: the table stays unloaded and ledger
    building proceeds without conversion.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        fetcher: Fetcher | None = None,
        currency: str | None = None,
        reference_currency: str | None = None,
        history_start: date | None = None,
    ):
        self._session_factory = session_factory
        self._fetcher = fetcher or (
            lambda start, end: fetch_rate_observations(
                start, end, currency=self.currency, reference_currency=self.reference_currency
            )
        )
        self.currency = currency or settings.rate_currency
        self.reference_currency = reference_currency or settings.rate_reference_currency
        self.history_start = history_start or settings.rate_history_start

        self._lock = threading.Lock()
        self._job = _Job()
        self._table = ExchangeRateTable()

    @property
    def table(self) -> ExchangeRateTable:
        with self._lock:
            return self._table

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return asdict(self._job)

    def _set_status(self, **kwargs) -> None:
        with self._lock:
            for k, v in kwargs.items():
                setattr(self._job, k, v)
            self._job.updated_at = _iso_now()

    def ensure_started(self) -> Dict[str, Any]:
        with self._lock:
            if self._job.status != "idle":
                return asdict(self._job)
            self._job.status = "running"
            self._job.started_at = _iso_now()
            self._job.updated_at = self._job.started_at

        t = threading.Thread(target=self.run, daemon=True)
        t.start()
        return self.get_status()

    def run(self) -> None:
        self._set_status(status="running", message=None)
        try:
            with self._session_factory() as s:
                cached = _cached_days(s, self.currency, self.reference_currency)
                fetch_start = max(cached) + timedelta(days=1) if cached else self.history_start
                fetch_end = today_local() + timedelta(days=1)

                fetched = 0
                if fetch_start <= fetch_end:
                    fresh = self._fetcher(fetch_start, fetch_end)
                    fetched = store_observations(s, fresh, self.currency, self.reference_currency)

                observations = _cached_observations(s, self.currency, self.reference_currency)

            table = ExchangeRateTable(observations, loaded=True)
            with self._lock:
                self._table = table

            self._set_status(
                status="done",
                observations=len(table),
                fetched=fetched,
                first_day=str(table.first_day()) if len(table) else None,
                last_day=str(table.last_day()) if len(table) else None,
                message=None,
            )
            log.info("exchange rates loaded: %s observations (%s new)", len(table), fetched)

        except Exception as e:
            log.exception("exchange rate load failed", exc_info=e)
            self._set_status(status="error", message=str(e))
