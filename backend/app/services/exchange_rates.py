from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable

import httpx

from app.core.config import settings
from app.core.errors import RateFetchError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateObservation:
    day: date
    rate: Decimal


@dataclass(frozen=True)
class RateLookup:
    rate: Decimal
    found: bool
    observed_on: date | None = None


def series_url(currency: str, reference_currency: str, base_url: str | None = None) -> str:
    base = (base_url or settings.rate_api_url).rstrip("/")
    return f"{base}/D.{currency}.{reference_currency}.SP00.A"


def parse_ecb_observations(payload: dict) -> list[RateObservation]:
    """Turn an SDMX-JSON ``dataonly`` response into (day, rate) pairs.

    Observation keys index into the TIME_PERIOD dimension values; periods with
    no observation (non-trading days) are skipped.
    """
    try:
        data_set = payload["dataSets"][0]
        series = data_set["series"]
        if not series:
            return []
        observations = next(iter(series.values()))["observations"]
        periods: list[dict] = []
        for dim in payload["structure"]["dimensions"]["observation"]:
            if dim.get("id") == "TIME_PERIOD":
                periods = dim["values"]
                break
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise RateFetchError(detail="unexpected_payload") from e

    out: list[RateObservation] = []
    for idx, period in enumerate(periods):
        obs = observations.get(str(idx))
        if not obs or obs[0] is None:
            continue
        try:
            day = date.fromisoformat(period["id"])
            rate = Decimal(str(obs[0]))
        except (KeyError, ValueError, InvalidOperation) as e:
            raise RateFetchError(detail=f"bad_observation_{idx}") from e
        if rate <= 0:
            continue
        out.append(RateObservation(day=day, rate=rate))

    out.sort(key=lambda o: o.day)
    return out


def fetch_rate_observations(
    start: date,
    end: date,
    *,
    currency: str | None = None,
    reference_currency: str | None = None,
    timeout_s: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> list[RateObservation]:
    url = series_url(currency or settings.rate_currency, reference_currency or settings.rate_reference_currency)
    params = {
        "startPeriod": start.isoformat(),
        "endPeriod": end.isoformat(),
        "format": "jsondata",
        "detail": "dataonly",
    }
    timeout = timeout_s if timeout_s is not None else settings.rate_fetch_timeout_seconds

    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, transport=transport) as client:
            r = client.get(url, params=params)
    except httpx.HTTPError as e:
        raise RateFetchError(detail=str(e)) from e

    # The data API answers 404 when the range holds no observations.
    if r.status_code == 404:
        return []
    if r.status_code != 200:
        raise RateFetchError(detail=f"http_{r.status_code}")

    try:
        payload = r.json()
    except ValueError as e:
        raise RateFetchError(detail="invalid_json") from e
    return parse_ecb_observations(payload)


class ExchangeRateTable:
    """Daily rates keyed by calendar day, with a backward-scan fallback.

    ``loaded`` stays False until a rate load completes; an unloaded table still
    answers lookups, always with the default rate.
    """

    def __init__(
        self,
        observations: Iterable[RateObservation] = (),
        *,
        loaded: bool = False,
        fallback_days: int | None = None,
        default_rate: Decimal | None = None,
    ):
        self._rates: dict[date, Decimal] = {o.day: o.rate for o in observations}
        self.loaded = loaded
        self.fallback_days = settings.rate_fallback_days if fallback_days is None else fallback_days
        self.default_rate = settings.rate_default if default_rate is None else default_rate

    def __len__(self) -> int:
        return len(self._rates)

    def __contains__(self, day: date) -> bool:
        return day in self._rates

    def first_day(self) -> date | None:
        return min(self._rates) if self._rates else None

    def last_day(self) -> date | None:
        return max(self._rates) if self._rates else None

    def observations(self) -> list[RateObservation]:
        return [RateObservation(day=d, rate=self._rates[d]) for d in sorted(self._rates)]

    def lookup(self, day: date) -> RateLookup:
        probe = day
        for _ in range(self.fallback_days + 1):
            rate = self._rates.get(probe)
            if rate is not None:
                return RateLookup(rate=rate, found=True, observed_on=probe)
            probe = probe - timedelta(days=1)

        log.warning("no exchange rate within %s days of %s, using %s", self.fallback_days, day, self.default_rate)
        return RateLookup(rate=self.default_rate, found=False)

    def resolve(self, day: date) -> Decimal:
        return self.lookup(day).rate
