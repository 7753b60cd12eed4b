"""Currency rates for showing a trip's spend in the traveler's home currency."""

import logging
from datetime import date, datetime, timedelta

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from travelflow.models import ExchangeRate

logger = logging.getLogger("travelflow")

FRANKFURTER_LATEST = "https://api.frankfurter.dev/v1/latest"
RATE_TIMEOUT = 5
CACHE_TTL = timedelta(hours=24)


def _cached_rate(db: Session, base: str, target: str, now: datetime) -> ExchangeRate | None:
    return (
        db.query(ExchangeRate)
        .filter(
            ExchangeRate.base_currency == base,
            ExchangeRate.target_currency == target,
            ExchangeRate.fetched_at >= now - CACHE_TTL,
        )
        .order_by(ExchangeRate.fetched_at.desc())
        .first()
    )


def _fetch_latest(base: str, target: str) -> tuple[float, date]:
    resp = httpx.get(FRANKFURTER_LATEST, params={"from": base, "to": target}, timeout=RATE_TIMEOUT)
    resp.raise_for_status()
    data = resp.json()
    return float(data["rates"][target]), date.fromisoformat(data["date"])


def get_rate(db: Session, base: str, target: str) -> tuple[float, date]:
    """Rate converting 1 ``base`` into ``target``, cached for a day.

    Returns (rate, date). Raises httpx errors when the rate service fails.
    """
    base, target = base.upper(), target.upper()
    if base == target:
        return 1.0, date.today()

    now = datetime.utcnow()
    cached = _cached_rate(db, base, target, now)
    if cached:
        return cached.rate, cached.rate_date

    rate, rate_date = _fetch_latest(base, target)
    db.add(ExchangeRate(base_currency=base, target_currency=target, rate=rate, rate_date=rate_date, fetched_at=now))
    db.commit()
    logger.info("Exchange rate fetched", extra={"extra_data": {"base": base, "target": target, "rate": rate}})
    return rate, rate_date


def rate_or_none(db: Session, base: str, target: str) -> float | None:
    """Like get_rate, but a failed lookup is logged and returns None."""
    try:
        rate, _ = get_rate(db, base, target)
    except (httpx.HTTPError, KeyError, ValueError, SQLAlchemyError) as e:
        db.rollback()
        logger.warning(
            "Exchange rate unavailable",
            extra={"extra_data": {"base": base, "target": target, "error": str(e)}},
        )
        return None
    return rate
