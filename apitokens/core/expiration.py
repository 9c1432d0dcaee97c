# apitokens/core/expiration.py
from __future__ import annotations

import calendar
import re
from datetime import datetime, time, timedelta, timezone
from typing import Iterable

from apitokens.core.config import settings
from apitokens.core.errors import InvalidExpirationError

_UNITS = {
    "s": "seconds", "sec": "seconds", "secs": "seconds", "second": "seconds", "seconds": "seconds",
    "m": "minutes", "min": "minutes", "mins": "minutes", "minute": "minutes", "minutes": "minutes",
    "h": "hours", "hr": "hours", "hrs": "hours", "hour": "hours", "hours": "hours",
    "d": "days", "day": "days", "days": "days",
    "w": "weeks", "week": "weeks", "weeks": "weeks",
    "month": "months", "months": "months",
    "y": "years", "year": "years", "years": "years",
}

_RELATIVE = re.compile(
    r"^(?P<sign>[+-]|in\s+)?\s*(?P<amount>\d+|an?)\s*(?P<unit>[a-z]+)(?:\s+from\s+now)?$"
)

_ABSOLUTE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
)


def _add_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    year, month = moment.year + index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _relative(text: str, now: datetime) -> datetime | None:
    m = _RELATIVE.match(text)
    if not m:
        return None
    unit = _UNITS.get(m.group("unit"))
    if unit is None:
        return None
    amount = 1 if m.group("amount") in ("a", "an") else int(m.group("amount"))
    if m.group("sign") == "-":
        amount = -amount
    if unit == "months":
        return _add_months(now, amount)
    if unit == "years":
        return _add_months(now, 12 * amount)
    return now + timedelta(**{unit: amount})


def _to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _absolute(text: str) -> datetime | None:
    try:
        return _to_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        pass
    for fmt in _ABSOLUTE_FORMATS:
        try:
            return _to_utc(datetime.strptime(text, fmt))
        except (ValueError, OverflowError):
            continue
    return None


def parse_expiration(
    spec: str | None,
    now: datetime | None = None,
    never_values: Iterable[str] | None = None,
) -> datetime | None:
    """Turn an ``--expires`` value into an aware UTC datetime.

    Returns None for "no expiration" (absent, blank or a sentinel such as
    ``never``). Relative durations ("30 days", "+1 hour", "in 2 weeks") are
    added to ``now``; absolute dates without a time mean midnight UTC.
    Raises InvalidExpirationError for anything else.
    """
    if spec is None:
        return None
    text = " ".join(spec.split())
    if not text:
        return None

    lowered = text.lower()
    sentinels = settings.never_expires_values if never_values is None else never_values
    if lowered in {v.lower() for v in sentinels}:
        return None

    now = _to_utc(now or datetime.now(timezone.utc))

    if lowered == "tomorrow":
        return datetime.combine(now.date() + timedelta(days=1), time(), tzinfo=timezone.utc)

    try:
        moment = _relative(lowered, now)
    except (ValueError, OverflowError):
        raise InvalidExpirationError(spec) from None
    if moment is None:
        moment = _absolute(text)
    if moment is None:
        raise InvalidExpirationError(spec)
    return moment


def describe(moment: datetime | None) -> str:
    return "never" if moment is None else moment.isoformat()

