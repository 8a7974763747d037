"""Build validated :class:`BarRequest` objects from raw user input.

Date range syntax is ``[start]:[end]`` where each side is either an
absolute ``YYYY-MM-DD`` date or a relative token such as ``-5y``, ``-30d``,
``-2w``, ``-6m`` or ``0d`` (today). A missing start means 1970-01-01, a
missing end means today, and a single token without ``:`` selects that one
day.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Iterable

from dateutil.relativedelta import relativedelta

from barcache.errors import ValidationError
from barcache.granularity import Granularity, parse_granularity
from barcache.models.request import DEFAULT_FIELDS, BarRequest, CachePolicy, parse_fields

EPOCH = date(1970, 1, 1)

_RELATIVE_RE = re.compile(r"^(-?\d+)([dwmy])$", re.IGNORECASE)
_ABSOLUTE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_token(token: str, today: date) -> date:
    """Resolve one absolute or relative date token against ``today``."""
    token = token.strip()
    if token in ("", "0d"):
        return today

    match = _RELATIVE_RE.match(token)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()
        if unit == "d":
            return today + relativedelta(days=amount)
        if unit == "w":
            return today + relativedelta(weeks=amount)
        if unit == "m":
            return today + relativedelta(months=amount)
        return today + relativedelta(years=amount)

    if _ABSOLUTE_RE.match(token):
        try:
            return datetime.strptime(token, "%Y-%m-%d").date()
        except ValueError as exc:
            raise ValidationError(f"Invalid date {token!r}: {exc}") from exc

    raise ValidationError(
        f'Invalid date token format: "{token}". '
        'Use "YYYY-MM-DD" or relative format like "-5y", "-30d".'
    )


def parse_date_range(spec: str, today: date | None = None) -> tuple[date, date]:
    """Parse a ``start:end`` spec into an inclusive ``(start, end)`` pair."""
    today = today or date.today()

    if ":" not in spec:
        single = parse_date_token(spec, today)
        return single, single

    start_str, _, end_str = spec.partition(":")
    end = parse_date_token(end_str, today) if end_str.strip() else today
    start = parse_date_token(start_str, today) if start_str.strip() else EPOCH

    if start > end:
        raise ValidationError(
            f"Start date ({start.isoformat()}) cannot be after end date ({end.isoformat()})."
        )
    return start, end


def normalize_tickers(tickers: Iterable[str]) -> tuple[str, ...]:
    """Upper-case, strip, split on commas and de-duplicate keeping order."""
    seen: dict[str, None] = {}
    for raw in tickers:
        for part in str(raw).split(","):
            symbol = part.strip().upper()
            if symbol:
                seen.setdefault(symbol, None)
    if not seen:
        raise ValidationError("At least one ticker must be provided.")
    return tuple(seen)


def build_request(
    tickers: Iterable[str],
    dates: str | tuple[date, date],
    granularity: str | Granularity = "1d",
    fields: str = DEFAULT_FIELDS,
    unadjusted: bool = False,
    cache_policy: str | CachePolicy = CachePolicy.USE,
    today: date | None = None,
) -> BarRequest:
    """Validate raw inputs and construct an immutable request.

    Raises:
        ValidationError: Before any I/O, for any malformed input.
    """
    symbols = normalize_tickers(tickers)

    if isinstance(dates, str):
        start, end = parse_date_range(dates, today=today)
    else:
        start, end = dates

    if isinstance(granularity, str):
        granularity = parse_granularity(granularity)

    if isinstance(cache_policy, str):
        try:
            cache_policy = CachePolicy(cache_policy.strip().lower())
        except ValueError:
            raise ValidationError(
                f"Invalid cache policy {cache_policy!r}. Use one of: use, ignore, refresh."
            ) from None

    return BarRequest(
        tickers=symbols,
        start=start,
        end=end,
        granularity=granularity,
        fields=parse_fields(fields),
        unadjusted=unadjusted,
        cache_policy=cache_policy,
    )
