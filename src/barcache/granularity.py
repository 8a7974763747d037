"""Granularity tokens ("5min", "1h", "1d", "1w", "1mo") and interval labels."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from barcache.errors import ValidationError

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 1440
MINUTES_PER_WEEK = 10080
# Nominal month length, used for ordering comparisons only.
MINUTES_PER_MONTH = 43200


class GranularityUnit(Enum):
    """Canonical unit of a granularity. Hours normalise to minutes."""

    MINUTE = "minute"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


_SUFFIXES: dict[str, tuple[GranularityUnit, int]] = {
    "min": (GranularityUnit.MINUTE, 1),
    "m": (GranularityUnit.MINUTE, 1),
    "t": (GranularityUnit.MINUTE, 1),
    "h": (GranularityUnit.MINUTE, MINUTES_PER_HOUR),
    "hr": (GranularityUnit.MINUTE, MINUTES_PER_HOUR),
    "hour": (GranularityUnit.MINUTE, MINUTES_PER_HOUR),
    "d": (GranularityUnit.DAY, 1),
    "day": (GranularityUnit.DAY, 1),
    "w": (GranularityUnit.WEEK, 1),
    "wk": (GranularityUnit.WEEK, 1),
    "week": (GranularityUnit.WEEK, 1),
    "mo": (GranularityUnit.MONTH, 1),
    "mon": (GranularityUnit.MONTH, 1),
    "month": (GranularityUnit.MONTH, 1),
}

_UNIT_MINUTES = {
    GranularityUnit.MINUTE: 1,
    GranularityUnit.DAY: MINUTES_PER_DAY,
    GranularityUnit.WEEK: MINUTES_PER_WEEK,
    GranularityUnit.MONTH: MINUTES_PER_MONTH,
}

_TOKEN_RE = re.compile(r"^(\d*)([a-z]+)$")


@dataclass(frozen=True)
class Granularity:
    """Parsed bar interval.

    Attributes:
        count: Number of units per bar.
        unit: Canonical unit (minute, day, week, month).
    """

    count: int
    unit: GranularityUnit

    @property
    def minutes(self) -> int:
        return self.count * _UNIT_MINUTES[self.unit]

    @property
    def is_intraday(self) -> bool:
        return self.unit is GranularityUnit.MINUTE and self.minutes < MINUTES_PER_DAY

    @property
    def label(self) -> str:
        if self.unit is GranularityUnit.MONTH:
            return f"{self.count}mo"
        return interval_label(self.minutes)

    def __str__(self) -> str:
        return self.label

    @classmethod
    def from_minutes(cls, minutes: int) -> Granularity:
        """Build the canonical granularity for a minute count."""
        if minutes <= 0:
            raise ValidationError(f"Interval must be positive, got {minutes} minutes")
        if minutes % MINUTES_PER_WEEK == 0:
            return cls(minutes // MINUTES_PER_WEEK, GranularityUnit.WEEK)
        if minutes % MINUTES_PER_DAY == 0:
            return cls(minutes // MINUTES_PER_DAY, GranularityUnit.DAY)
        return cls(minutes, GranularityUnit.MINUTE)


def parse_granularity(token: str) -> Granularity:
    """Parse a granularity token.

    Accepted forms are ``<count><suffix>`` with an optional count, e.g.
    ``"5min"``, ``"5m"``, ``"1h"``, ``"d"``, ``"1w"``, ``"3mo"``.

    Raises:
        ValidationError: On an empty, unknown or zero-count token.
    """
    cleaned = (token or "").strip().lower()
    match = _TOKEN_RE.match(cleaned)
    if not match or match.group(2) not in _SUFFIXES:
        raise ValidationError(
            f"Invalid granularity {token!r}. Use e.g. 1min, 5min, 1h, 1d, 1w, 1mo."
        )
    count = int(match.group(1)) if match.group(1) else 1
    if count <= 0:
        raise ValidationError(f"Granularity count must be positive: {token!r}")

    unit, multiplier = _SUFFIXES[match.group(2)]
    if unit is GranularityUnit.MONTH:
        return Granularity(count, unit)
    # "60min" == "1h" and "7d" == "1w"
    return Granularity.from_minutes(count * multiplier * _UNIT_MINUTES[unit])


def interval_label(minutes: int) -> str:
    """Canonical human label for a minute count.

    >>> interval_label(60), interval_label(1440), interval_label(10080)
    ('1hr', '1d', '1w')
    """
    if minutes < MINUTES_PER_HOUR:
        return f"{minutes}min"
    if minutes % MINUTES_PER_WEEK == 0:
        return f"{minutes // MINUTES_PER_WEEK}w"
    if minutes % MINUTES_PER_DAY == 0:
        return f"{minutes // MINUTES_PER_DAY}d"
    if minutes < MINUTES_PER_DAY and minutes % MINUTES_PER_HOUR == 0:
        return f"{minutes // MINUTES_PER_HOUR}hr"
    return f"{minutes}min"
