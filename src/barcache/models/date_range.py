"""Inclusive calendar date range."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from barcache.errors import ValidationError


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``[start, end]`` range of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"Start date ({self.start}) cannot be after end date ({self.end})."
            )

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, date) and self.start <= item <= self.end

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
