"""Validated bar request and its field selector tags."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum

from barcache.errors import ValidationError
from barcache.granularity import Granularity
from barcache.models.date_range import DateRange


class Field(Enum):
    """Output field tags, one letter each in a selector string."""

    OPEN = "o"
    HIGH = "h"
    LOW = "l"
    CLOSE = "c"
    VOLUME = "v"
    ADJ_CLOSE = "a"
    DIVIDEND = "d"
    SPLIT = "s"
    RETURNS = "r"


PRICE_FIELDS: tuple[Field, ...] = (Field.OPEN, Field.HIGH, Field.LOW, Field.CLOSE)

# Record column for each price tag
PRICE_COLUMNS: dict[Field, str] = {
    Field.OPEN: "open",
    Field.HIGH: "high",
    Field.LOW: "low",
    Field.CLOSE: "close",
}

DEFAULT_FIELDS = "ohlcvad"


def parse_fields(selector: str) -> frozenset[Field]:
    """Map a selector like ``"ohlcvad"`` to a set of :class:`Field` tags."""
    tags: set[Field] = set()
    for letter in selector.strip().lower():
        try:
            tags.add(Field(letter))
        except ValueError:
            valid = "".join(f.value for f in Field)
            raise ValidationError(
                f"Unknown field {letter!r} in {selector!r}. Valid fields: {valid}"
            ) from None
    if not tags:
        raise ValidationError("At least one field must be selected.")
    return frozenset(tags)


class CachePolicy(Enum):
    """How the engine treats the local cache."""

    USE = "use"
    IGNORE = "ignore"
    REFRESH = "refresh"


@dataclass(frozen=True)
class BarRequest:
    """Immutable, validated request for bars.

    Built by :func:`barcache.request.build_request`; components derive
    narrower requests with :meth:`with_tickers` rather than mutating.
    """

    tickers: tuple[str, ...]
    start: date
    end: date
    granularity: Granularity
    fields: frozenset[Field]
    unadjusted: bool = False
    cache_policy: CachePolicy = CachePolicy.USE

    def __post_init__(self) -> None:
        if not self.tickers:
            raise ValidationError("At least one ticker must be provided.")
        # Reuses DateRange's start <= end check
        DateRange(self.start, self.end)

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start, self.end)

    @property
    def interval(self) -> str:
        return self.granularity.label

    def wants(self, tag: Field) -> bool:
        return tag in self.fields

    @property
    def wants_returns(self) -> bool:
        return Field.RETURNS in self.fields

    @property
    def return_fields(self) -> tuple[Field, ...]:
        """Price fields that get a ``<field>_return`` column.

        A returns-only selector (``"r"``) yields returns for all four prices.
        """
        if not self.wants_returns:
            return ()
        requested = tuple(f for f in PRICE_FIELDS if f in self.fields)
        return requested or PRICE_FIELDS

    def with_tickers(self, tickers: list[str] | tuple[str, ...]) -> BarRequest:
        return replace(self, tickers=tuple(tickers))
