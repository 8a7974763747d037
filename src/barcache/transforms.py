"""Output transform pipeline: price adjustment, returns, column projection.

The order of :data:`PIPELINE` is fixed. Adjustment runs before returns so
returns reflect adjusted prices, and projection runs last because it drops
columns the earlier steps read.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from barcache.models.bar import Bar, round_half_up
from barcache.models.request import PRICE_COLUMNS, BarRequest, Field

logger = logging.getLogger(__name__)

Record = dict[str, Any]
Transform = Callable[[list[Record], BarRequest], list[Record]]

# Fields whose values only make sense on an adjusted series
ADJUSTMENT_FIELDS = frozenset({Field.ADJ_CLOSE, Field.DIVIDEND, Field.RETURNS})

KEY_COLUMNS = ("ticker", "datetime", "interval")

_OPTIONAL_COLUMNS: dict[Field, str] = {
    Field.VOLUME: "volume",
    Field.ADJ_CLOSE: "adj_close",
    Field.DIVIDEND: "dividend_amount",
    Field.SPLIT: "split_coefficient",
}


def return_column(tag: Field) -> str:
    return f"{PRICE_COLUMNS[tag]}_return"


def adjust_prices(records: list[Record], request: BarRequest) -> list[Record]:
    """Scale OHLC and volume by the bar's split/adjustment ratio."""
    if request.unadjusted or not (request.fields & ADJUSTMENT_FIELDS):
        logger.debug("Skipping price adjustment")
        return records

    adjusted: list[Record] = []
    for rec in records:
        close = rec.get("close")
        adj_close = rec.get("adj_close")
        split = rec.get("split_coefficient")
        if not close or adj_close is None or split is None:
            adjusted.append(rec)
            continue

        ratio = split or adj_close / close
        out = dict(rec)
        for col in PRICE_COLUMNS.values():
            if out.get(col) is not None:
                out[col] = round(out[col] * ratio, 4)
        if out.get("volume") is not None:
            # Dividends are already per current share and are not rescaled
            out["volume"] = round_half_up(out["volume"] / ratio)
        adjusted.append(out)
    return adjusted


def calculate_returns(records: list[Record], request: BarRequest) -> list[Record]:
    """Add ``<price>_return`` columns relative to the previous bar's close.

    The previous close is tracked per ticker, so the first bar of every
    ticker carries no return.
    """
    tags = request.return_fields
    if not tags:
        logger.debug("Skipping return calculation")
        return records

    prev_close: dict[str, float | None] = {}
    out: list[Record] = []
    for rec in records:
        new = dict(rec)
        prev = prev_close.get(rec["ticker"])
        if prev:
            for tag in tags:
                value = rec.get(PRICE_COLUMNS[tag])
                if value is not None:
                    new[return_column(tag)] = value / prev - 1
        prev_close[rec["ticker"]] = rec.get("close")
        out.append(new)
    return out


def project_columns(records: list[Record], request: BarRequest) -> list[Record]:
    """Keep identity columns plus exactly the requested fields."""
    returns_only = request.wants_returns and not any(
        request.wants(tag) for tag in PRICE_COLUMNS
    )
    return_cols = [return_column(tag) for tag in request.return_fields]

    projected: list[Record] = []
    for rec in records:
        new: Record = {col: rec.get(col) for col in KEY_COLUMNS}
        if not returns_only:
            for tag, col in PRICE_COLUMNS.items():
                if request.wants(tag):
                    new[col] = rec.get(col)
        for tag, col in _OPTIONAL_COLUMNS.items():
            if request.wants(tag):
                new[col] = rec.get(col)
        for col in return_cols:
            if col in rec:
                new[col] = rec[col]
        projected.append(new)
    return projected


PIPELINE: tuple[Transform, ...] = (
    adjust_prices,
    calculate_returns,
    project_columns,
)


def apply_transforms(bars: list[Bar], request: BarRequest) -> list[Record]:
    """Run the full pipeline over ``bars`` and return output records."""
    logger.debug("Applying output transformations to %d bar(s)", len(bars))
    records = [bar.to_record() for bar in bars]
    for transform in PIPELINE:
        records = transform(records, request)
    return records
