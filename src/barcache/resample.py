"""Aggregate fine-grained bars into a coarser interval.

Before a group is aggregated, every bar in it is moved onto the split basis
of the group's last bar, so a split inside the window does not distort the
group's high and low.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Hashable

from barcache.errors import ResamplingError
from barcache.granularity import Granularity, GranularityUnit, parse_granularity
from barcache.models.bar import Bar


def _as_granularity(value: Granularity | int) -> Granularity:
    if isinstance(value, Granularity):
        return value
    return Granularity.from_minutes(int(value))


def _minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def _calendar_key(day: date, target: Granularity) -> Hashable:
    if target.unit is GranularityUnit.MONTH:
        return (day.year * 12 + day.month - 1) // target.count
    if target.unit is GranularityUnit.WEEK:
        monday = day - timedelta(days=day.weekday())
        return monday.toordinal() // (7 * target.count)
    return day.toordinal() // target.count


def _intraday_groups(bars: list[Bar], target: int) -> list[list[Bar]]:
    # Buckets are wall-clock aligned: [k * target, (k + 1) * target) minutes of the day.
    # Partial buckets at the session edges are kept.
    groups: list[list[Bar]] = []
    last_key: tuple[date, int] | None = None
    for bar in bars:
        key = (bar.datetime.date(), _minute_of_day(bar.datetime) // target)
        if not groups or key != last_key:
            groups.append([])
            last_key = key
        groups[-1].append(bar)
    return groups


def _calendar_groups(bars: list[Bar], target: Granularity) -> list[list[Bar]]:
    groups: list[list[Bar]] = []
    last_key: Hashable = None
    for bar in bars:
        key = _calendar_key(bar.datetime.date(), target)
        if not groups or key != last_key:
            groups.append([])
            last_key = key
        groups[-1].append(bar)
    return groups


def align_splits(group: list[Bar]) -> list[Bar]:
    """Rescale every bar onto the split basis of the last bar in ``group``."""
    target_split = group[-1].split_coefficient
    if not target_split:
        return list(group)
    aligned: list[Bar] = []
    for bar in group:
        source_split = bar.split_coefficient
        if not source_split or source_split == target_split:
            aligned.append(bar)
        else:
            aligned.append(bar.rescaled(target_split / source_split))
    return aligned


def aggregate(group: list[Bar], label: str) -> Bar:
    """Collapse one non-empty group into a single bar labelled ``label``."""
    aligned = align_splits(group)
    first, last = aligned[0], aligned[-1]
    dividends = [b.dividend_amount for b in aligned if b.dividend_amount is not None]
    return replace(
        last,
        interval=label,
        datetime=first.datetime,
        open=first.open,
        high=max(b.high for b in aligned),
        low=min(b.low for b in aligned),
        close=last.close,
        volume=sum(int(b.volume) for b in aligned),
        dividend_amount=sum(dividends) if dividends else None,
    )


def resample(
    bars: list[Bar],
    target: Granularity | int,
    native: Granularity | int | None = None,
) -> list[Bar]:
    """Resample chronologically sorted bars of one ticker to ``target``.

    Intraday bars are bucketed by wall clock: a bar belongs to bucket
    ``minute_of_day // target_minutes`` of its trading date, so no output
    bar spans more than the target. Day, week and month targets group by
    calendar period.

    Args:
        bars: Bars of a single ticker at the native interval, ascending.
        target: Requested granularity, or a minute count.
        native: Native granularity of ``bars``. Defaults to the interval
            label carried by the first bar.

    Raises:
        ResamplingError: If ``target`` is finer than ``native``.
    """
    if not bars:
        return []

    target_g = _as_granularity(target)
    native_g = _as_granularity(native) if native is not None else parse_granularity(bars[0].interval)

    if target_g.minutes < native_g.minutes:
        raise ResamplingError(
            f"Cannot resample {native_g.label} bars to finer interval {target_g.label}"
        )
    if target_g == native_g:
        return list(bars)

    if target_g.is_intraday:
        groups = _intraday_groups(bars, target_g.minutes)
    else:
        groups = _calendar_groups(bars, target_g)
    return [aggregate(group, target_g.label) for group in groups]
