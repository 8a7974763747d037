"""Merge cached and freshly fetched bars, and persist fetched bars."""

from __future__ import annotations

import logging
from typing import Iterable

from barcache.models.bar import Bar, BarKey
from barcache.store import BarStore

logger = logging.getLogger(__name__)


def _sort_key(bar: Bar) -> tuple:
    return (bar.datetime, bar.ticker, bar.interval)


def reconcile(cached: Iterable[Bar], fresh: Iterable[Bar]) -> list[Bar]:
    """Deduplicate by ``(ticker, interval, datetime)`` and sort ascending.

    On a key collision the fresh bar wins: providers may republish
    corrected values.
    """
    merged: dict[BarKey, Bar] = {}
    for bar in cached:
        merged[bar.key] = bar
    for bar in fresh:
        merged[bar.key] = bar
    return sorted(merged.values(), key=_sort_key)


class Reconciler:
    """Sole writer of persisted bars."""

    def __init__(self, store: BarStore) -> None:
        self.store = store

    def merge(self, cached: list[Bar], fresh: list[Bar]) -> list[Bar]:
        merged = reconcile(cached, fresh)
        replaced = len(cached) + len(fresh) - len(merged)
        if replaced:
            logger.debug("Fresh bars superseded %d cached duplicate(s)", replaced)
        return merged

    def persist(self, fresh: list[Bar]) -> int:
        """Upsert ``fresh`` in one atomic batch. Returns bars written."""
        if not fresh:
            return 0
        written = self.store.upsert(fresh)
        logger.info("Cached %d bar(s)", written)
        return written
