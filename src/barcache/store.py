"""Bar stores: SQLite (default), Parquet (disk), Memory, and a no-op store.

Every backend is a key-value upsert store keyed by the composite bar identity
``(ticker, interval, datetime)``. One ``upsert`` call is one atomic batch.
"""

from __future__ import annotations

import logging
import os
import shutil
import sqlite3
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import closing, contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator

import pandas as pd

from barcache.errors import StoreError
from barcache.models.bar import Bar, BarKey
from barcache.models.date_range import DateRange

logger = logging.getLogger(__name__)

BAR_COLUMNS = [
    "ticker", "interval", "datetime", "open", "high", "low", "close", "volume",
    "adj_close", "split_coefficient", "dividend_amount",
]


class BarStore(ABC):
    """Abstract store interface."""

    @abstractmethod
    def query(self, ticker: str, interval: str, date_range: DateRange) -> list[Bar]:
        """Return stored bars within the range, ordered by datetime."""
        ...

    @abstractmethod
    def cached_dates(self, ticker: str, interval: str, date_range: DateRange) -> set[date]:
        """Return the calendar days holding at least one stored bar."""
        ...

    @abstractmethod
    def upsert(self, bars: list[Bar]) -> int:
        """Insert or replace bars by identity. Returns the number written."""
        ...

    @abstractmethod
    def clear(self, ticker: str) -> None:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...


class NoStore(BarStore):
    """No-op store: always empty, discards writes."""

    def query(self, ticker, interval, date_range):  # type: ignore[override]
        return []

    def cached_dates(self, ticker, interval, date_range):  # type: ignore[override]
        return set()

    def upsert(self, bars):  # type: ignore[override]
        return 0

    def clear(self, ticker):  # type: ignore[override]
        pass

    def clear_all(self):
        pass


class MemoryStore(BarStore):
    """In-process store, mainly for tests and one-shot runs."""

    def __init__(self) -> None:
        self._bars: dict[BarKey, Bar] = {}

    def _select(self, ticker: str, interval: str, date_range: DateRange) -> list[Bar]:
        ticker = ticker.upper()
        return [
            b for b in self._bars.values()
            if b.ticker == ticker and b.interval == interval
            and b.datetime.date() in date_range
        ]

    def query(self, ticker: str, interval: str, date_range: DateRange) -> list[Bar]:
        return sorted(self._select(ticker, interval, date_range), key=lambda b: b.datetime)

    def cached_dates(self, ticker: str, interval: str, date_range: DateRange) -> set[date]:
        return {b.datetime.date() for b in self._select(ticker, interval, date_range)}

    def upsert(self, bars: list[Bar]) -> int:
        if not bars:
            return 0
        updated = dict(self._bars)
        for bar in bars:
            updated[bar.key] = bar
        self._bars = updated
        return len(bars)

    def clear(self, ticker: str) -> None:
        ticker = ticker.upper()
        self._bars = {k: b for k, b in self._bars.items() if b.ticker != ticker}

    def clear_all(self) -> None:
        self._bars = {}

    def __len__(self) -> int:
        return len(self._bars)


# Applied in order; names are recorded in the ``migrations`` table.
MIGRATIONS: list[tuple[str, str]] = [
    (
        "001-initial-schema",
        """
        CREATE TABLE IF NOT EXISTS bar (
            ticker TEXT NOT NULL,
            interval TEXT NOT NULL,
            datetime TEXT NOT NULL,
            open REAL NOT NULL,
            high REAL NOT NULL,
            low REAL NOT NULL,
            close REAL NOT NULL,
            volume INTEGER NOT NULL,
            adj_close REAL,
            split_coefficient REAL,
            dividend_amount REAL,
            PRIMARY KEY (ticker, interval, datetime)
        );
        """,
    ),
]


class SqliteStore(BarStore):
    """SQLite-backed store.

    Datetimes are stored as ISO-8601 text so range filters are plain string
    comparisons on the ``datetime`` column.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._run_migrations()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # Commits or rolls back on exit, then closes the handle
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            yield conn

    def _run_migrations(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "CREATE TABLE IF NOT EXISTS migrations ("
                    " name TEXT PRIMARY KEY,"
                    " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
                )
                applied = {row[0] for row in conn.execute("SELECT name FROM migrations")}
                for name, sql in MIGRATIONS:
                    if name in applied:
                        continue
                    logger.info("Applying cache migration %s", name)
                    conn.executescript(sql)
                    conn.execute("INSERT INTO migrations (name) VALUES (?)", (name,))
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to initialise cache at {self.db_path}: {exc}") from exc

    @staticmethod
    def _bounds(date_range: DateRange) -> tuple[str, str]:
        # Half-open [start, end + 1 day) so every timestamp of the end day matches
        return date_range.start.isoformat(), (date_range.end + timedelta(days=1)).isoformat()

    def query(self, ticker: str, interval: str, date_range: DateRange) -> list[Bar]:
        lo, hi = self._bounds(date_range)
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT {', '.join(BAR_COLUMNS)} FROM bar"
                    " WHERE ticker = ? AND interval = ? AND datetime >= ? AND datetime < ?"
                    " ORDER BY datetime ASC",
                    (ticker.upper(), interval, lo, hi),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Cache query failed for {ticker} {interval}: {exc}") from exc
        return [self._row_to_bar(row) for row in rows]

    def cached_dates(self, ticker: str, interval: str, date_range: DateRange) -> set[date]:
        lo, hi = self._bounds(date_range)
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT DISTINCT substr(datetime, 1, 10) FROM bar"
                    " WHERE ticker = ? AND interval = ? AND datetime >= ? AND datetime < ?",
                    (ticker.upper(), interval, lo, hi),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Cache coverage query failed for {ticker}: {exc}") from exc
        return {date.fromisoformat(row[0]) for row in rows}

    def upsert(self, bars: list[Bar]) -> int:
        if not bars:
            return 0
        placeholders = ", ".join("?" for _ in BAR_COLUMNS)
        sql = f"INSERT OR REPLACE INTO bar ({', '.join(BAR_COLUMNS)}) VALUES ({placeholders})"
        try:
            # The connection context manager commits or rolls back the whole batch
            with self._connect() as conn:
                conn.executemany(sql, [self._bar_to_row(b) for b in bars])
        except sqlite3.Error as exc:
            raise StoreError(f"Cache write failed: {exc}") from exc
        logger.debug("Upserted %d bars into %s", len(bars), self.db_path)
        return len(bars)

    def clear(self, ticker: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM bar WHERE ticker = ?", (ticker.upper(),))
        except sqlite3.Error as exc:
            raise StoreError(f"Cache clear failed for {ticker}: {exc}") from exc

    def clear_all(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM bar")
        except sqlite3.Error as exc:
            raise StoreError(f"Cache clear failed: {exc}") from exc

    # ---- helpers ----

    @staticmethod
    def _bar_to_row(b: Bar) -> tuple:
        return (
            b.ticker, b.interval, b.datetime.isoformat(), b.open, b.high, b.low,
            b.close, int(b.volume), b.adj_close, b.split_coefficient, b.dividend_amount,
        )

    @staticmethod
    def _row_to_bar(row: tuple) -> Bar:
        return Bar(
            ticker=row[0],
            interval=row[1],
            datetime=datetime.fromisoformat(row[2]),
            open=row[3],
            high=row[4],
            low=row[5],
            close=row[6],
            volume=int(row[7]),
            adj_close=row[8],
            split_coefficient=row[9],
            dividend_amount=row[10],
        )


class ParquetStore(BarStore):
    """Disk store using one Parquet file per ticker and interval.

    Storage layout: ``{base_path}/{TICKER}/{interval}.parquet``
    """

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path).expanduser()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _file_path(self, ticker: str, interval: str) -> Path:
        return self.base_path / ticker.upper() / f"{interval}.parquet"

    def _load(self, ticker: str, interval: str) -> pd.DataFrame:
        fp = self._file_path(ticker, interval)
        if not fp.exists():
            return pd.DataFrame(columns=BAR_COLUMNS)
        try:
            return pd.read_parquet(fp)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Unreadable cache file {fp}: {exc}") from exc

    def _select(self, ticker: str, interval: str, date_range: DateRange) -> pd.DataFrame:
        df = self._load(ticker, interval)
        if df.empty:
            return df
        days = pd.to_datetime(df["datetime"]).dt.date
        mask = (days >= date_range.start) & (days <= date_range.end)
        return df[mask.to_numpy()]

    def query(self, ticker: str, interval: str, date_range: DateRange) -> list[Bar]:
        df = self._select(ticker, interval, date_range)
        bars = self._df_to_bars(df)
        bars.sort(key=lambda b: b.datetime)
        return bars

    def cached_dates(self, ticker: str, interval: str, date_range: DateRange) -> set[date]:
        df = self._select(ticker, interval, date_range)
        if df.empty:
            return set()
        return set(pd.to_datetime(df["datetime"]).dt.date)

    def upsert(self, bars: list[Bar]) -> int:
        if not bars:
            return 0

        grouped: dict[tuple[str, str], list[Bar]] = defaultdict(list)
        for bar in bars:
            grouped[(bar.ticker, bar.interval)].append(bar)

        # Write every file to a temp path first, then swap them all in
        staged: list[tuple[Path, Path]] = []
        try:
            for (ticker, interval), group in grouped.items():
                existing = self._load(ticker, interval)
                merged = pd.concat(
                    [df for df in (existing, self._bars_to_df(group)) if not df.empty],
                    ignore_index=True,
                )
                merged = (
                    merged.drop_duplicates(subset=["datetime"], keep="last")
                    .sort_values("datetime")
                    .reset_index(drop=True)
                )
                fp = self._file_path(ticker, interval)
                fp.parent.mkdir(parents=True, exist_ok=True)
                tmp = fp.with_suffix(".parquet.tmp")
                merged.to_parquet(tmp, compression="snappy", index=False)
                staged.append((tmp, fp))
        except (OSError, ValueError) as exc:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise StoreError(f"Cache write failed: {exc}") from exc

        for tmp, fp in staged:
            os.replace(tmp, fp)
        logger.debug("Upserted %d bars into %d parquet file(s)", len(bars), len(staged))
        return len(bars)

    def clear(self, ticker: str) -> None:
        ticker_dir = self.base_path / ticker.upper()
        if ticker_dir.exists():
            shutil.rmtree(ticker_dir)

    def clear_all(self) -> None:
        for d in self.base_path.iterdir():
            if d.is_dir():
                shutil.rmtree(d)

    # ---- helpers ----

    @staticmethod
    def _bars_to_df(bars: list[Bar]) -> pd.DataFrame:
        return pd.DataFrame([b.to_record() for b in bars], columns=BAR_COLUMNS)

    @staticmethod
    def _df_to_bars(df: pd.DataFrame) -> list[Bar]:
        def _opt(value) -> float | None:
            return float(value) if pd.notna(value) else None

        bars: list[Bar] = []
        for row in df.itertuples(index=False):
            bars.append(Bar(
                ticker=row.ticker,
                interval=row.interval,
                datetime=pd.Timestamp(row.datetime).to_pydatetime(),
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=int(row.volume),
                adj_close=_opt(row.adj_close),
                split_coefficient=_opt(row.split_coefficient),
                dividend_amount=_opt(row.dividend_amount),
            ))
        return bars


def create_store(backend: str, path: Path | str | None = None) -> BarStore:
    """Instantiate a store by backend name: sqlite, parquet, memory, none."""
    backend = backend.lower()
    if backend == "sqlite":
        return SqliteStore(path or Path.home() / ".barcache" / "cache.sqlite")
    if backend == "parquet":
        return ParquetStore(path or Path.home() / ".barcache" / "parquet")
    if backend == "memory":
        return MemoryStore()
    if backend == "none":
        return NoStore()
    raise StoreError(f"Unsupported cache backend: {backend!r}")
