"""Output writers for transformed records (CSV file, JSON to stdout)."""

from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import IO, Any

import pandas as pd

from barcache.errors import ValidationError
from barcache.transforms import Record

logger = logging.getLogger(__name__)


class OutputWriter(ABC):
    """Writes a final list of records somewhere."""

    name: str = "base"

    @abstractmethod
    def write(self, records: list[Record], path: str | None = None) -> Path | None:
        ...


def resolve_path(template: str, records: list[Record], now: datetime | None = None) -> Path:
    """Expand ``$ticker$``, ``$date$`` and ``$timestamp$`` in ``template``."""
    now = now or datetime.now()
    ticker = records[0]["ticker"] if records else "data"
    return Path(
        template
        .replace("$ticker$", str(ticker))
        .replace("$date$", now.strftime("%Y-%m-%d"))
        .replace("$timestamp$", now.strftime("%Y%m%dT%H%M%S"))
    ).expanduser()


class CsvWriter(OutputWriter):
    """CSV file output. With ``$ticker$`` in the path, one file per ticker."""

    name = "csv"

    def write(self, records: list[Record], path: str | None = None) -> Path | None:
        if not path:
            raise ValidationError("An output path is required for CSV format.")
        if not records:
            logger.warning("No data to write. Skipping CSV creation.")
            return None

        if "$ticker$" in path:
            groups: dict[str, list[Record]] = {}
            for rec in records:
                groups.setdefault(rec["ticker"], []).append(rec)
        else:
            groups = {"": records}

        last: Path | None = None
        for group in groups.values():
            target = resolve_path(path, group)
            target.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Writing %d record(s) to %s", len(group), target)
            pd.DataFrame(group).to_csv(target, index=False)
            last = target
        return last


class JsonWriter(OutputWriter):
    """Pretty-printed JSON array on stdout (or a given stream)."""

    name = "json"

    def __init__(self, stream: IO[str] | None = None) -> None:
        self.stream = stream

    def write(self, records: list[Record], path: str | None = None) -> Path | None:
        stream = self.stream or sys.stdout
        stream.write(json.dumps(records, indent=2, default=_json_default))
        stream.write("\n")
        return None


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def create_writer(fmt: str) -> OutputWriter:
    """Instantiate an output writer by format name."""
    fmt = fmt.lower()
    if fmt == "csv":
        return CsvWriter()
    if fmt == "json":
        return JsonWriter()
    raise ValidationError(f'Unsupported output format: "{fmt}"')
