"""Bar cache models."""

from barcache.models.bar import Bar, BarKey
from barcache.models.coverage import CacheCoverage
from barcache.models.date_range import DateRange
from barcache.models.request import (
    DEFAULT_FIELDS,
    BarRequest,
    CachePolicy,
    Field,
    parse_fields,
)

__all__ = [
    "Bar",
    "BarKey",
    "BarRequest",
    "CacheCoverage",
    "CachePolicy",
    "DEFAULT_FIELDS",
    "DateRange",
    "Field",
    "parse_fields",
]
