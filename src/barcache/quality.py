"""Data quality validation for fetched bars."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field

from barcache.models.bar import Bar


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Aggregate validation result."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


def validate_bars(bars: list[Bar]) -> ValidationResult:
    """Run all quality checks on a list of bars.

    An empty list passes: a provider may legitimately have nothing for a
    holiday-only range.

    Checks:
        1. Finite OHLC values
        2. Volume non-negative
        3. OHLC consistency (high >= max(open, close), low <= min(open, close))
        4. Unique identity keys
    """
    result = ValidationResult()

    # 1. Finite prices
    non_finite = sum(
        1 for b in bars
        for val in (b.open, b.high, b.low, b.close)
        if math.isnan(val) or math.isinf(val)
    )
    if non_finite:
        result.checks.append(ValidationCheck("finite", False, f"{non_finite} NaN/Inf values"))
    else:
        result.checks.append(ValidationCheck("finite", True))

    # 2. Volume sanity
    neg_vol = sum(1 for b in bars if b.volume < 0)
    if neg_vol:
        result.checks.append(
            ValidationCheck("volume_sanity", False, f"{neg_vol} bars with negative volume")
        )
    else:
        result.checks.append(ValidationCheck("volume_sanity", True))

    # 3. OHLC consistency
    inconsistent = sum(
        1 for b in bars
        if b.high < max(b.open, b.close) or b.low > min(b.open, b.close)
    )
    if inconsistent:
        result.checks.append(
            ValidationCheck("ohlc_consistency", False, f"{inconsistent} bars with H<O/C or L>O/C")
        )
    else:
        result.checks.append(ValidationCheck("ohlc_consistency", True))

    # 4. Duplicate identities
    dupes = sum(n - 1 for n in Counter(b.key for b in bars).values() if n > 1)
    if dupes:
        result.checks.append(ValidationCheck("unique_keys", False, f"{dupes} duplicate bars"))
    else:
        result.checks.append(ValidationCheck("unique_keys", True))

    return result
