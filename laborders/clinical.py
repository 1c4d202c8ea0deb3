"""
Clinical checks applied to a single result.

- ReferenceRange: structured {low, high, units}, parsed once at snapshot time
- select_reference_range(): picks the range snapshotted into an order
- coerce_result_value(): "85" → 85.0, "trace" stays "trace"
- delta_check_failed(): % change against the patient's previous result
- is_outside_range(): abnormality against the snapshotted range
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

DELTA_CHECK_FAILED = 'DELTA_CHECK_FAILED'

_RANGE_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*-\s*(-?\d+(?:\.\d+)?)\s*(.*?)\s*$")
_NUMERIC_RE = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?\s*$")


@dataclass(frozen=True)
class ReferenceRange:
    low: float
    high: float
    units: str = ""

    def display(self) -> str:
        text = f"{_fmt(self.low)} - {_fmt(self.high)}"
        return f"{text} {self.units}" if self.units else text

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def parse_reference_range(text: str) -> Optional[ReferenceRange]:
    """
    Parse a "<low> - <high> <units>" string, e.g. "70 - 99 mg/dL".

    Returns None when the text does not look like a range; callers treat
    that as "no range", which disables the abnormality check.
    """
    if not text:
        return None
    match = _RANGE_RE.match(text)
    if not match:
        return None
    low, high, units = float(match.group(1)), float(match.group(2)), match.group(3)
    if low > high:
        return None
    return ReferenceRange(low=low, high=high, units=units)


def range_from_catalog_entry(entry: Any) -> Optional[ReferenceRange]:
    """Accepts a catalog range dict or a legacy range string."""
    if isinstance(entry, str):
        return parse_reference_range(entry)
    if not isinstance(entry, dict):
        return None

    low, high = entry.get('rangeLow'), entry.get('rangeHigh')
    if not is_numeric(low) or not is_numeric(high) or low > high:
        return None
    return ReferenceRange(low=float(low), high=float(high), units=str(entry.get('units') or ''))


def select_reference_range(ranges: list) -> Optional[ReferenceRange]:
    """
    Pick the range to snapshot into an order.

    Always the first parsable entry, regardless of the patient's age or
    gender, even though catalog ranges carry ageMin/ageMax/gender.
    TODO: select by patient demographics once PatientSummary carries dob/gender.
    """
    for entry in ranges or []:
        parsed = range_from_catalog_entry(entry)
        if parsed is not None:
            return parsed
    return None


def is_numeric(value: Any) -> bool:
    # bool 是 int 的子类，要排除
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def coerce_result_value(value: Any) -> Any:
    """Numeric-looking strings become numbers; everything else is kept as given."""
    if isinstance(value, str) and _NUMERIC_RE.match(value):
        number = float(value)
        if math.isfinite(number):
            return number
    return value


def percent_change(new: float, previous: float) -> float:
    return abs(new - previous) / previous * 100


def delta_check_failed(new: Any, previous: Any, threshold_percent: float = 50.0) -> bool:
    """
    True when the change from the previous result is strictly greater than
    threshold_percent. 100 → 150 is exactly 50% and passes; 100 → 151 fails.

    Non-numeric values on either side, or a zero previous value, cannot be
    compared and never fail.
    """
    if not is_numeric(new) or not is_numeric(previous) or previous == 0:
        return False
    return percent_change(new, previous) > threshold_percent


def is_outside_range(value: Any, reference_range: Optional[ReferenceRange]) -> bool:
    if reference_range is None or not is_numeric(value):
        return False
    return not reference_range.contains(value)
