"""
Year-range parsing for catalog records.

Catalog rows describe model years as free text: "98-02", "14-16", "99-UP",
"2010+", "2004". Everything here is total: garbage parses to None and never
matches, it never raises.

Two-digit bounds use a fixed century split: > 50 is 19xx, <= 50 is 20xx.
"""

import re
from dataclasses import dataclass

_BOUND_PATTERN = re.compile(r"^(\d{2}|\d{4})$")
_OPEN_MARKERS = ("UP", "+")


@dataclass(frozen=True)
class YearInterval:
    """Canonical year interval. end=None means open-ended ("99-UP")."""

    start: int
    end: int | None = None
    crosses_century: bool = False

    @property
    def is_open(self) -> bool:
        return self.end is None

    def contains(self, year: int) -> bool:
        if self.end is None:
            return year >= self.start
        if self.crosses_century:
            return year >= self.start or year <= self.end
        return self.start <= year <= self.end


def expand_two_digit_bound(value: str) -> int | None:
    """Expand a 2-digit bound to 4 digits; 4-digit bounds pass through."""
    value = value.strip()
    if not _BOUND_PATTERN.match(value):
        return None
    number = int(value)
    if len(value) == 4:
        return number
    return 1900 + number if number > 50 else 2000 + number


def parse_year_range(raw: str) -> YearInterval | None:
    """
    Parse a catalog year-range string into a YearInterval.

    Rules, tried in order:
    1. hyphen without UP/+  -> bounded range; start > end means the range
       crosses a century boundary
    2. UP or +              -> open range from the single bound
    3. anything else        -> a single year
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip().upper()
    if not text:
        return None

    is_open = any(marker in text for marker in _OPEN_MARKERS)

    if "-" in text and not is_open:
        parts = text.split("-")
        if len(parts) != 2:
            return None
        start = expand_two_digit_bound(parts[0])
        end = expand_two_digit_bound(parts[1])
        if start is None or end is None:
            return None
        return YearInterval(start=start, end=end, crosses_century=start > end)

    if is_open:
        bound = text
        for token in (*_OPEN_MARKERS, "-"):
            bound = bound.replace(token, "")
        start = expand_two_digit_bound(bound)
        if start is None:
            return None
        return YearInterval(start=start, end=None)

    single = expand_two_digit_bound(text)
    if single is None:
        return None
    return YearInterval(start=single, end=single)


def is_year_in_range(raw_range: str, target_year: int) -> bool:
    """True when target_year falls inside the catalog year-range text."""
    interval = parse_year_range(raw_range)
    if interval is None:
        return False
    try:
        return interval.contains(int(target_year))
    except (TypeError, ValueError):
        return False
