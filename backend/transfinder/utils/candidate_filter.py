"""
Candidate filtering over the transmission catalog.

Strategies run in order and the first one that returns anything wins:

    EXACT    keywords + speed count + year
    RELAXED  keywords + speed count, year ignored ("model exists, not that year")
    NONE     nothing matched; the caller falls back to a spelling suggestion

Candidates keep catalog order and are never de-duplicated here: two engine
variants sharing a transmission code are both returned.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from transfinder.schemas.catalog import CatalogRecord
from transfinder.utils.query_parser import ParsedQuery
from transfinder.utils.year_range import is_year_in_range


class Tier(Enum):
    EXACT = "exact"
    RELAXED = "relaxed"
    NONE = "none"


@dataclass
class FilterResult:
    """Outcome of filtering: capped candidates, the tier that produced them, and the uncapped count."""

    candidates: list[CatalogRecord] = field(default_factory=list)
    tier: Tier = Tier.NONE
    total_matches: int = 0


_SPEED_SUFFIX = r"\s*-?\s*(?:SP|SPD|SPEED|VEL|VELOCIDADES)\b"


def matches_keywords(record: CatalogRecord, tokens: Iterable[str]) -> bool:
    """Every token must appear as a substring of the record's searchable text."""
    text = record.searchable_text
    return all(token in text for token in tokens)


def matches_speed(record: CatalogRecord, speed_count: int | None) -> bool:
    """Trans type mentions the gear count: '4 SP', '4SP', '4 SPEED', '4-SPD'."""
    if speed_count is None:
        return True
    pattern = rf"(?<!\d){speed_count}{_SPEED_SUFFIX}"
    return re.search(pattern, record.trans_type, re.IGNORECASE) is not None


def matches_year(record: CatalogRecord, year: int | None) -> bool:
    if year is None:
        return True
    return is_year_in_range(record.year_range, year)


def exact_strategy(catalog: Iterable[CatalogRecord], parsed: ParsedQuery) -> list[CatalogRecord]:
    return [
        record
        for record in catalog
        if matches_keywords(record, parsed.keyword_tokens)
        and matches_speed(record, parsed.explicit_speed_count)
        and matches_year(record, parsed.explicit_year)
    ]


def relaxed_strategy(catalog: Iterable[CatalogRecord], parsed: ParsedQuery) -> list[CatalogRecord]:
    if parsed.explicit_year is None:
        # Without a year this is the exact strategy again
        return []
    return [
        record
        for record in catalog
        if matches_keywords(record, parsed.keyword_tokens) and matches_speed(record, parsed.explicit_speed_count)
    ]


Strategy = Callable[[Iterable[CatalogRecord], ParsedQuery], list[CatalogRecord]]

STRATEGIES: list[tuple[Tier, Strategy]] = [
    (Tier.EXACT, exact_strategy),
    (Tier.RELAXED, relaxed_strategy),
]


def filter_candidates(
    catalog: list[CatalogRecord],
    parsed: ParsedQuery,
    max_candidates: int = 25,
) -> FilterResult:
    """
    Run the strategies in order; the first non-empty one wins, truncated to max_candidates.

    A query with no name tokens ("caja automatica", "2000") matches nothing.
    """
    if not parsed.keyword_tokens:
        return FilterResult()
    for tier, strategy in STRATEGIES:
        matches = strategy(catalog, parsed)
        if matches:
            return FilterResult(candidates=matches[:max_candidates], tier=tier, total_matches=len(matches))
    return FilterResult()


def group_candidates(candidates: list[CatalogRecord], key: str) -> dict[str, list[CatalogRecord]]:
    """
    Group candidates by a record field (e.g. trans_model) for display.

    Groups appear in order of first occurrence and every record is kept.
    """
    if key not in CatalogRecord.model_fields:
        raise ValueError(f"Unknown catalog field: {key}")

    groups: dict[str, list[CatalogRecord]] = {}
    for record in candidates:
        groups.setdefault(getattr(record, key) or "?", []).append(record)
    return groups
