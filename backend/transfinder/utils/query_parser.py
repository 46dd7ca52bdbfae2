"""
Free-text query normalization.

Turns "Golf 6 cambios 2015" into structured signals:
- explicit speed count (6)
- explicit model year (2015)
- keyword tokens (["golf"])

Each step is a small pure function so it can be tested on its own; parse_query()
chains them in order: speeds -> 2-digit years -> 4-digit year -> tokens.
"""

import re
from dataclasses import dataclass, field

from transfinder.exceptions import InvalidQuery

# Words that mean "speeds" next to a gear count ("6 cambios", "4sp", "5-speed")
SPEED_SYNONYMS = (
    "velocidades",
    "cambios",
    "cambio",
    "marchas",
    "speeds",
    "speed",
    "vel",
    "spd",
    "sp",
)

_SPEED_WORDS = "|".join(SPEED_SYNONYMS)

# "<n> cambios", "4sp", "5-speed"
_SPEED_BEFORE = re.compile(rf"(?<![\w-])(?<!\d[.,])(\d{{1,2}})\s*-?\s*(?:{_SPEED_WORDS})\b", re.IGNORECASE)
# "velocidades 6", "speed: 5"; "cambios" alone also means gearbox, so only 3-10 counts
_SPEED_AFTER = re.compile(rf"\b(?:{_SPEED_WORDS})\s*[-:]?\s*(10|[3-9])(?![\w-]|[.,]\d)", re.IGNORECASE)
# A lone digit 3-9 is read as an implicit gear count; "2.4" or "3,5" is an engine size
_IMPLICIT_SPEED = re.compile(r"(?<![\w-])(?<!\d[.,])([3-9])(?![\w-]|[.,]\d)")

_TWO_DIGIT_TOKEN = re.compile(r"(?<![\w-])(?<!\d[.,])(\d{2})(?![\w-]|[.,]\d)")
_YEAR_TOKEN = re.compile(r"(?<![\w-])(?<!\d[.,])((?:19|20)\d{2})(?![\w-]|[.,]\d)")

_TOKEN_PUNCTUATION = ".,;:!?¿¡\"'()[]{}"

# Transmission-domain filler that never helps matching
STOP_WORDS = frozenset(
    {
        # Spanish
        "transmision",
        "transmisión",
        "transmisiones",
        "caja",
        "cambios",
        "cambio",
        "automatica",
        "automática",
        "automatico",
        "automático",
        "para",
        "de",
        "del",
        "el",
        "la",
        "los",
        "las",
        "mi",
        "un",
        "una",
        "con",
        "modelo",
        "año",
        "ano",
        "que",
        "cual",
        "cuál",
        "busco",
        "tiene",
        "lleva",
        "usa",
        # English
        "the",
        "for",
        "my",
        "transmission",
        "trans",
        "automatic",
        "gearbox",
        "year",
        "model",
        "what",
        "which",
    }
)


@dataclass(frozen=True)
class ParsedQuery:
    """Structured signals extracted from a raw user query."""

    raw_text: str
    explicit_year: int | None = None
    explicit_speed_count: int | None = None
    keyword_tokens: tuple[str, ...] = field(default_factory=tuple)


def _remove_span(text: str, match: re.Match) -> str:
    return " ".join((text[: match.start()] + " " + text[match.end() :]).split())


def extract_speed_count(text: str) -> tuple[int | None, str]:
    """
    Find a gear count in the text and remove it.

    Explicit forms ("6 cambios", "velocidades 5") win; otherwise a lone digit
    in 3-9 is taken as an implicit count.
    """
    for pattern in (_SPEED_BEFORE, _SPEED_AFTER):
        match = pattern.search(text)
        if match:
            count = int(match.group(1))
            if count > 0:
                return count, _remove_span(text, match)

    match = _IMPLICIT_SPEED.search(text)
    if match:
        return int(match.group(1)), _remove_span(text, match)
    return None, text


def expand_two_digit_years(text: str) -> str:
    """Expand standalone 2-digit tokens: 80-99 -> 19xx, 00-30 -> 20xx, 31-79 untouched."""

    def _expand(match: re.Match) -> str:
        value = int(match.group(1))
        if 80 <= value <= 99:
            return f"19{match.group(1)}"
        if value <= 30:
            return f"20{match.group(1)}"
        return match.group(1)

    return _TWO_DIGIT_TOKEN.sub(_expand, text)


def extract_year(text: str) -> tuple[int | None, str]:
    """Pull the first 19xx/20xx token out of the text."""
    match = _YEAR_TOKEN.search(text)
    if not match:
        return None, text
    return int(match.group(1)), _remove_span(text, match)


def compress_hyphens(token: str) -> str:
    """Drop internal hyphens: cx-9 -> cx9."""
    return token.replace("-", "")


def tokenize(text: str, min_length: int = 1) -> list[str]:
    """Lower-case, split, strip punctuation, compress hyphens and drop filler tokens."""
    tokens = []
    for raw in text.lower().split():
        token = compress_hyphens(raw.strip(_TOKEN_PUNCTUATION))
        if len(token) <= min_length:
            continue
        if token in STOP_WORDS:
            continue
        tokens.append(token)
    return tokens


def parse_query(raw_text: str | None, min_length: int = 1) -> ParsedQuery:
    """
    Normalize a raw query into a ParsedQuery.

    Raises InvalidQuery for missing or blank input; everything else is total.
    """
    if raw_text is None or not isinstance(raw_text, str) or not raw_text.strip():
        raise InvalidQuery("Query text is empty")

    text = " ".join(raw_text.split())
    speed_count, text = extract_speed_count(text)
    text = expand_two_digit_years(text)
    year, text = extract_year(text)

    return ParsedQuery(
        raw_text=raw_text.strip(),
        explicit_year=year,
        explicit_speed_count=speed_count,
        keyword_tokens=tuple(tokenize(text, min_length=min_length)),
    )
