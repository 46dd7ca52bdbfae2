"""
"Did you mean" fallback for queries that match nothing in the catalog.

Name correction is delegated to a SpellCorrector:
- GeminiSpellCorrector asks Gemini to pick the closest known model name
- LocalSpellCorrector does it deterministically with rapidfuzz

Whatever the corrector returns, the year check is done locally against the
catalog so the reply can tell "wrong name" apart from "right name, wrong year".
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from rapidfuzz import fuzz, process

from transfinder.schemas.catalog import CatalogRecord
from transfinder.services.catalog import known_model_names
from transfinder.services.text_completion import GeminiClient
from transfinder.utils.query_parser import ParsedQuery
from transfinder.utils.year_range import is_year_in_range

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "No encontré ese vehículo en mi base de datos. ¿Hay otra manera de nombrarlo?"

SUGGESTION_PROMPT = """Eres un corrector de nombres de vehículos.
El usuario escribió: "{query}"

Lista de vehículos conocidos:
{names}

Si el texto del usuario es un error de escritura, una abreviatura o una forma fonética de alguno de los
vehículos de la lista, responde con ese nombre EXACTO tal como aparece en la lista.
Si no se parece a ninguno, responde found=false.

Responde SOLO con JSON, sin markdown:
{{"found": true, "suggestion": "Marca Modelo"}}"""


class SpellCorrector(Protocol):
    async def correct(self, text: str, known_names: list[str]) -> str | None: ...


@dataclass
class Suggestion:
    found: bool
    suggestion: str | None
    message: str
    year_available: bool | None = None
    degraded: bool = False


def _match_known(candidate: str, known_names: list[str]) -> str | None:
    """Map a returned name back onto the canonical spelling, or None if it isn't known."""
    wanted = " ".join(candidate.lower().split())
    for name in known_names:
        if name.lower() == wanted:
            return name
    return None


def parse_suggestion_reply(text: str) -> dict | None:
    """Pull the JSON object out of a model reply, tolerating fences and chatter."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    if text.endswith("```"):
        text = text[: text.rfind("```")]
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class LocalSpellCorrector:
    """Edit-distance correction with rapidfuzz; deterministic and offline."""

    def __init__(self, cutoff: float = 70.0):
        self.cutoff = cutoff

    async def correct(self, text: str, known_names: list[str]) -> str | None:
        if not text.strip() or not known_names:
            return None
        best = process.extractOne(
            text,
            known_names,
            scorer=fuzz.WRatio,
            processor=str.lower,
            score_cutoff=self.cutoff,
        )
        return best[0] if best else None


class GeminiSpellCorrector:
    """Lets Gemini pick the closest known name (handles phonetic and Spanglish spellings)."""

    def __init__(self, client: GeminiClient, max_names: int = 300):
        self.client = client
        self.max_names = max_names

    def _shortlist(self, text: str, known_names: list[str]) -> list[str]:
        if len(known_names) <= self.max_names:
            return known_names
        # Keep the prompt bounded: pre-rank with rapidfuzz and send the closest names only
        ranked = process.extract(text, known_names, scorer=fuzz.WRatio, processor=str.lower, limit=self.max_names)
        return [name for name, _score, _index in ranked]

    async def correct(self, text: str, known_names: list[str]) -> str | None:
        if not text.strip() or not known_names:
            return None
        names = self._shortlist(text, known_names)
        prompt = SUGGESTION_PROMPT.format(query=text, names="\n".join(names))
        reply = await self.client.generate(
            prompt, temperature=0.0, max_output_tokens=128, response_mime_type="application/json"
        )
        data = parse_suggestion_reply(reply)
        if not data:
            logger.warning(f"Unparseable suggestion reply: {reply[:200]}")
            return None
        if not data.get("found") or not isinstance(data.get("suggestion"), str):
            return None
        suggestion = _match_known(data["suggestion"], names)
        if suggestion is None:
            logger.info(f"Discarding suggestion not in catalog: {data['suggestion']}")
        return suggestion


def _available_years(catalog: list[CatalogRecord], name: str) -> list[str]:
    years: list[str] = []
    for record in catalog:
        if record.display_name.lower() == name.lower() and record.year_range and record.year_range not in years:
            years.append(record.year_range)
    return years


async def suggest(corrector: SpellCorrector, parsed: ParsedQuery, catalog: list[CatalogRecord]) -> Suggestion:
    """
    Produce a "did you mean" outcome for a query with no candidates.

    Corrector failures of any kind degrade to the plain not-found message.
    """
    known = known_model_names(catalog)
    query_text = " ".join(parsed.keyword_tokens) or parsed.raw_text

    try:
        name = await corrector.correct(query_text, known)
    except Exception as e:
        logger.error(f"Spell correction failed: {e}")
        return Suggestion(found=False, suggestion=None, message=NOT_FOUND_MESSAGE, degraded=True)

    if not name:
        return Suggestion(found=False, suggestion=None, message=NOT_FOUND_MESSAGE)

    year = parsed.explicit_year
    if year is None:
        return Suggestion(found=True, suggestion=name, message=f"¿Quisiste decir <b>{name}</b>?")

    records = [r for r in catalog if r.display_name.lower() == name.lower()]
    if any(is_year_in_range(r.year_range, year) for r in records):
        corrected = f"{name} {year}"
        return Suggestion(
            found=True,
            suggestion=corrected,
            message=f"¿Quisiste decir <b>{corrected}</b>?",
            year_available=True,
        )

    years = ", ".join(_available_years(catalog, name)) or "?"
    return Suggestion(
        found=True,
        suggestion=name,
        message=(
            f"¿Quisiste decir <b>{name}</b>? Ese modelo existe en el catálogo, "
            f"pero no para el año {year}. Años disponibles: {years}."
        ),
        year_available=False,
    )
