"""
Reply composition for matched candidates.

Builds a deterministic prompt from the filtered catalog rows, asks Gemini for a
short formatted answer and post-processes it into the HTML fragment the chat
widget renders (<b>, <br>). Upstream failures never reach the user: rate limits
get a "high demand" message, anything else a reply built from the candidates.
"""

import logging
import re
from dataclasses import dataclass

from transfinder.config import settings
from transfinder.exceptions import UpstreamRateLimited, UpstreamServiceError
from transfinder.schemas.catalog import CatalogRecord
from transfinder.services.text_completion import GeminiClient
from transfinder.utils.candidate_filter import Tier, group_candidates
from transfinder.utils.query_parser import ParsedQuery

logger = logging.getLogger(__name__)

HIGH_DEMAND_MESSAGE = "⚠️ Alta demanda en este momento. Intenta de nuevo en unos segundos."
GENERIC_DEGRADED_MESSAGE = "No pude generar la respuesta en este momento. Intenta de nuevo más tarde."
PLACEHOLDER_LABEL = "Modelo por confirmar"

# Catalog placeholders meaning "transmission not confirmed yet"
PLACEHOLDER_CODES = (
    "POR CONFIRMAR",
    "PENDIENTE",
    "PENDING",
    "UNKNOWN",
    "TBD",
    "TBA",
    "N/A",
    "NA",
    "XXXX",
    "?",
)

_WORD_CODES = "|".join(re.escape(code) for code in PLACEHOLDER_CODES if code != "?")
# A bare "?" only counts as a code when it stands alone, never as the end of a question
_PLACEHOLDER_PATTERN = re.compile(
    rf"(?<![\w/])(?:{_WORD_CODES})(?![\w/])|(?<![^\s>(])\?(?![^\s<)])"
)
_CODE_FENCE = re.compile(r"```[a-zA-Z]*")
_MARKDOWN_BOLD = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)

PROMPT_RULES = """REGLAS:
1. Usa solo los datos del catálogo de arriba; no inventes códigos.
2. Una línea por cada código de transmisión distinto.
3. Indica la tecnología de cada transmisión: automática convencional, CVT, doble embrague (DCT) o manual.
4. Muestra siempre la tracción (FWD, RWD, AWD o 4WD) y el motor.
5. No saludes ni agregues introducciones o despedidas.
6. No uses bloques de código.

FORMATO:
- **CÓDIGO** (tecnología, velocidades, tracción, motor)"""


@dataclass
class ComposeResult:
    text: str
    degraded: bool = False


def _candidate_line(record: CatalogRecord) -> str:
    return (
        f"{record.display_name} ({record.year_range or '?'}) | {record.trans_type or '?'} | "
        f"{record.engine_size or '?'} | {record.trans_model or '?'}"
    )


def _render_candidates(candidates: list[CatalogRecord], group_key: str | None) -> str:
    if not group_key:
        return "\n".join(_candidate_line(c) for c in candidates)
    blocks = []
    for value, records in group_candidates(candidates, group_key).items():
        blocks.append(f"[{value}]")
        blocks.extend(_candidate_line(r) for r in records)
    return "\n".join(blocks)


def build_prompt(
    candidates: list[CatalogRecord],
    parsed: ParsedQuery,
    tier: Tier,
    group_key: str | None = None,
) -> str:
    """Deterministic instruction for the candidates; same inputs, same prompt."""
    sections = [
        "Eres un experto en transmisiones automotrices.",
        "DATOS DEL CATÁLOGO (Vehículo (Años) | Tipo | Motor | Código):",
        _render_candidates(candidates, group_key),
        f'CONSULTA DEL USUARIO: "{parsed.raw_text}"',
    ]
    if parsed.explicit_speed_count is not None:
        sections.append(f"Velocidades solicitadas: {parsed.explicit_speed_count}.")
    if parsed.explicit_year is not None:
        if tier is Tier.RELAXED:
            sections.append(
                f"IMPORTANTE: el año {parsed.explicit_year} no está registrado para este vehículo. "
                "Dilo en la primera línea y muestra los años disponibles para cada código."
            )
        else:
            sections.append(f"Año solicitado: {parsed.explicit_year}.")
    sections.append(PROMPT_RULES)
    return "\n\n".join(sections)


def replace_placeholders(text: str) -> str:
    return _PLACEHOLDER_PATTERN.sub(PLACEHOLDER_LABEL, text)


def postprocess_reply(text: str) -> str:
    """
    Convert model output into the widget's HTML fragment.

    Order matters: fences out, **bold** to <b>, newlines to <br>, placeholders last.
    """
    text = _CODE_FENCE.sub("", text).strip()
    text = _MARKDOWN_BOLD.sub(r"<b>\1</b>", text)
    text = text.replace("**", "")
    text = text.replace("\r\n", "\n").replace("\n", "<br>")
    return replace_placeholders(text)


def fallback_reply(candidates: list[CatalogRecord], parsed: ParsedQuery, tier: Tier) -> str:
    """Reply built straight from the catalog when Gemini can't answer."""
    if not candidates:
        return GENERIC_DEGRADED_MESSAGE
    first = candidates[0]
    prefix = ""
    if tier is Tier.RELAXED and parsed.explicit_year is not None:
        prefix = f"No tengo registro para el año {parsed.explicit_year}. "
    code = replace_placeholders(first.trans_model or "?")
    return (
        f"{prefix}Encontré posibles coincidencias como: <b>{code}</b> "
        f"para {first.display_name} ({first.year_range or '?'}). Por favor especifica más el año o motor."
    )


async def compose(
    client: GeminiClient,
    candidates: list[CatalogRecord],
    parsed: ParsedQuery,
    tier: Tier,
    group_key: str | None = None,
) -> ComposeResult:
    """Ask Gemini to describe the candidates; degrade to a safe message on any upstream failure."""
    prompt = build_prompt(candidates, parsed, tier, group_key)
    try:
        text = await client.generate(
            prompt,
            temperature=settings.llm_temperature,
            max_output_tokens=settings.llm_max_output_tokens,
        )
    except UpstreamRateLimited:
        logger.warning("Composer hit Gemini rate limit")
        return ComposeResult(text=HIGH_DEMAND_MESSAGE, degraded=True)
    except UpstreamServiceError as e:
        logger.error(f"Composer falling back to catalog reply: {e}")
        return ComposeResult(text=fallback_reply(candidates, parsed, tier), degraded=True)

    reply = postprocess_reply(text)
    if not reply:
        return ComposeResult(text=fallback_reply(candidates, parsed, tier), degraded=True)
    return ComposeResult(text=reply)
