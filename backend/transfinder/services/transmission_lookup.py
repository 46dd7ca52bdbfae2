"""
Request-level coordinator: raw query in, display reply out.

    parse -> catalog -> (reply cache) -> filter -> compose | suggest

InvalidQuery and CatalogUnavailable propagate to the route; every Gemini
failure is absorbed by the composer or the suggestion fallback.
"""

import logging
from dataclasses import dataclass, field

from transfinder.config import settings
from transfinder.schemas.catalog import CatalogRecord
from transfinder.services.catalog import CatalogCache
from transfinder.services.composer import compose
from transfinder.services.reply_cache import ReplyCache, cache_key
from transfinder.services.suggestion import SpellCorrector, suggest
from transfinder.services.text_completion import GeminiClient
from transfinder.utils.candidate_filter import Tier, filter_candidates
from transfinder.utils.query_parser import parse_query

logger = logging.getLogger(__name__)


@dataclass
class LookupResult:
    reply: str
    tier: str
    suggestion: str | None = None
    candidate_count: int = 0
    cached: bool = False
    candidates: list[CatalogRecord] = field(default_factory=list, repr=False)


class TransmissionLookup:
    def __init__(
        self,
        catalog: CatalogCache,
        client: GeminiClient,
        corrector: SpellCorrector,
        reply_cache: ReplyCache | None = None,
        max_candidates: int | None = None,
        group_key: str | None = None,
    ):
        self.catalog = catalog
        self.client = client
        self.corrector = corrector
        self.reply_cache = reply_cache
        self.max_candidates = max_candidates or settings.max_candidates
        self.group_key = group_key

    async def lookup(self, raw_query: str | None) -> LookupResult:
        parsed = parse_query(raw_query, min_length=settings.min_token_length)
        records = await self.catalog.get()

        key = cache_key(parsed)
        if self.reply_cache:
            cached = await self.reply_cache.get(key)
            if cached:
                logger.info(f"Serving cached reply for {key}")
                return LookupResult(**cached, cached=True)

        result = filter_candidates(records, parsed, max_candidates=self.max_candidates)
        logger.info(
            f"Query '{parsed.raw_text}': year={parsed.explicit_year}, speeds={parsed.explicit_speed_count}, "
            f"tokens={list(parsed.keyword_tokens)}, tier={result.tier.value}, "
            f"matches={result.total_matches}, sent={len(result.candidates)}"
        )

        if result.tier is Tier.NONE:
            outcome = await suggest(self.corrector, parsed, records)
            lookup = LookupResult(reply=outcome.message, tier=Tier.NONE.value, suggestion=outcome.suggestion)
            # No-match answers depend on the catalog, which refreshes; keep them briefly
            if not outcome.degraded:
                await self._store(key, lookup, degraded=True)
            return lookup

        composed = await compose(self.client, result.candidates, parsed, result.tier, self.group_key)
        lookup = LookupResult(
            reply=composed.text,
            tier=result.tier.value,
            candidate_count=len(result.candidates),
            candidates=result.candidates,
        )
        if not composed.degraded:
            await self._store(key, lookup)
        return lookup

    async def _store(self, key: str, lookup: LookupResult, degraded: bool = False) -> None:
        if not self.reply_cache:
            return
        payload = {
            "reply": lookup.reply,
            "tier": lookup.tier,
            "suggestion": lookup.suggestion,
            "candidate_count": lookup.candidate_count,
        }
        await self.reply_cache.set(key, payload, degraded=degraded)
