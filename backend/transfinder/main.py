"""
Transmission Finder FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from transfinder.api.routes import diagnostics, transmission
from transfinder.config import require_gemini_api_key, settings
from transfinder.services.catalog import CatalogCache
from transfinder.services.reply_cache import ReplyCache
from transfinder.services.suggestion import GeminiSpellCorrector, LocalSpellCorrector
from transfinder.services.text_completion import GeminiClient
from transfinder.services.transmission_lookup import TransmissionLookup

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def build_lookup() -> TransmissionLookup:
    """Wire the lookup service from settings. Fails fast without a Gemini key."""
    api_key = require_gemini_api_key()
    client = GeminiClient(api_key=api_key)
    catalog = CatalogCache(
        url=settings.catalog_url,
        refresh_seconds=settings.catalog_refresh_seconds,
        retry_seconds=settings.catalog_retry_seconds,
        timeout=settings.catalog_timeout,
    )
    if settings.spell_corrector == "local":
        corrector = LocalSpellCorrector(cutoff=settings.local_suggestion_cutoff)
    else:
        corrector = GeminiSpellCorrector(client, max_names=settings.suggestion_max_names)
    reply_cache = None
    if settings.reply_cache_enabled:
        reply_cache = ReplyCache(
            ttl_seconds=settings.reply_cache_ttl_seconds,
            degraded_ttl_seconds=settings.reply_cache_ttl_degraded_seconds,
        )
    return TransmissionLookup(
        catalog=catalog,
        client=client,
        corrector=corrector,
        reply_cache=reply_cache,
        max_candidates=settings.max_candidates,
        group_key=settings.candidate_group_key,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    # Startup
    logger.info("Starting Transmission Finder API...")
    lookup = build_lookup()
    app.state.lookup = lookup
    app.state.gemini_client = lookup.client

    try:
        await lookup.catalog.get()
    except Exception as e:
        logger.warning(f"Catalog preload failed (will retry on first request): {e}")

    yield

    # Shutdown
    logger.info("Shutting down Transmission Finder API...")
    if lookup.reply_cache:
        await lookup.reply_cache.close()
        logger.info("Redis connection closed")


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware for the embedded chat widget
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include routers
app.include_router(transmission.router)
app.include_router(diagnostics.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Transmission Finder API",
        "version": settings.api_version,
        "endpoints": {
            "lookup": "POST /api/get-transmission",
            "models": "/api/list-models",
            "speed_test": "/api/test-speed",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
