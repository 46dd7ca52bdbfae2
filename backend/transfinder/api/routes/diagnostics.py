"""
Diagnostics routes for the Gemini integration.

- /api/list-models: which models this API key can call
- /api/test-speed: round-trip time of a trivial prompt
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from transfinder.exceptions import UpstreamServiceError
from transfinder.schemas.transmission import LatencyProbeResponse, ModelListResponse
from transfinder.services.text_completion import GeminiClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["diagnostics"])


def get_client(request: Request) -> GeminiClient:
    return request.app.state.gemini_client


@router.get("/list-models", response_model=ModelListResponse)
async def list_models(client: GeminiClient = Depends(get_client)):
    """List models available to the configured key that support generateContent."""
    try:
        models = await client.list_models()
    except UpstreamServiceError as e:
        return JSONResponse(status_code=502, content={"error": str(e)})
    return ModelListResponse(models=models)


@router.get("/test-speed", response_model=LatencyProbeResponse)
async def test_speed(client: GeminiClient = Depends(get_client)):
    """Time one trivial Gemini call."""
    probe = await client.probe_latency()
    logger.info(f"Latency probe ({probe.model}): success={probe.success} in {probe.seconds}s")
    body = LatencyProbeResponse(
        test="EXITOSO" if probe.success else "FALLIDO",
        model=probe.model,
        seconds=probe.seconds,
        reply=probe.reply,
        error=probe.error,
    )
    if not probe.success:
        return JSONResponse(status_code=502, content=body.model_dump())
    return body
