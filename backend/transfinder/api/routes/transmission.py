"""
Transmission lookup route - the endpoint the chat widget posts to.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from transfinder.exceptions import CatalogUnavailable, InvalidQuery
from transfinder.schemas.transmission import TransmissionQuery, TransmissionReply
from transfinder.services.transmission_lookup import TransmissionLookup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["transmission"])

INVALID_QUERY_MESSAGE = "Escribe un vehículo."
CATALOG_UNAVAILABLE_MESSAGE = "Error: Base de datos no disponible temporalmente. Reintenta."


def get_lookup(request: Request) -> TransmissionLookup:
    """Lookup service built once in the app lifespan."""
    return request.app.state.lookup


@router.options("/get-transmission")
async def transmission_preflight():
    """CORS preflight without an Origin header still gets an empty 200."""
    return Response(status_code=200)


@router.post("/get-transmission", response_model=TransmissionReply, response_model_exclude_none=True)
async def get_transmission(
    payload: TransmissionQuery | None = None,
    lookup: TransmissionLookup = Depends(get_lookup),
):
    """
    Answer a free-text vehicle query ("Honda Accord 2000") with its transmissions.

    When nothing matches, the reply is a "did you mean" message and `suggestion`
    carries the corrected query for the widget's retry button.
    """
    query = payload.query if payload else None
    try:
        result = await lookup.lookup(query)
    except InvalidQuery:
        return JSONResponse(status_code=400, content={"reply": INVALID_QUERY_MESSAGE})
    except CatalogUnavailable as e:
        logger.error(f"Catalog unavailable: {e}")
        return JSONResponse(status_code=503, content={"reply": CATALOG_UNAVAILABLE_MESSAGE})

    return TransmissionReply(reply=result.reply, suggestion=result.suggestion)
