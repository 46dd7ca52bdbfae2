"""
Pydantic schemas for the transmission lookup and diagnostics endpoints.
"""

from pydantic import BaseModel, Field


class TransmissionQuery(BaseModel):
    """Request body sent by the chat widget."""

    query: str | None = None


class TransmissionReply(BaseModel):
    """Reply rendered by the chat widget; suggestion drives the "retry with" button."""

    reply: str
    suggestion: str | None = None


class ModelListResponse(BaseModel):
    message: str = "Modelos disponibles para tu API Key"
    models: list[str] = Field(default_factory=list)


class LatencyProbeResponse(BaseModel):
    test: str  # "EXITOSO" / "FALLIDO"
    model: str
    seconds: float
    reply: str | None = None
    error: str | None = None
