"""
Google Gemini text-completion client.

Wraps the generateContent REST endpoint and maps its failure modes onto the
service's error taxonomy:
- HTTP 429                       -> UpstreamRateLimited
- other non-200, timeout, socket -> UpstreamServiceError
- 200 without candidate text     -> MalformedUpstreamReply

Also carries the two diagnostics the widget backend exposes: listing the models
the key can use and a one-prompt latency probe.
"""

import logging
import time
from dataclasses import dataclass

import httpx

from transfinder.config import require_gemini_api_key, settings
from transfinder.exceptions import MalformedUpstreamReply, UpstreamRateLimited, UpstreamServiceError

logger = logging.getLogger(__name__)

# Automotive text trips the default filters surprisingly often; only block high-probability harm.
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
]

PROBE_PROMPT = "Solo responde con la palabra: FUNCIONA."


@dataclass
class LatencyProbe:
    model: str
    success: bool
    seconds: float
    reply: str | None = None
    error: str | None = None


class GeminiClient:
    """Thin async client for Gemini generateContent."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        api_base: str | None = None,
    ):
        self.api_key = api_key or require_gemini_api_key()
        self.model = model or settings.gemini_model
        self.timeout = timeout if timeout is not None else settings.llm_timeout
        self.api_base = (api_base or settings.gemini_api_base).rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    @property
    def generate_url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.1,
        max_output_tokens: int = 512,
        response_mime_type: str | None = None,
    ) -> str:
        """Send one prompt and return the first candidate's text."""
        generation_config: dict = {"temperature": temperature, "maxOutputTokens": max_output_tokens}
        if response_mime_type:
            generation_config["responseMimeType"] = response_mime_type

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.generate_url,
                    headers=self._headers,
                    json={
                        "contents": [{"parts": [{"text": prompt}]}],
                        "safetySettings": SAFETY_SETTINGS,
                        "generationConfig": generation_config,
                    },
                )
        except httpx.TimeoutException as e:
            logger.error(f"Gemini ({self.model}) timed out after {self.timeout}s")
            raise UpstreamServiceError("Gemini request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini ({self.model}) request failed: {e}")
            raise UpstreamServiceError(f"Gemini request failed: {type(e).__name__}") from e

        if response.status_code == 429:
            logger.warning(f"Gemini ({self.model}) rate limited: {response.text[:500]}")
            raise UpstreamRateLimited("Gemini rate limit reached", status_code=429)
        if response.status_code != 200:
            logger.error(f"Gemini API error {response.status_code}: {response.text[:500]}")
            raise UpstreamServiceError(f"Gemini API error: HTTP {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedUpstreamReply("Gemini returned invalid JSON") from e

        candidates = data.get("candidates") or []
        if not candidates:
            logger.error(f"Empty Gemini response: {str(data)[:500]}")
            raise MalformedUpstreamReply("Gemini returned no candidates")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            finish_reason = candidates[0].get("finishReason", "?")
            logger.error(f"Gemini candidate has no text (finishReason={finish_reason})")
            raise MalformedUpstreamReply("Gemini candidate has no text")

        usage = data.get("usageMetadata", {})
        logger.info(
            f"Gemini ({self.model}): {usage.get('promptTokenCount', '?')} prompt + "
            f"{usage.get('candidatesTokenCount', '?')} completion tokens"
        )
        return text

    async def list_models(self) -> list[str]:
        """Names of models available to this key that support generateContent."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.api_base}/models", headers=self._headers)
        except httpx.HTTPError as e:
            logger.error(f"Gemini model listing failed: {e}")
            raise UpstreamServiceError(f"Gemini model listing failed: {type(e).__name__}") from e

        if response.status_code == 429:
            raise UpstreamRateLimited("Gemini rate limit reached", status_code=429)
        if response.status_code != 200:
            logger.error(f"Gemini model listing error {response.status_code}: {response.text[:500]}")
            raise UpstreamServiceError(f"Gemini API error: HTTP {response.status_code}", status_code=response.status_code)

        models = response.json().get("models", [])
        return [
            m["name"]
            for m in models
            if "name" in m and "generateContent" in m.get("supportedGenerationMethods", [])
        ]

    async def probe_latency(self) -> LatencyProbe:
        """Time one trivial prompt. Never raises; failures are reported in the result."""
        start = time.monotonic()
        try:
            reply = await self.generate(PROBE_PROMPT, temperature=0.0, max_output_tokens=16)
        except UpstreamServiceError as e:
            return LatencyProbe(
                model=self.model,
                success=False,
                seconds=round(time.monotonic() - start, 3),
                error=str(e),
            )
        return LatencyProbe(
            model=self.model,
            success=True,
            seconds=round(time.monotonic() - start, 3),
            reply=reply.strip(),
        )
