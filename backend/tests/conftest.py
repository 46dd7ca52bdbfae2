"""
Shared fixtures for Transmission Finder backend tests.
"""
import pytest
import sys
import os

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Force env vars so Settings doesn't depend on a local .env
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("REPLY_CACHE_ENABLED", "false")

from transfinder.exceptions import UpstreamServiceError  # noqa: E402
from transfinder.schemas.catalog import CatalogRecord  # noqa: E402


SAMPLE_ROWS = [
    {"Make": "Honda", "Model": "Accord", "Years": "98-02", "Trans Type": "4 SP FWD",
     "Engine Type / Size": "L4 2.3L", "Trans Model": "BAXA"},
    {"Make": "Honda", "Model": "Accord", "Years": "98-02", "Trans Type": "4 SP FWD",
     "Engine Type / Size": "V6 3.0L", "Trans Model": "B7XA"},
    {"Make": "Honda", "Model": "Accord", "Years": "98-02", "Trans Type": "4 SP FWD",
     "Engine Type / Size": "L4 2.3L", "Trans Model": "MCTA"},
    {"Make": "Honda", "Model": "Accord", "Years": "03-07", "Trans Type": "5 SP FWD",
     "Engine Type / Size": "L4 2.4L", "Trans Model": "MAXA"},
    {"Make": "Jeep", "Model": "Liberty", "Years": "2002-2007", "Trans Type": "4 SP RWD/4WD",
     "Engine Type / Size": "V6 3.7L", "Trans Model": "42RLE"},
    {"Make": "Volkswagen", "Model": "Jetta", "Years": "99-UP", "Trans Type": "4 SP FWD",
     "Engine Type / Size": "L4 2.0L", "Trans Model": "01M"},
    {"Make": "Volkswagen", "Model": "Golf", "Years": "14-16", "Trans Type": "6 SP FWD",
     "Engine Type / Size": "L4 1.8L Turbo", "Trans Model": "09G"},
    {"Make": "Volkswagen", "Model": "Golf", "Years": "14-16", "Trans Type": "6SPEED DSG FWD",
     "Engine Type / Size": "L4 2.0L TDI", "Trans Model": "DQ250"},
    {"Make": "Mazda", "Model": "CX-9", "Years": "2007", "Trans Type": "6 SP AWD",
     "Engine Type / Size": "V6 3.5L", "Trans Model": "TBD"},
]


@pytest.fixture
def sample_rows():
    """Raw catalog rows as served by the JSON source."""
    return [dict(row) for row in SAMPLE_ROWS]


@pytest.fixture
def sample_catalog():
    """Parsed catalog records in source order."""
    return [CatalogRecord.model_validate(row) for row in SAMPLE_ROWS]


class FakeGeminiClient:
    """Stand-in for GeminiClient: returns canned replies or raises, and records prompts."""

    model = "fake-gemini"

    def __init__(self, replies=None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt, temperature=0.1, max_output_tokens=512, response_mime_type=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        if not self.replies:
            raise UpstreamServiceError("no canned reply left")
        return self.replies.pop(0)


@pytest.fixture
def fake_client_factory():
    return FakeGeminiClient
