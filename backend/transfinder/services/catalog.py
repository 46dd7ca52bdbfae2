"""
Transmission catalog loader.

Downloads the JSON catalog once and keeps it in memory. After the refresh
interval the next request reloads it; if that reload fails the old copy keeps
being served and the next attempt is deferred by a short back-off.

The record list is replaced by reference, never mutated, so concurrent readers
always see either the old or the new list.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from transfinder.exceptions import CatalogUnavailable
from transfinder.schemas.catalog import CatalogRecord

logger = logging.getLogger(__name__)


def parse_catalog(payload: Any) -> list[CatalogRecord]:
    """Turn the raw JSON array into records, skipping rows that aren't objects."""
    if not isinstance(payload, list):
        raise CatalogUnavailable(f"Catalog payload is {type(payload).__name__}, expected a list")

    records = []
    skipped = 0
    for row in payload:
        if not isinstance(row, dict):
            skipped += 1
            continue
        records.append(CatalogRecord.model_validate(row))
    if skipped:
        logger.warning(f"Skipped {skipped} non-object catalog rows")
    return records


def known_model_names(records: list[CatalogRecord]) -> list[str]:
    """Distinct '<make> <model>' names in catalog order."""
    seen: set[str] = set()
    names: list[str] = []
    for record in records:
        name = record.display_name
        key = name.lower()
        if name and key not in seen:
            seen.add(key)
            names.append(name)
    return names


class CatalogCache:
    """In-memory catalog with time-based refresh and serve-stale on error."""

    def __init__(
        self,
        url: str,
        refresh_seconds: int = 3600,
        retry_seconds: int = 60,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.refresh_seconds = refresh_seconds
        self.retry_seconds = retry_seconds
        self.timeout = timeout
        self._clock = clock
        self._records: list[CatalogRecord] | None = None
        self._last_refresh: float | None = None
        self._next_attempt: float = 0.0

    @property
    def loaded(self) -> bool:
        return self._records is not None

    @property
    def last_refresh(self) -> float | None:
        return self._last_refresh

    def _needs_refresh(self) -> bool:
        if self._records is None or self._last_refresh is None:
            return True
        if self.refresh_seconds <= 0:
            return False
        now = self._clock()
        return now - self._last_refresh >= self.refresh_seconds and now >= self._next_attempt

    async def get(self) -> list[CatalogRecord]:
        """Return the catalog, reloading it when the refresh interval has passed."""
        if not self._needs_refresh():
            return self._records

        try:
            return await self.refresh()
        except CatalogUnavailable as e:
            if self._records is None:
                raise
            self._next_attempt = self._clock() + self.retry_seconds
            logger.warning(f"Catalog refresh failed, serving {len(self._records)} cached records: {e}")
            return self._records

    async def refresh(self) -> list[CatalogRecord]:
        """Download the catalog and swap it in. Raises CatalogUnavailable on any failure."""
        logger.info(f"Downloading catalog from {self.url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Catalog download timed out after {self.timeout}s")
            raise CatalogUnavailable("Catalog download timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Catalog download failed: {e}")
            raise CatalogUnavailable(f"Catalog download failed: {e}") from e
        except ValueError as e:
            logger.error(f"Catalog is not valid JSON: {e}")
            raise CatalogUnavailable("Catalog is not valid JSON") from e

        records = parse_catalog(payload)
        if not records:
            raise CatalogUnavailable("Catalog is empty")

        self._records = records
        self._last_refresh = self._clock()
        logger.info(f"Catalog loaded: {len(records)} records")
        return records

    def known_model_names(self) -> list[str]:
        return known_model_names(self._records or [])

    def invalidate(self) -> None:
        """Drop the cached copy so the next get() downloads again."""
        self._records = None
        self._last_refresh = None
        self._next_attempt = 0.0
