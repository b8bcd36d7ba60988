"""Postal-code lookup against a zippopotam.us compatible API."""

from __future__ import annotations

import logging

import httpx

from votebot_chains.constants import LOOKUP_TIMEOUT, ZIP_LOOKUP_URL
from votebot_chains.errors import LookupNotFoundError, TransportError
from votebot_chains.interfaces import PlaceLookup
from votebot_chains.models.lookup import Place, PostalCode

logger = logging.getLogger(__name__)


class ZippopotamLookup(PlaceLookup):
    """Resolves US zip codes to city/state pairs.

    ``GET {base_url}/{code}`` answers 404 for unknown codes, otherwise::

        {"post code": "90210",
         "places": [{"place name": "Beverly Hills", "state abbreviation": "CA", ...}]}

    Args:
        base_url: API root, defaults to ``VOTEBOT_ZIP_LOOKUP_URL``
        timeout: request timeout in seconds
        client: optional pre-built ``httpx.AsyncClient`` (tests pass one
            with a ``MockTransport``).  A client passed in is not closed by
            :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: str = ZIP_LOOKUP_URL,
        *,
        timeout: float = LOOKUP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def find(self, code: str) -> PostalCode:
        url = f"{self._base_url}/{code}"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.error("Zip lookup for %s failed: %s", code, exc)
            raise TransportError(f"Zip lookup failed: {exc}") from exc

        if response.status_code == 404:
            raise LookupNotFoundError(f"Zip code not found: {code}")
        if response.status_code != 200:
            logger.error("Zip lookup for %s answered HTTP %d", code, response.status_code)
            raise TransportError(f"Zip lookup error ({response.status_code})")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Zip lookup returned invalid JSON: {exc}") from exc

        places = [
            Place(
                city=place.get("place name", ""),
                state=place.get("state abbreviation", ""),
            )
            for place in data.get("places") or []
        ]
        if not places:
            raise LookupNotFoundError(f"Zip code not found: {code}")
        return PostalCode(code=data.get("post code") or code, places=places)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
