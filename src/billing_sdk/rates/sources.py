"""Upstream exchange rate sources."""

import os
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..errors import FetchError, ParseError

logger = logging.getLogger(__name__)

CBR_DAILY_URL = "https://www.cbr-xml-daily.ru/daily_json.js"


class RateSourceBase(ABC):
    """Base class for exchange rate sources."""

    name: str = "base"

    @abstractmethod
    async def fetch_document(self) -> Dict[str, Any]:
        """Fetch the raw rate document from upstream.

        Returns:
            Decoded JSON document.

        Raises:
            FetchError: On network failure or a non-2xx status.
            ParseError: If the body is not a JSON object.
        """
        raise NotImplementedError


class CbrRateSource(RateSourceBase):
    """Central Bank of Russia daily rates (cbr-xml-daily mirror).

    The document carries ``Valute.USD.Value``, ``Valute.EUR.Value`` and a
    ``Date`` string.
    """

    name = "cbr"

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the source.

        Args:
            url: Endpoint URL. Falls back to BILLING_RATES_URL env var, then
                the public CBR mirror.
            client: Optional shared HTTP client. A short-lived client is
                created per request when omitted.
            timeout: HTTP timeout of the short-lived client. None leaves the
                request unbounded, so the caller's per-attempt deadline applies.
        """
        self.url = url or os.getenv("BILLING_RATES_URL") or CBR_DAILY_URL
        self._client = client
        self.timeout = timeout

    async def _get(self, client: httpx.AsyncClient) -> httpx.Response:
        try:
            return await client.get(self.url)
        except httpx.HTTPError as e:
            raise FetchError(f"Rate request to {self.url} failed: {type(e).__name__}: {e}") from e

    async def fetch_document(self) -> Dict[str, Any]:
        if self._client is not None:
            response = await self._get(self._client)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await self._get(client)

        if not response.is_success:
            raise FetchError(f"Rate request returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError("Rate response is not valid JSON") from e
        if not isinstance(data, dict):
            raise ParseError("Rate response is not a JSON object")
        return data


def get_rate_source(name: str = "cbr", url: Optional[str] = None) -> RateSourceBase:
    """Factory function to get a rate source by name.

    Args:
        name: Source name.
        url: Optional endpoint override.

    Returns:
        RateSourceBase implementation.

    Raises:
        ValueError: If the source is not supported.
    """
    sources = {
        "cbr": CbrRateSource,
    }

    source_class = sources.get(name.lower())
    if not source_class:
        raise ValueError(f"Unsupported rate source: {name}")

    return source_class(url=url)
