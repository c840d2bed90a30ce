"""Exchange rate loading with timeout, one retry and a static fallback."""

import asyncio
import math
import os
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..errors import FetchError, ParseError
from .models import ExchangeRateSnapshot, FALLBACK_RATES, MARKUP, SnapshotSource
from .sources import RateSourceBase, get_rate_source

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 6.0
DEFAULT_BACKOFF_SECONDS = 2.0

SnapshotListener = Callable[[ExchangeRateSnapshot], None]


def _finite_number(value: Any) -> Optional[float]:
    """Coerce an upstream value to a finite float, or None."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_rate_document(document: Dict[str, Any], markup: float = MARKUP) -> ExchangeRateSnapshot:
    """Build a live snapshot from an upstream rate document.

    Args:
        document: Decoded upstream JSON.
        markup: Multiplier applied to both raw rates.

    Returns:
        ExchangeRateSnapshot tagged as live.

    Raises:
        ParseError: If either rate is missing, non-numeric or not positive.
    """
    valute = document.get("Valute") if isinstance(document, dict) else None
    if not isinstance(valute, dict):
        raise ParseError("Rate document has no 'Valute' section")

    rates = {}
    for code in ("USD", "EUR"):
        entry = valute.get(code)
        value = _finite_number(entry.get("Value")) if isinstance(entry, dict) else None
        if value is None:
            raise ParseError(f"Rate document has no finite {code} value")
        rates[code] = value

    updated = document.get("Date")
    if not isinstance(updated, str) or not updated:
        updated = datetime.now(timezone.utc).isoformat()

    try:
        return ExchangeRateSnapshot(
            usd=rates["USD"] * markup,
            eur=rates["EUR"] * markup,
            updated=updated,
            source=SnapshotSource.LIVE,
        )
    except ValidationError as e:
        raise ParseError(f"Rate document has invalid values: {e}") from e


class RateService:
    """Publishes USD/EUR -> RUB rate snapshots.

    Each load makes one attempt bounded by ``timeout``; on failure it waits
    ``backoff`` seconds and tries exactly once more. If that fails too, or
    the document is unusable, the static fallback snapshot is published.
    Callers never see the failure, only the snapshot's ``source`` tag.
    """

    def __init__(
        self,
        source: Optional[RateSourceBase] = None,
        timeout: Optional[float] = None,
        backoff: float = DEFAULT_BACKOFF_SECONDS,
        markup: float = MARKUP,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the rate service.

        Args:
            source: Upstream rate source. Defaults to the CBR source.
            timeout: Per-attempt timeout in seconds. Falls back to the
                BILLING_RATES_TIMEOUT env var, then 6 seconds.
            backoff: Wait between the first attempt and the retry.
            markup: Multiplier applied to raw upstream rates.
            sleep: Awaitable sleep used for the backoff wait.
        """
        self._source = source or get_rate_source()
        if timeout is None:
            timeout = float(os.getenv("BILLING_RATES_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))
        self.timeout = timeout
        self.backoff = backoff
        self.markup = markup
        self._sleep = sleep
        self._snapshot: ExchangeRateSnapshot = FALLBACK_RATES
        self._in_flight = 0
        self._listeners: List[SnapshotListener] = []

    @property
    def snapshot(self) -> ExchangeRateSnapshot:
        """The current published snapshot."""
        return self._snapshot

    @property
    def loading(self) -> bool:
        """True while any load (including its retry window) is in progress."""
        return self._in_flight > 0

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback for published snapshots.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _publish(self, snapshot: ExchangeRateSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Rate snapshot listener failed")

    async def _attempt(self) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(self._source.fetch_document(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(f"Rate request timed out after {self.timeout}s") from e

    async def _fetch_with_retry(self) -> Dict[str, Any]:
        try:
            return await self._attempt()
        except Exception as e:
            logger.warning(f"Rate fetch failed ({e}), retrying in {self.backoff}s")
        await self._sleep(self.backoff)
        return await self._attempt()

    async def load_rates(self) -> ExchangeRateSnapshot:
        """Fetch current rates and publish a snapshot.

        Returns:
            The published snapshot, live or fallback.
        """
        self._in_flight += 1
        try:
            document = await self._fetch_with_retry()
            snapshot = parse_rate_document(document, self.markup)
            logger.info(
                f"Loaded rates from {self._source.name}: "
                f"USD={snapshot.usd:.4f} EUR={snapshot.eur:.4f} ({snapshot.updated})"
            )
        except Exception as e:
            logger.warning(f"Failed to fetch rates, using fallback: {e}")
            snapshot = FALLBACK_RATES
        finally:
            self._in_flight -= 1
        self._publish(snapshot)
        return snapshot
