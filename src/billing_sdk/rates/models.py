"""Models for exchange rate snapshots."""

import enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

# Published rates sit above the raw market rate to cover the exchange spread.
MARKUP = 1.05

FALLBACK_USD = 95.0
FALLBACK_EUR = 105.0


class SnapshotSource(str, enum.Enum):
    """Where a rate snapshot came from."""
    LIVE = "live"
    FALLBACK = "fallback"


class ExchangeRateSnapshot(BaseModel):
    """Immutable USD/EUR -> RUB conversion rates.

    RUB is always 1:1 and is never stored.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    usd: float = Field(..., alias="USD", gt=0, description="RUB per 1 USD")
    eur: float = Field(..., alias="EUR", gt=0, description="RUB per 1 EUR")
    updated: str = Field(..., description="Upstream date or the 'fallback' sentinel")
    source: SnapshotSource = Field(default=SnapshotSource.LIVE)

    @property
    def is_fallback(self) -> bool:
        return self.source == SnapshotSource.FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        """Return the snapshot in its wire form."""
        return {
            "USD": self.usd,
            "EUR": self.eur,
            "updated": self.updated,
            "source": self.source.value,
        }


FALLBACK_RATES = ExchangeRateSnapshot(
    usd=FALLBACK_USD * MARKUP,
    eur=FALLBACK_EUR * MARKUP,
    updated="fallback",
    source=SnapshotSource.FALLBACK,
)
