"""Exchange rate loading for currency normalization."""

from .models import (
    ExchangeRateSnapshot,
    SnapshotSource,
    FALLBACK_RATES,
    MARKUP,
)
from .sources import (
    RateSourceBase,
    CbrRateSource,
    get_rate_source,
)
from .service import RateService, parse_rate_document

__all__ = [
    "ExchangeRateSnapshot",
    "SnapshotSource",
    "FALLBACK_RATES",
    "MARKUP",
    "RateSourceBase",
    "CbrRateSource",
    "get_rate_source",
    "RateService",
    "parse_rate_document",
]
