"""Domain models for providers and recurring payments."""

import enum
import math
from typing import Optional
from urllib.parse import quote, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Currency(str, enum.Enum):
    """Supported currencies. RUB is the base currency."""
    RUB = "RUB"
    USD = "USD"
    EUR = "EUR"


class PaymentPeriod(str, enum.Enum):
    """Billing periods a payment can recur on."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


FAVICON_SERVICE_URL = "https://t3.gstatic.com/faviconV2"


class DomainModel(BaseModel):
    """Base for records exchanged with stores and documents.

    Attributes are snake_case; serialized documents use camelCase aliases.
    Enum fields are stored as their plain string values.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        frozen=True,
    )


class Provider(DomainModel):
    """A hosting/billing entity payments are made to."""
    id: str
    name: str
    url: str = ""
    currency_default: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("currency_default", mode="before")
    @classmethod
    def _enum_to_value(cls, value):
        if isinstance(value, enum.Enum):
            return value.value
        return value

    @property
    def domain(self) -> Optional[str]:
        """Second-level domain of the billing URL, used for favicon lookup."""
        return extract_domain(self.url)


class PaymentEntry(DomainModel):
    """One recurring bill linked to a server and a provider.

    ``period`` and ``currency`` are kept as plain strings: stored data may
    carry values outside the known enums and must still load.
    """
    id: str
    server_id: str
    provider_id: str
    period: str = PaymentPeriod.MONTHLY.value
    next_payment: str
    amount: float = Field(ge=0)
    currency: str = Currency.RUB.value
    country: Optional[str] = Field(default=None, max_length=2)
    provider_url_override: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("period", "currency", mode="before")
    @classmethod
    def _enum_to_value(cls, value):
        if isinstance(value, enum.Enum):
            return value.value
        return value

    @field_validator("amount")
    @classmethod
    def _amount_is_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("amount must be a finite number")
        return value


def extract_domain(url: Optional[str]) -> Optional[str]:
    """Extract the second-level domain from a URL.

    Args:
        url: Absolute URL, e.g. ``https://billing.hetzner.com/invoices``.

    Returns:
        Lower-cased last two host labels (``hetzner.com``), the bare host
        for single-label hosts, or None if the URL has no host.
    """
    if not url:
        return None
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    parts = hostname.lower().split(".")
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return hostname.lower()


def favicon_url(domain: Optional[str], size: int = 32) -> Optional[str]:
    """Build the favicon service URL for a domain."""
    if not domain:
        return None
    target = quote(f"https://{domain}", safe="")
    return (
        f"{FAVICON_SERVICE_URL}?client=SOCIAL&type=FAVICON"
        f"&fallback_opts=TYPE,SIZE,URL&url={target}&size={size}"
    )
