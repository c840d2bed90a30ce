"""Billing service layer that ties the stores, rates and codec together."""

import calendar
import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from .connectors.base import CollectionConnectorBase
from .currency import payment_monthly_base, total_monthly_base
from .models import DomainModel, PaymentEntry, PaymentPeriod, Provider
from .errors import SubscriptionError
from .rates import ExchangeRateSnapshot, RateService
from .reconciliation import RecordReconciler, RecordStore
from .transfer import ImportExportCodec, ImportResult
from .urgency import SOON_THRESHOLD_DAYS, Urgency, classify, days_until, parse_due_date

logger = logging.getLogger(__name__)

SORT_KEYS = ("date", "amount", "days")

# Months to advance per period when a payment is marked paid.
PERIOD_MONTHS = {
    PaymentPeriod.MONTHLY.value: 1,
    PaymentPeriod.QUARTERLY.value: 3,
    PaymentPeriod.SEMIANNUAL.value: 6,
    PaymentPeriod.ANNUAL.value: 12,
}
PERIOD_DAYS = {
    PaymentPeriod.DAILY.value: 1,
    PaymentPeriod.WEEKLY.value: 7,
}


class PaymentsSummary(BaseModel):
    """Totals shown above the payments table."""
    total_monthly_base: float = Field(..., description="Sum of monthly costs in RUB")
    total_count: int = Field(..., description="Number of payments")
    soon_count: int = Field(..., description="Payments due within the warning window")
    rates_source: str = Field(..., description="'live' or 'fallback'")
    rates_loading: bool = Field(default=False)


class PaymentRow(DomainModel):
    """A payment decorated for display."""
    payment: PaymentEntry
    provider_name: str = ""
    payment_url: str = ""
    days_until: Optional[int] = Field(None, description="None when the due date is unparseable")
    urgency: Urgency
    monthly_base: float


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def advance_due_date(next_payment: str, period: str) -> Optional[str]:
    """Next due date one period after ``next_payment``.

    Returns:
        ``YYYY-MM-DD`` string, or None when the date cannot be parsed or
        the period is unknown.
    """
    current = parse_due_date(next_payment)
    if current is None:
        return None
    if period in PERIOD_DAYS:
        return (current + timedelta(days=PERIOD_DAYS[period])).isoformat()
    if period in PERIOD_MONTHS:
        return _add_months(current, PERIOD_MONTHS[period]).isoformat()
    return None


class BillingService:
    """Service class for the payments dashboard."""

    def __init__(
        self,
        provider_store: RecordStore[Provider],
        payment_store: RecordStore[PaymentEntry],
        rate_service: Optional[RateService] = None,
    ):
        """Initialize the service.

        Args:
            provider_store: Store holding providers.
            payment_store: Store holding payment entries.
            rate_service: Exchange rate source. A default CBR-backed service
                is created when omitted.
        """
        self.providers = provider_store
        self.payments = payment_store
        self.rates = rate_service or RateService()
        self.codec = ImportExportCodec(provider_store, payment_store)

    @classmethod
    def from_connectors(
        cls,
        provider_connector: CollectionConnectorBase[Provider],
        payment_connector: CollectionConnectorBase[PaymentEntry],
        rate_service: Optional[RateService] = None,
    ) -> "BillingService":
        return cls(
            RecordReconciler(provider_connector),
            RecordReconciler(payment_connector),
            rate_service,
        )

    async def start(self, load_rates: bool = True) -> None:
        """Load both collections, subscribe to changes and load rates.

        Args:
            load_rates: Fetch live rates. When False the current snapshot
                (initially the fallback) is kept.

        Raises:
            FetchError: If a collection cannot be loaded.
        """
        await self.providers.refresh()
        await self.payments.refresh()
        for store in (self.providers, self.payments):
            try:
                await store.subscribe_realtime()
            except SubscriptionError as e:
                logger.warning(f"Continuing without realtime updates: {e}")
        if load_rates:
            await self.rates.load_rates()
        logger.info(
            f"Billing service started: {len(self.providers.records())} providers, "
            f"{len(self.payments.records())} payments, rates {self.rates.snapshot.source.value}"
        )

    async def stop(self) -> None:
        await self.providers.unsubscribe()
        await self.payments.unsubscribe()
        logger.info("Billing service stopped")

    @property
    def snapshot(self) -> ExchangeRateSnapshot:
        return self.rates.snapshot

    # Providers

    def list_providers(self) -> List[Provider]:
        return sorted(self.providers.records(), key=lambda p: p.name.lower())

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self.providers.get(provider_id)

    async def create_provider(self, fields: Mapping[str, Any]) -> Provider:
        provider = await self.providers.create(fields)
        logger.info(f"Created provider {provider.id} ({provider.name})")
        return provider

    async def update_provider(self, provider_id: str, fields: Mapping[str, Any]) -> Provider:
        return await self.providers.update(provider_id, fields)

    async def delete_provider(self, provider_id: str) -> None:
        """Delete a provider and drop its payments from the local cache.

        The backend cascades the delete; the local removal keeps the cache
        consistent when no realtime delete events arrive.
        """
        await self.providers.delete(provider_id)
        removed = self.payments.remove_where(lambda p: p.provider_id == provider_id)
        logger.info(f"Deleted provider {provider_id} and {len(removed)} dependent payments")

    # Payments

    def list_payments(self) -> List[PaymentEntry]:
        return self.payments.records()

    def get_payment(self, payment_id: str) -> Optional[PaymentEntry]:
        return self.payments.get(payment_id)

    def payments_for_server(self, server_id: str) -> List[PaymentEntry]:
        """All payments attached to a server.

        More than one may exist: the one-payment-per-server rule is not
        enforced here or on import.
        """
        return [p for p in self.payments.records() if p.server_id == server_id]

    async def create_payment(self, fields: Mapping[str, Any]) -> PaymentEntry:
        payment = await self.payments.create(fields)
        logger.info(f"Created payment {payment.id} for server {payment.server_id}")
        return payment

    async def update_payment(self, payment_id: str, fields: Mapping[str, Any]) -> PaymentEntry:
        return await self.payments.update(payment_id, fields)

    async def delete_payment(self, payment_id: str) -> None:
        await self.payments.delete(payment_id)

    async def mark_paid(self, payment_id: str) -> Optional[PaymentEntry]:
        """Advance a payment's due date by one period.

        Returns:
            The updated payment, the unchanged payment when its period or
            date is not understood, or None for an unknown id.
        """
        payment = self.payments.get(payment_id)
        if payment is None:
            return None
        next_payment = advance_due_date(payment.next_payment, payment.period)
        if next_payment is None:
            logger.warning(
                f"Cannot advance payment {payment_id}: period {payment.period!r}, "
                f"date {payment.next_payment!r}"
            )
            return payment
        return await self.payments.update(payment_id, {"next_payment": next_payment})

    # Views

    def _provider_names(self) -> Dict[str, str]:
        return {p.id: p.name for p in self.providers.records()}

    def sorted_payments(
        self,
        sort_by: str = "date",
        descending: bool = False,
        provider_filter: Optional[str] = None,
        server_filter: Optional[str] = None,
        server_names: Optional[Mapping[str, str]] = None,
        today: Optional[date] = None,
    ) -> List[PaymentEntry]:
        """Payments filtered and ordered for the dashboard table.

        Args:
            sort_by: ``date`` (due date), ``amount`` (monthly RUB cost) or
                ``days`` (days until due).
            descending: Reverse the order.
            provider_filter: Case-insensitive substring of the provider name,
                or of the provider id when the provider is not cached.
            server_filter: Case-insensitive substring of the server name.
            server_names: Server id -> display name. Ids are used when absent.
            today: Reference date for ``days`` sorting.

        Raises:
            ValueError: For an unknown ``sort_by``.
        """
        if sort_by not in SORT_KEYS:
            raise ValueError(f"Unknown sort key '{sort_by}', expected one of {', '.join(SORT_KEYS)}")

        provider_names = self._provider_names()
        server_names = server_names or {}
        payments = self.payments.records()

        if provider_filter:
            needle = provider_filter.lower()
            payments = [
                p for p in payments if needle in provider_names.get(p.provider_id, p.provider_id).lower()
            ]
        if server_filter:
            needle = server_filter.lower()
            payments = [
                p for p in payments
                if needle in server_names.get(p.server_id, p.server_id).lower()
            ]

        rates = self.rates.snapshot
        if sort_by == "amount":
            key = lambda p: payment_monthly_base(p, rates)
        elif sort_by == "days":
            key = lambda p: days_until(p.next_payment, today)
        else:
            # Unparseable dates sort after every real date.
            key = lambda p: (parse_due_date(p.next_payment) or date.max)

        return sorted(payments, key=key, reverse=descending)

    def payment_rows(self, today: Optional[date] = None, **options: Any) -> List[PaymentRow]:
        """Sorted payments decorated with provider name, link and urgency."""
        providers = {p.id: p for p in self.providers.records()}
        rates = self.rates.snapshot
        rows = []
        for payment in self.sorted_payments(today=today, **options):
            provider = providers.get(payment.provider_id)
            days = days_until(payment.next_payment, today)
            rows.append(PaymentRow(
                payment=payment,
                provider_name=provider.name if provider else "",
                payment_url=payment.provider_url_override or (provider.url if provider else ""),
                days_until=None if math.isinf(days) else days,
                urgency=classify(days),
                monthly_base=payment_monthly_base(payment, rates),
            ))
        return rows

    def summary(self, today: Optional[date] = None) -> PaymentsSummary:
        payments = self.payments.records()
        soon = [p for p in payments if days_until(p.next_payment, today) <= SOON_THRESHOLD_DAYS]
        snapshot = self.rates.snapshot
        return PaymentsSummary(
            total_monthly_base=total_monthly_base(payments, snapshot),
            total_count=len(payments),
            soon_count=len(soon),
            rates_source=snapshot.source.value,
            rates_loading=self.rates.loading,
        )

    # Import / export

    def export_json(self) -> str:
        return self.codec.export_json()

    async def import_json(self, text: str) -> ImportResult:
        return await self.codec.import_json(text)
