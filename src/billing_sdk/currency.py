"""Monetary normalization into monthly amounts in the base currency (RUB).

All functions are pure. Unknown currencies are treated as RUB and unknown
periods get a factor of 1, so stored data with stray values still sums.
"""

from typing import Iterable, Union

from .models import Currency, PaymentEntry, PaymentPeriod
from .rates.models import ExchangeRateSnapshot

# Per-period amount -> equivalent monthly amount. Weekly assumes a 365-day year.
PERIOD_MONTHLY_FACTORS = {
    PaymentPeriod.DAILY.value: 30.0,
    PaymentPeriod.WEEKLY.value: 365 / 12 / 7,
    PaymentPeriod.MONTHLY.value: 1.0,
    PaymentPeriod.QUARTERLY.value: 1 / 3,
    PaymentPeriod.SEMIANNUAL.value: 1 / 6,
    PaymentPeriod.ANNUAL.value: 1 / 12,
}


def _code(value: Union[str, Currency, PaymentPeriod]) -> str:
    return value.value if isinstance(value, (Currency, PaymentPeriod)) else value


def to_base(amount: float, currency: Union[str, Currency], rates: ExchangeRateSnapshot) -> float:
    """Convert an amount to RUB using the snapshot rates."""
    code = _code(currency)
    if code == Currency.USD.value:
        return amount * rates.usd
    if code == Currency.EUR.value:
        return amount * rates.eur
    return amount


def periodic_factor(period: Union[str, PaymentPeriod]) -> float:
    """Multiplier turning a per-period amount into a monthly amount."""
    return PERIOD_MONTHLY_FACTORS.get(_code(period), 1.0)


def monthly_base(
    amount: float,
    currency: Union[str, Currency],
    period: Union[str, PaymentPeriod],
    rates: ExchangeRateSnapshot,
) -> float:
    """Monthly cost in RUB. This is the value used to compare and total entries."""
    return to_base(amount, currency, rates) * periodic_factor(period)


def payment_monthly_base(payment: PaymentEntry, rates: ExchangeRateSnapshot) -> float:
    return monthly_base(payment.amount, payment.currency, payment.period, rates)


def total_monthly_base(payments: Iterable[PaymentEntry], rates: ExchangeRateSnapshot) -> float:
    """Sum of monthly RUB costs across payments."""
    return sum(payment_monthly_base(p, rates) for p in payments)


def base_to_usd(amount: float, rates: ExchangeRateSnapshot) -> float:
    """Display estimate of a RUB amount in USD."""
    return amount / rates.usd


def base_to_eur(amount: float, rates: ExchangeRateSnapshot) -> float:
    """Display estimate of a RUB amount in EUR."""
    return amount / rates.eur
