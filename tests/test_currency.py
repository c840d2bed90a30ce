"""Tests for monetary normalization."""

import pytest

from billing_sdk.currency import (
    base_to_eur,
    base_to_usd,
    monthly_base,
    payment_monthly_base,
    periodic_factor,
    to_base,
    total_monthly_base,
)
from billing_sdk.models import Currency, PaymentEntry, PaymentPeriod
from billing_sdk.rates import FALLBACK_RATES


class TestToBase:
    """Test currency conversion into RUB."""

    def test_rub_passes_through(self, live_rates):
        assert to_base(1234.5, "RUB", live_rates) == 1234.5

    def test_usd_and_eur_use_snapshot_rates(self, live_rates):
        assert to_base(10, "USD", live_rates) == 1000.0
        assert to_base(10, "EUR", live_rates) == 1100.0

    def test_enum_members_accepted(self, live_rates):
        assert to_base(2, Currency.USD, live_rates) == 200.0

    def test_unknown_currency_is_identity(self, live_rates):
        assert to_base(50, "GBP", live_rates) == 50
        assert to_base(50, "", live_rates) == 50


class TestPeriodicFactor:
    """Test per-period to monthly factors."""

    @pytest.mark.parametrize("period,expected", [
        ("daily", 30.0),
        ("weekly", 365 / 12 / 7),
        ("monthly", 1.0),
        ("quarterly", 1 / 3),
        ("semiannual", 1 / 6),
        ("annual", 1 / 12),
    ])
    def test_factor_table(self, period, expected):
        assert periodic_factor(period) == pytest.approx(expected)

    def test_enum_member_accepted(self):
        assert periodic_factor(PaymentPeriod.QUARTERLY) == pytest.approx(1 / 3)

    def test_unknown_period_defaults_to_one(self):
        assert periodic_factor("fortnightly") == 1.0
        assert periodic_factor("") == 1.0


class TestMonthlyBase:
    """Test the combined monthly RUB amount."""

    def test_rub_monthly(self, live_rates):
        assert monthly_base(1000, "RUB", "monthly", live_rates) == 1000

    def test_usd_annual(self, live_rates):
        assert monthly_base(120, "USD", "annual", live_rates) == pytest.approx(1000.0)

    def test_eur_weekly(self, live_rates):
        expected = 7 * 110.0 * 365 / 12 / 7
        assert monthly_base(7, "EUR", "weekly", live_rates) == pytest.approx(expected)

    def test_linear_in_amount(self, live_rates):
        for period in PaymentPeriod:
            single = monthly_base(1, "USD", period, live_rates)
            assert monthly_base(37.5, "USD", period, live_rates) == pytest.approx(37.5 * single)

    def test_total_over_payments(self, live_rates):
        payments = [
            PaymentEntry(id="a", server_id="s1", provider_id="p", next_payment="2024-06-01",
                         amount=1000, currency="RUB", period="monthly"),
            PaymentEntry(id="b", server_id="s2", provider_id="p", next_payment="2024-06-01",
                         amount=12, currency="USD", period="annual"),
        ]
        assert payment_monthly_base(payments[1], live_rates) == pytest.approx(100.0)
        assert total_monthly_base(payments, live_rates) == pytest.approx(1100.0)

    def test_total_of_nothing_is_zero(self, live_rates):
        assert total_monthly_base([], live_rates) == 0


class TestInverseHelpers:
    """Test RUB to USD/EUR display estimates."""

    def test_base_to_usd_and_eur(self, live_rates):
        assert base_to_usd(1000, live_rates) == pytest.approx(10.0)
        assert base_to_eur(1100, live_rates) == pytest.approx(10.0)

    def test_inverse_of_to_base(self):
        assert base_to_usd(to_base(42, "USD", FALLBACK_RATES), FALLBACK_RATES) == pytest.approx(42)
