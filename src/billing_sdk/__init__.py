# billing_sdk package
__version__ = "0.1.0"

from .errors import (
    BillingSDKError,
    FetchError,
    ParseError,
    ValidationGap,
    SubscriptionError,
)
from .models import Currency, PaymentPeriod, Provider, PaymentEntry
from .currency import (
    to_base,
    periodic_factor,
    monthly_base,
    total_monthly_base,
    base_to_usd,
    base_to_eur,
)
from .urgency import Urgency, classify, days_until
from .rates import ExchangeRateSnapshot, RateService, FALLBACK_RATES
from .reconciliation import RecordStore, RecordReconciler, Subscription
from .transfer import ImportExportCodec, ImportResult, ExportDocument
from .services import BillingService, PaymentsSummary
