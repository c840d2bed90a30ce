"""Exception types raised by the billing SDK."""


class BillingSDKError(Exception):
    """Base class for all billing SDK errors."""


class FetchError(BillingSDKError):
    """A remote call failed (network error, timeout or non-2xx status)."""


class ParseError(BillingSDKError):
    """A payload could not be decoded or had an unexpected shape."""


class ValidationGap(BillingSDKError):
    """A referenced record is missing.

    Raised for soft failures such as a payment whose provider was not
    imported. Callers record these and keep going.
    """


class SubscriptionError(BillingSDKError):
    """The realtime channel could not be established."""
