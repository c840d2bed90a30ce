"""Reconciliation of local record caches with remote collections.

This module keeps one local view per remote collection and merges three
update sources into it:
- Full refreshes of the remote set
- Direct responses to local create/update/delete calls
- Realtime create/update/delete events pushed by the backend
"""

from .models import (
    Subscription,
    SubscriptionState,
)
from .reconciler import (
    ChangeListener,
    RecordStore,
    RecordReconciler,
)

__all__ = [
    # Models
    "Subscription",
    "SubscriptionState",
    # Core Components
    "ChangeListener",
    "RecordStore",
    "RecordReconciler",
]
