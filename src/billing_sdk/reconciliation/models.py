"""Models for record store subscriptions."""

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .reconciler import RecordReconciler


class SubscriptionState(str, enum.Enum):
    """Lifecycle of a realtime subscription."""
    ACTIVE = "active"
    NOOP = "noop"  # connector has no realtime channel
    CLOSED = "closed"


class Subscription:
    """Handle for a store's realtime subscription.

    Only the most recent subscription of a store is live; older handles are
    closed as soon as a newer one replaces them.
    """

    def __init__(self, store: "RecordReconciler", token: object, realtime: bool):
        self._store = store
        self._token = token
        self.realtime = realtime

    @property
    def state(self) -> SubscriptionState:
        if not self._store.is_current_subscription(self._token):
            return SubscriptionState.CLOSED
        return SubscriptionState.ACTIVE if self.realtime else SubscriptionState.NOOP

    @property
    def active(self) -> bool:
        return self.state != SubscriptionState.CLOSED

    async def unsubscribe(self) -> None:
        """Stop delivering events to the store. Closing twice is a no-op."""
        if self._store.is_current_subscription(self._token):
            await self._store.unsubscribe()

    def __repr__(self) -> str:
        return f"Subscription(collection={self._store.name!r}, state={self.state.value})"
