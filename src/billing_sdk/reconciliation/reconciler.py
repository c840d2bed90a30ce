"""Local record cache kept in sync with a remote collection."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, Set

from ..connectors.base import (
    CollectionConnectorBase,
    RealtimeAction,
    RealtimeEvent,
    T,
    UnsubscribeFunc,
)
from ..errors import BillingSDKError, FetchError, SubscriptionError
from .models import Subscription

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class RecordStore(ABC, Generic[T]):
    """Contract shared by every record store variant.

    A store owns one id-keyed cache. Stores whose collection has no realtime
    channel implement subscribe_realtime() as a no-op.
    """

    @abstractmethod
    async def refresh(self) -> List[T]:
        raise NotImplementedError

    @abstractmethod
    def merge(self, records: Iterable[T]) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, ids: Iterable[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def subscribe_realtime(self) -> Subscription:
        raise NotImplementedError

    @abstractmethod
    async def unsubscribe(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> T:
        raise NotImplementedError

    @abstractmethod
    async def update(self, record_id: str, fields: Mapping[str, Any]) -> T:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def records(self) -> List[T]:
        raise NotImplementedError

    @abstractmethod
    def get(self, record_id: str) -> Optional[T]:
        raise NotImplementedError

    def remove_where(self, predicate: Callable[[T], bool]) -> Set[str]:
        """Drop every entry matching ``predicate``.

        Returns:
            Ids that were removed.
        """
        ids = {record.id for record in self.records() if predicate(record)}
        self.remove(ids)
        return ids


class RecordReconciler(RecordStore[T]):
    """Keeps one local view of a remote collection.

    Bulk refreshes, direct responses to local mutations and realtime events
    all go through merge() and remove(). Entries are replaced wholesale by
    id, so a direct response and the realtime event for the same mutation
    converge on one entry whichever arrives first.
    """

    def __init__(self, connector: CollectionConnectorBase[T], name: Optional[str] = None):
        """Initialize the reconciler.

        Args:
            connector: Remote collection the cache mirrors.
            name: Label used in logs. Defaults to the connector's collection.
        """
        self.connector = connector
        self.name = name or connector.collection or type(connector).__name__
        self._cache: Dict[str, T] = {}
        self._listeners: List[ChangeListener] = []
        self._subscription_token: Optional[object] = None
        self._unsubscribe_remote: Optional[UnsubscribeFunc] = None

    # Cache primitives

    def merge(self, records: Iterable[T]) -> None:
        """Upsert records by id, replacing existing entries in full."""
        changed = False
        for record in records:
            self._cache[record.id] = record
            changed = True
        if changed:
            self._notify()

    def remove(self, ids: Iterable[str]) -> None:
        """Drop entries by id. Unknown ids are ignored."""
        removed = [self._cache.pop(record_id) for record_id in set(ids) if record_id in self._cache]
        if removed:
            self._notify()

    def records(self) -> List[T]:
        """Snapshot of the cached records."""
        return list(self._cache.values())

    def get(self, record_id: str) -> Optional[T]:
        return self._cache.get(record_id)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._cache

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a callback run after every cache change.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception(f"Change listener for {self.name} failed")

    # Remote reads and mutations

    async def _call(self, operation: str, coro):
        try:
            return await coro
        except BillingSDKError:
            raise
        except Exception as e:
            logger.error(f"{self.name}: {operation} failed: {e}")
            raise FetchError(f"{self.name}: {operation} failed: {e}") from e

    async def refresh(self) -> List[T]:
        """Fetch the full remote set and replace the cache with it.

        Raises:
            FetchError: If the remote read fails. The cache is left as it was.
        """
        records = await self._call("refresh", self.connector.list_records())
        self._cache = {record.id: record for record in records}
        self._notify()
        logger.info(f"Refreshed {self.name}: {len(records)} records")
        return list(records)

    async def create(self, fields: Mapping[str, Any]) -> T:
        """Create a record remotely and merge the canonical result."""
        record = await self._call("create", self.connector.create(fields))
        self.merge([record])
        return record

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> T:
        """Update a record remotely and merge the canonical result."""
        record = await self._call(f"update {record_id}", self.connector.update(record_id, fields))
        self.merge([record])
        return record

    async def delete(self, record_id: str) -> None:
        """Delete a record remotely, then drop it locally.

        A realtime delete for the same id may already have removed it; the
        local removal is then a no-op.
        """
        await self._call(f"delete {record_id}", self.connector.delete(record_id))
        self.remove({record_id})

    # Realtime

    def is_current_subscription(self, token: object) -> bool:
        return token is not None and token is self._subscription_token

    def _handler_for(self, token: object) -> Callable[[RealtimeEvent], None]:
        def handle(event: RealtimeEvent) -> None:
            # Events from a replaced or closed subscription must not touch the cache.
            if not self.is_current_subscription(token):
                return
            self.apply_event(event)

        return handle

    def apply_event(self, event: RealtimeEvent) -> None:
        """Route a realtime event into merge() or remove()."""
        if event.action in (RealtimeAction.CREATE, RealtimeAction.UPDATE):
            self.merge([event.record])
        elif event.action == RealtimeAction.DELETE:
            self.remove({event.record.id})
        else:
            logger.warning(f"{self.name}: ignoring realtime event with action {event.action!r}")

    async def subscribe_realtime(self) -> Subscription:
        """Start routing realtime events into the cache.

        Any previous subscription is torn down first, so at most one handler
        is ever live.

        Raises:
            SubscriptionError: If the channel cannot be established. Cache
                contents are kept.
        """
        await self.unsubscribe()

        token = object()
        self._subscription_token = token
        try:
            unsubscribe_remote = await self.connector.subscribe(self._handler_for(token))
        except Exception as e:
            if self._subscription_token is token:
                self._subscription_token = None
            logger.error(f"{self.name}: realtime subscription failed: {e}")
            raise SubscriptionError(f"{self.name}: realtime subscription failed: {e}") from e

        if self._subscription_token is not token:
            # A newer subscribe() or an unsubscribe() ran while this one was pending.
            await unsubscribe_remote()
            return Subscription(self, token, realtime=self.connector.supports_realtime)

        self._unsubscribe_remote = unsubscribe_remote
        if self.connector.supports_realtime:
            logger.info(f"{self.name}: realtime subscription active")
        return Subscription(self, token, realtime=self.connector.supports_realtime)

    async def unsubscribe(self) -> None:
        """Stop realtime delivery. Safe to call without a subscription."""
        self._subscription_token = None
        unsubscribe_remote, self._unsubscribe_remote = self._unsubscribe_remote, None
        if unsubscribe_remote is not None:
            try:
                await unsubscribe_remote()
            except Exception as e:
                logger.warning(f"{self.name}: error while unsubscribing: {e}")

    @property
    def subscribed(self) -> bool:
        return self._subscription_token is not None

    async def reset(self) -> None:
        """Tear down the subscription, then clear the cache."""
        await self.unsubscribe()
        self._cache = {}
        self._notify()
