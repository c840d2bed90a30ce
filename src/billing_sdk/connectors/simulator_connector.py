"""Simulator backend for exercising stores without a real server."""

import asyncio
import copy
import uuid
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .base import (
    CollectionConnectorBase,
    EventHandler,
    RealtimeAction,
    RealtimeEvent,
    T,
    UnsubscribeFunc,
)
from .records import PAYMENTS, PROVIDERS, RecordMapper

logger = logging.getLogger(__name__)

RawSubscriber = Callable[[RealtimeAction, Dict[str, Any]], None]


@dataclass
class SimulatorConfig:
    """Configuration for simulator behavior."""
    delay_ms: int = 0  # Simulated response delay in ms
    fail_operations: bool = False  # Every remote call raises ConnectionError
    fail_subscribe: bool = False  # Realtime channel cannot be established
    defer_events: bool = False  # Queue realtime events until deliver_events()


class SimulatorBackend:
    """
    In-memory backend holding raw backend records per collection.

    Features:
    - Backend-assigned ids (``sim_`` prefix)
    - Realtime push to subscribers, immediate or queued
    - Cascading deletes from a parent collection to its children
    - ``push_external`` to simulate changes made by another client
    """

    def __init__(self, config: Optional[SimulatorConfig] = None):
        self.config = config or SimulatorConfig()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._subscribers: Dict[str, List[RawSubscriber]] = {}
        self._pending: List[Tuple[str, RealtimeAction, Dict[str, Any]]] = []
        # parent collection -> [(child collection, child field)]
        self._cascades: Dict[str, List[Tuple[str, str]]] = {}
        logger.info("SimulatorBackend initialized")

    def _generate_id(self) -> str:
        return f"sim_{uuid.uuid4().hex[:15]}"

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def register_cascade(self, parent: str, child: str, child_field: str) -> None:
        """Delete ``child`` records whose ``child_field`` points at a deleted parent."""
        links = self._cascades.setdefault(parent, [])
        if (child, child_field) not in links:
            links.append((child, child_field))

    def records(self, collection: str) -> List[Dict[str, Any]]:
        """Copies of all raw records in a collection."""
        return [copy.deepcopy(r) for r in self._collection(collection).values()]

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._collection(collection).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def insert(self, collection: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        record = dict(payload)
        record["id"] = self._generate_id()
        self._collection(collection)[record["id"]] = record
        self._emit(collection, RealtimeAction.CREATE, record)
        return copy.deepcopy(record)

    def patch(self, collection: str, record_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        records = self._collection(collection)
        if record_id not in records:
            raise LookupError(f"{collection} record {record_id} not found")
        record = {**records[record_id], **payload, "id": record_id}
        records[record_id] = record
        self._emit(collection, RealtimeAction.UPDATE, record)
        return copy.deepcopy(record)

    def remove(self, collection: str, record_id: str) -> None:
        records = self._collection(collection)
        record = records.pop(record_id, None)
        if record is None:
            raise LookupError(f"{collection} record {record_id} not found")
        for child, field in self._cascades.get(collection, []):
            children = [r for r in self._collection(child).values() if r.get(field) == record_id]
            for child_record in children:
                self._collection(child).pop(child_record["id"], None)
                self._emit(child, RealtimeAction.DELETE, child_record)
        self._emit(collection, RealtimeAction.DELETE, record)

    def push_external(self, collection: str, action: RealtimeAction, record: Dict[str, Any]) -> None:
        """Apply a change as if another client made it, and push the event."""
        records = self._collection(collection)
        if action == RealtimeAction.DELETE:
            records.pop(record["id"], None)
        else:
            records[record["id"]] = dict(record)
        self._emit(collection, action, record)

    def add_subscriber(self, collection: str, subscriber: RawSubscriber) -> Callable[[], None]:
        subscribers = self._subscribers.setdefault(collection, [])
        subscribers.append(subscriber)

        def remove() -> None:
            if subscriber in subscribers:
                subscribers.remove(subscriber)

        return remove

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, []))

    def _emit(self, collection: str, action: RealtimeAction, record: Dict[str, Any]) -> None:
        if self.config.defer_events:
            self._pending.append((collection, action, copy.deepcopy(record)))
            return
        self._dispatch(collection, action, record)

    def _dispatch(self, collection: str, action: RealtimeAction, record: Dict[str, Any]) -> None:
        for subscriber in list(self._subscribers.get(collection, [])):
            subscriber(action, copy.deepcopy(record))

    def pending_events(self) -> int:
        return len(self._pending)

    def deliver_events(self) -> int:
        """Deliver queued realtime events in order. Returns how many were sent."""
        pending, self._pending = self._pending, []
        for collection, action, record in pending:
            self._dispatch(collection, action, record)
        return len(pending)

    def clear(self) -> None:
        """Drop all records and queued events (for test cleanup)."""
        self._collections.clear()
        self._pending.clear()


class SimulatorConnector(CollectionConnectorBase[T]):
    """
    Collection connector over a SimulatorBackend. Records cross the
    boundary through the collection's RecordMapper, so the backend keeps
    its own field names and empty-string conventions.
    """

    def __init__(self, backend: SimulatorBackend, mapper: RecordMapper):
        self.backend = backend
        self.mapper = mapper
        self.collection = mapper.collection
        if mapper.parent_collection and mapper.parent_field:
            backend.register_cascade(mapper.parent_collection, mapper.collection, mapper.parent_field)

    @property
    def config(self) -> SimulatorConfig:
        return self.backend.config

    async def _apply_delay(self) -> None:
        if self.config.delay_ms > 0:
            await asyncio.sleep(self.config.delay_ms / 1000.0)

    def _check_available(self, operation: str) -> None:
        if self.config.fail_operations:
            raise ConnectionError(f"Simulated failure: {operation} {self.collection}")

    async def list_records(self) -> List[T]:
        await self._apply_delay()
        self._check_available("list")
        return [self.mapper.from_record(r) for r in self.backend.records(self.collection)]

    async def create(self, fields: Mapping[str, Any]) -> T:
        await self._apply_delay()
        self._check_available("create")
        record = self.backend.insert(self.collection, self.mapper.to_record(fields))
        return self.mapper.from_record(record)

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> T:
        await self._apply_delay()
        self._check_available("update")
        record = self.backend.patch(self.collection, record_id, self.mapper.to_record(fields))
        return self.mapper.from_record(record)

    async def delete(self, record_id: str) -> None:
        await self._apply_delay()
        self._check_available("delete")
        self.backend.remove(self.collection, record_id)

    async def subscribe(self, handler: EventHandler) -> UnsubscribeFunc:
        await self._apply_delay()
        if self.config.fail_subscribe:
            raise ConnectionError(f"Simulated realtime failure: {self.collection}")

        def on_raw(action: RealtimeAction, record: Dict[str, Any]) -> None:
            handler(RealtimeEvent(action=action, record=self.mapper.from_record(record)))

        remove = self.backend.add_subscriber(self.collection, on_raw)

        async def unsubscribe() -> None:
            remove()

        return unsubscribe

    def health_check(self) -> Dict[str, Any]:
        return {
            "ok": not self.config.fail_operations,
            "provider": "simulator",
            "collection": self.collection,
            "record_count": len(self.backend.records(self.collection)),
            "subscribers": self.backend.subscriber_count(self.collection),
        }


def simulator_connectors(
    backend: Optional[SimulatorBackend] = None,
) -> Tuple[SimulatorConnector, SimulatorConnector]:
    """Provider and payment connectors sharing one simulator backend."""
    backend = backend or SimulatorBackend()
    return SimulatorConnector(backend, PROVIDERS), SimulatorConnector(backend, PAYMENTS)
