"""Tests for CollectionConnectorBase abstract class and realtime events."""

import dataclasses
from abc import ABC

import pytest

from billing_sdk.connectors.base import (
    CollectionConnectorBase,
    RealtimeAction,
    RealtimeEvent,
)
from billing_sdk.models import Provider


class TestConnectorBaseAbstraction:
    """Tests to verify CollectionConnectorBase is properly abstract."""

    def test_cannot_instantiate_directly(self):
        """Test that CollectionConnectorBase cannot be instantiated directly."""
        with pytest.raises(TypeError) as exc_info:
            CollectionConnectorBase()
        assert "abstract" in str(exc_info.value).lower()

    def test_is_abstract_class(self):
        assert issubclass(CollectionConnectorBase, ABC)

    def test_partial_implementation_fails(self):
        """Test that a connector missing mutations cannot be created."""
        class ReadOnlyConnector(CollectionConnectorBase):
            async def list_records(self):
                return []

        with pytest.raises(TypeError):
            ReadOnlyConnector()

    async def test_full_implementation_defaults(self):
        """Test the default subscribe() and health_check() of a full implementation."""
        class FullConnector(CollectionConnectorBase):
            collection = "providers"

            async def list_records(self):
                return []

            async def create(self, fields):
                return Provider(id="1", **fields)

            async def update(self, record_id, fields):
                return Provider(id=record_id, **fields)

            async def delete(self, record_id):
                return None

        connector = FullConnector()
        unsubscribe = await connector.subscribe(lambda event: None)

        assert await unsubscribe() is None
        assert connector.supports_realtime is True
        assert connector.health_check() == {"ok": True, "collection": "providers"}
        assert (await connector.create({"name": "x"})).id == "1"


class TestRealtimeEvent:
    """Tests for realtime event values."""

    def test_event_is_immutable(self):
        event = RealtimeEvent(action=RealtimeAction.CREATE, record=Provider(id="1", name="x"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.action = RealtimeAction.DELETE

    def test_events_compare_by_value(self):
        first = RealtimeEvent(action=RealtimeAction.UPDATE, record=Provider(id="1", name="x"))
        second = RealtimeEvent(action=RealtimeAction.UPDATE, record=Provider(id="1", name="x"))
        assert first == second

    def test_actions(self):
        assert [a.value for a in RealtimeAction] == ["create", "update", "delete"]
