"""Remote collection connectors."""

from .base import (
    CollectionConnectorBase,
    RealtimeAction,
    RealtimeEvent,
    EventHandler,
    UnsubscribeFunc,
)
from .records import (
    RecordMapper,
    PROVIDERS,
    PAYMENTS,
    provider_from_record,
    provider_to_record,
    payment_from_record,
    payment_to_record,
)
from .simulator_connector import (
    SimulatorBackend,
    SimulatorConfig,
    SimulatorConnector,
    simulator_connectors,
)
from .database_connector import DatabaseConnector, database_connectors

__all__ = [
    # Base classes and events
    "CollectionConnectorBase",
    "RealtimeAction",
    "RealtimeEvent",
    "EventHandler",
    "UnsubscribeFunc",
    # Backend record mapping
    "RecordMapper",
    "PROVIDERS",
    "PAYMENTS",
    "provider_from_record",
    "provider_to_record",
    "payment_from_record",
    "payment_to_record",
    # Connectors
    "SimulatorBackend",
    "SimulatorConfig",
    "SimulatorConnector",
    "simulator_connectors",
    "DatabaseConnector",
    "database_connectors",
]
