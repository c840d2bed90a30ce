import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, TypeVar

from ..models import DomainModel

T = TypeVar("T", bound=DomainModel)


class RealtimeAction(str, enum.Enum):
    """Actions delivered on the realtime channel."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RealtimeEvent(Generic[T]):
    """A pushed change for one record."""
    action: RealtimeAction
    record: T


EventHandler = Callable[[RealtimeEvent], None]
UnsubscribeFunc = Callable[[], Awaitable[None]]


async def _noop_unsubscribe() -> None:
    return None


class CollectionConnectorBase(ABC, Generic[T]):
    """
    Remote collection interface for one record type. Implementations return
    canonical domain records and raise on failure; they never cache.
    """

    #: Collection name on the backend, used in logs.
    collection: str = ""

    #: Whether subscribe() delivers realtime events.
    supports_realtime: bool = True

    @abstractmethod
    async def list_records(self) -> List[T]:
        raise NotImplementedError

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> T:
        """
        Create a record. The backend assigns the id and returns the
        canonical record.
        """
        raise NotImplementedError

    @abstractmethod
    async def update(self, record_id: str, fields: Mapping[str, Any]) -> T:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        raise NotImplementedError

    async def subscribe(self, handler: EventHandler) -> UnsubscribeFunc:
        """
        Deliver change events for the collection to ``handler``. Returns an
        async function that stops delivery. The default has no realtime
        channel and returns a no-op.
        """
        return _noop_unsubscribe

    def health_check(self) -> Dict[str, Any]:
        return {"ok": True, "collection": self.collection}
