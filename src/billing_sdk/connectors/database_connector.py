"""Local-persisted collection connector backed by SQLAlchemy."""

import logging
from typing import Any, Dict, List, Mapping, Type

from pydantic.alias_generators import to_snake

from ..database import DatabaseManager, PaymentRepository, ProviderRepository
from ..models import DomainModel, PaymentEntry, Provider
from .base import CollectionConnectorBase, T

logger = logging.getLogger(__name__)


class DatabaseConnector(CollectionConnectorBase[T]):
    """
    Collection connector over a local database. Ids are generated locally
    and there is no realtime channel, so subscribe() is a no-op.
    """

    supports_realtime = False

    def __init__(
        self,
        manager: DatabaseManager,
        model: Type[DomainModel],
        repository_class: type,
        collection: str,
    ):
        self.manager = manager
        self.model = model
        self.repository_class = repository_class
        self.collection = collection

    def _validated(self, fields: Mapping[str, Any], base: Dict[str, Any]) -> Dict[str, Any]:
        """Merge fields onto ``base`` and validate as a domain record.

        Returns:
            Column values (snake_case, enums unwrapped) without the id.
        """
        data = dict(base)
        data.update({to_snake(k): v for k, v in fields.items() if to_snake(k) != "id"})
        record = self.model.model_validate({**data, "id": base.get("id", "new")})
        return record.model_dump(exclude={"id"})

    async def list_records(self) -> List[T]:
        async with self.manager.session() as session:
            rows = await self.repository_class(session).list_all()
            return [row.to_domain() for row in rows]

    async def create(self, fields: Mapping[str, Any]) -> T:
        values = self._validated(fields, {})
        async with self.manager.session() as session:
            row = await self.repository_class(session).create(values)
            return row.to_domain()

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> T:
        async with self.manager.session() as session:
            repo = self.repository_class(session)
            row = await repo.get_by_id(record_id)
            if row is None:
                raise LookupError(f"{self.collection} record {record_id} not found")
            current = row.to_domain().model_dump()
            row = await repo.update(row, self._validated(fields, current))
            return row.to_domain()

    async def delete(self, record_id: str) -> None:
        async with self.manager.session() as session:
            repo = self.repository_class(session)
            row = await repo.get_by_id(record_id)
            if row is None:
                raise LookupError(f"{self.collection} record {record_id} not found")
            await repo.delete(row)

    def health_check(self) -> Dict[str, Any]:
        return {
            "ok": self.manager.initialized,
            "provider": "database",
            "collection": self.collection,
        }


def database_connectors(manager: DatabaseManager):
    """Provider and payment connectors sharing one database."""
    return (
        DatabaseConnector(manager, Provider, ProviderRepository, "providers"),
        DatabaseConnector(manager, PaymentEntry, PaymentRepository, "payments"),
    )
