"""Repository layer for provider and payment persistence."""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ProviderRow, PaymentRow

logger = logging.getLogger(__name__)


class ProviderRepository:
    """Repository for Provider CRUD operations."""

    # Columns writable through create/update
    FIELDS = ("name", "url", "currency_default", "notes")

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: AsyncSession instance for database operations.
        """
        self.session = session

    async def create(self, fields: Dict[str, Any]) -> ProviderRow:
        """Create a new provider row.

        Args:
            fields: Column values keyed by attribute name. Unknown keys are ignored.

        Returns:
            Created ProviderRow instance.
        """
        provider = ProviderRow(**{k: v for k, v in fields.items() if k in self.FIELDS})
        self.session.add(provider)
        await self.session.flush()

        logger.info(f"Created provider {provider.id} ({provider.name})")
        return provider

    async def get_by_id(self, provider_id: str) -> Optional[ProviderRow]:
        result = await self.session.execute(
            select(ProviderRow).where(ProviderRow.id == provider_id)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[ProviderRow]:
        result = await self.session.execute(
            select(ProviderRow).order_by(ProviderRow.created_at)
        )
        return list(result.scalars().all())

    async def update(self, provider: ProviderRow, fields: Dict[str, Any]) -> ProviderRow:
        """Overwrite the given columns of a provider row.

        Args:
            provider: ProviderRow instance to update.
            fields: Column values to set.

        Returns:
            Updated ProviderRow instance.
        """
        for key, value in fields.items():
            if key in self.FIELDS:
                setattr(provider, key, value)
        provider.updated_at = datetime.utcnow()
        await self.session.flush()
        logger.info(f"Updated provider {provider.id}")
        return provider

    async def delete(self, provider: ProviderRow) -> int:
        """Delete a provider and the payments that reference it.

        Returns:
            Number of dependent payments removed.
        """
        result = await self.session.execute(
            delete(PaymentRow).where(PaymentRow.provider_id == provider.id)
        )
        await self.session.delete(provider)
        await self.session.flush()
        logger.info(f"Deleted provider {provider.id} and {result.rowcount} payments")
        return result.rowcount


class PaymentRepository:
    """Repository for Payment CRUD operations."""

    FIELDS = (
        "server_id",
        "provider_id",
        "period",
        "next_payment",
        "amount",
        "currency",
        "country",
        "provider_url_override",
        "notes",
    )

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: AsyncSession instance for database operations.
        """
        self.session = session

    async def create(self, fields: Dict[str, Any]) -> PaymentRow:
        """Create a new payment row.

        Args:
            fields: Column values keyed by attribute name. Unknown keys are ignored.

        Returns:
            Created PaymentRow instance.
        """
        payment = PaymentRow(**{k: v for k, v in fields.items() if k in self.FIELDS})
        self.session.add(payment)
        await self.session.flush()

        logger.info(f"Created payment {payment.id} for server {payment.server_id}")
        return payment

    async def get_by_id(self, payment_id: str) -> Optional[PaymentRow]:
        result = await self.session.execute(
            select(PaymentRow).where(PaymentRow.id == payment_id)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[PaymentRow]:
        result = await self.session.execute(
            select(PaymentRow).order_by(PaymentRow.next_payment)
        )
        return list(result.scalars().all())

    async def list_by_server(self, server_id: str) -> List[PaymentRow]:
        """List payments for a server. More than one is tolerated."""
        result = await self.session.execute(
            select(PaymentRow)
            .where(PaymentRow.server_id == server_id)
            .order_by(PaymentRow.next_payment)
        )
        return list(result.scalars().all())

    async def list_by_provider(self, provider_id: str) -> List[PaymentRow]:
        result = await self.session.execute(
            select(PaymentRow)
            .where(PaymentRow.provider_id == provider_id)
            .order_by(PaymentRow.next_payment)
        )
        return list(result.scalars().all())

    async def update(self, payment: PaymentRow, fields: Dict[str, Any]) -> PaymentRow:
        """Overwrite the given columns of a payment row.

        Args:
            payment: PaymentRow instance to update.
            fields: Column values to set.

        Returns:
            Updated PaymentRow instance.
        """
        for key, value in fields.items():
            if key in self.FIELDS:
                setattr(payment, key, value)
        payment.updated_at = datetime.utcnow()
        await self.session.flush()
        logger.info(f"Updated payment {payment.id}")
        return payment

    async def delete(self, payment: PaymentRow) -> None:
        await self.session.delete(payment)
        await self.session.flush()
        logger.info(f"Deleted payment {payment.id}")
