"""SQLAlchemy models for locally persisted providers and payments."""

import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    String,
    Float,
    DateTime,
    ForeignKey,
    Text,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column

from ..models import PaymentEntry, Provider


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ProviderRow(Base):
    """Provider model."""
    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    currency_default: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    payments: Mapped[List["PaymentRow"]] = relationship(
        "PaymentRow",
        back_populates="provider",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_domain(self) -> Provider:
        return Provider(
            id=self.id,
            name=self.name,
            url=self.url or "",
            currency_default=self.currency_default,
            notes=self.notes,
        )


class PaymentRow(Base):
    """Payment model. Several rows may share a server_id; nothing here forbids it."""
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    server_id: Mapped[str] = mapped_column(String(255), nullable=False)
    provider_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False
    )
    period: Mapped[str] = mapped_column(String(32), nullable=False)
    # ISO date kept as text so legacy values round-trip unchanged
    next_payment: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(16), nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    provider_url_override: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    provider: Mapped["ProviderRow"] = relationship("ProviderRow", back_populates="payments")

    __table_args__ = (
        Index("ix_payments_server_id", "server_id"),
        Index("ix_payments_provider_id", "provider_id"),
        Index("ix_payments_next_payment", "next_payment"),
    )

    def to_domain(self) -> PaymentEntry:
        return PaymentEntry(
            id=self.id,
            server_id=self.server_id,
            provider_id=self.provider_id,
            period=self.period,
            next_payment=self.next_payment,
            amount=self.amount,
            currency=self.currency,
            country=self.country,
            provider_url_override=self.provider_url_override,
            notes=self.notes,
        )
