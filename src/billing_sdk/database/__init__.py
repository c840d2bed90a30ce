"""Database module for local billing persistence."""

from .models import (
    Base,
    ProviderRow,
    PaymentRow,
)
from .session import (
    resolve_database_url,
    DatabaseManager,
)
from .repository import (
    ProviderRepository,
    PaymentRepository,
)

__all__ = [
    # Models
    "Base",
    "ProviderRow",
    "PaymentRow",
    # Session management
    "resolve_database_url",
    "DatabaseManager",
    # Repositories
    "ProviderRepository",
    "PaymentRepository",
]
