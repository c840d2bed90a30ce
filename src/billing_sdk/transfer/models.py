"""Models for dataset import and export."""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models import PaymentEntry, Provider


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ExportDocument(BaseModel):
    """Portable snapshot of all providers and payments.

    Rates are never part of the document.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    providers: List[Provider] = Field(default_factory=list)
    payments: List[PaymentEntry] = Field(default_factory=list)
    exported_at: str = Field(default_factory=_now_iso, description="ISO timestamp of the export")


class ImportResult(BaseModel):
    """Outcome of an import run. Partial success is normal."""
    success: bool = Field(..., description="True when no entity failed")
    errors: List[str] = Field(default_factory=list, description="One message per failed entity")
    providers_created: int = Field(default=0)
    payments_created: int = Field(default=0)

    def to_summary_dict(self) -> dict:
        return {
            "success": self.success,
            "providers_created": self.providers_created,
            "payments_created": self.payments_created,
            "error_count": len(self.errors),
        }
