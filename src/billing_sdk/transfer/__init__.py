"""Import and export of the provider/payment dataset."""

from .models import ExportDocument, ImportResult
from .codec import ImportExportCodec

__all__ = [
    "ExportDocument",
    "ImportResult",
    "ImportExportCodec",
]
