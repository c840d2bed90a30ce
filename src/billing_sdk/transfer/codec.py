"""Export and import of the provider/payment dataset."""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..errors import BillingSDKError, ParseError, ValidationGap
from ..models import PaymentEntry, Provider
from ..reconciliation import RecordStore
from .models import ExportDocument, ImportResult

logger = logging.getLogger(__name__)

PROVIDER_IMPORT_FIELDS = ("name", "url", "currency_default", "notes")


def _describe(error: Exception) -> str:
    """Short, single-line reason for a per-entity failure."""
    if isinstance(error, ValidationError):
        problems = []
        for item in error.errors():
            location = ".".join(str(part) for part in item.get("loc", ())) or "record"
            problems.append(f"{location}: {item.get('msg')}")
        return "; ".join(problems)
    return str(error) or type(error).__name__


def _entries(document: Dict[str, Any], key: str) -> List[Any]:
    value = document.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseError(f"Import document field '{key}' must be an array")
    return value


def _reference(value: Any) -> Any:
    """Id reference from a document, numeric ids included."""
    if value is None or isinstance(value, (dict, list, bool)):
        return value
    return str(value)


class ImportExportCodec:
    """Serializes the dataset and re-creates it in the target stores.

    Imported records get new ids from the target backend. Payment provider
    references are remapped through the ids assigned during the same run.
    """

    def __init__(self, provider_store: RecordStore[Provider], payment_store: RecordStore[PaymentEntry]):
        self.provider_store = provider_store
        self.payment_store = payment_store

    def export_document(self) -> ExportDocument:
        return ExportDocument(
            providers=self.provider_store.records(),
            payments=self.payment_store.records(),
        )

    def export_json(self, indent: int = 2) -> str:
        """Serialize the current cache contents as a JSON document."""
        document = self.export_document()
        logger.info(
            f"Exporting {len(document.providers)} providers and {len(document.payments)} payments"
        )
        return document.model_dump_json(by_alias=True, indent=indent)

    def parse(self, text: str) -> Dict[str, Any]:
        """Decode an import document.

        Raises:
            ParseError: If the text is not JSON, not an object, or has
                non-array ``providers``/``payments`` fields.
        """
        try:
            document = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise ParseError(f"Import document is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise ParseError("Import document must be a JSON object")
        return {
            "providers": _entries(document, "providers"),
            "payments": _entries(document, "payments"),
        }

    async def import_json(self, text: str) -> ImportResult:
        """Import a JSON document into the stores.

        Raises:
            ParseError: Only for a malformed document. Failures of individual
                entries are collected in the result.
        """
        document = self.parse(text)
        return await self.import_document(document)

    async def import_document(self, document: Dict[str, Any]) -> ImportResult:
        errors: List[str] = []
        id_map: Dict[str, str] = {}

        providers_created = 0
        for entry in document.get("providers", []):
            new_id = await self._import_provider(entry, errors)
            if new_id is None:
                continue
            providers_created += 1
            if isinstance(entry, dict) and entry.get("id") is not None:
                id_map[str(entry["id"])] = new_id

        payments_created = 0
        for entry in document.get("payments", []):
            if await self._import_payment(entry, id_map, errors):
                payments_created += 1

        result = ImportResult(
            success=not errors,
            errors=errors,
            providers_created=providers_created,
            payments_created=payments_created,
        )
        logger.info(
            f"Import finished: {result.providers_created} providers, "
            f"{result.payments_created} payments, {len(errors)} errors"
        )
        return result

    async def _import_provider(self, entry: Any, errors: List[str]) -> Optional[str]:
        label = (entry.get("name") or entry.get("id")) if isinstance(entry, dict) else None
        try:
            if not isinstance(entry, dict):
                raise ValueError("entry is not an object")
            # The old id only keys the remap table; the backend assigns a new one.
            provider = Provider.model_validate({**entry, "id": ""})
            fields = {name: getattr(provider, name) for name in PROVIDER_IMPORT_FIELDS}
            created = await self.provider_store.create(fields)
        except (ValidationError, ValueError, BillingSDKError) as e:
            message = f"Provider '{label}': {_describe(e)}"
            logger.warning(message)
            errors.append(message)
            return None
        return created.id

    async def _import_payment(self, entry: Any, id_map: Dict[str, str], errors: List[str]) -> bool:
        label = entry.get("id") if isinstance(entry, dict) else None
        try:
            if not isinstance(entry, dict):
                raise ValueError("entry is not an object")
            old_provider_id = _reference(entry.get("providerId", entry.get("provider_id")))
            payment = PaymentEntry.model_validate({
                **entry,
                "id": "",
                "providerId": old_provider_id,
            })
            new_provider_id = id_map.get(payment.provider_id)
            if new_provider_id is None:
                raise ValidationGap(
                    f"Payment {label}: provider '{payment.provider_id}' was not imported"
                )
            fields = payment.model_dump(exclude={"id"})
            fields["provider_id"] = new_provider_id
            await self.payment_store.create(fields)
        except ValidationGap as e:
            logger.warning(str(e))
            errors.append(str(e))
            return False
        except (ValidationError, ValueError, BillingSDKError) as e:
            message = f"Payment {label}: {_describe(e)}"
            logger.warning(message)
            errors.append(message)
            return False
        return True
