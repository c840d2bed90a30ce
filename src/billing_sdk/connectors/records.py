"""Mapping between backend records and domain models.

Backend records use the backend's field names and store absent optional
values as empty strings. Both conventions stop here: domain models use
snake_case attributes and None.
"""

import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic.alias_generators import to_camel

from ..models import PaymentEntry, Provider

# Backend date fields carry a time part; payments are day-granular.
BACKEND_DATE_SUFFIX = " 00:00:00.000Z"

PROVIDER_FIELDS = {
    "name": "name",
    "url": "url",
    "currency_default": "currencyDefault",
    "notes": "notes",
}

PAYMENT_FIELDS = {
    "server_id": "system",
    "provider_id": "provider",
    "period": "period",
    "next_payment": "nextPayment",
    "amount": "amount",
    "currency": "currency",
    "country": "country",
    "provider_url_override": "providerUrlOverride",
    "notes": "notes",
}

OPTIONAL_FIELDS = {"currency_default", "country", "provider_url_override", "notes"}


def _optional(value: Any) -> Optional[Any]:
    """Backend empty string -> None."""
    if value is None or value == "":
        return None
    return value


def _to_backend_value(field: str, value: Any) -> Any:
    if isinstance(value, enum.Enum):
        value = value.value
    if field in OPTIONAL_FIELDS and value is None:
        return ""
    if field == "next_payment" and isinstance(value, str) and len(value) == 10:
        return value + BACKEND_DATE_SUFFIX
    return value


def _key_index(field_map: Mapping[str, str]) -> Dict[str, str]:
    """Every accepted spelling of a field (snake, camel, backend) -> attribute."""
    index = {}
    for attr, backend in field_map.items():
        index[attr] = attr
        index[to_camel(attr)] = attr
        index[backend] = attr
    return index


def _to_record(fields: Mapping[str, Any], field_map: Mapping[str, str]) -> Dict[str, Any]:
    index = _key_index(field_map)
    record: Dict[str, Any] = {}
    for key, value in fields.items():
        attr = index.get(key)
        if attr is None:
            continue
        record[field_map[attr]] = _to_backend_value(attr, value)
    return record


def provider_from_record(record: Mapping[str, Any]) -> Provider:
    return Provider(
        id=record["id"],
        name=record.get("name", ""),
        url=record.get("url") or "",
        currency_default=_optional(record.get("currencyDefault")),
        notes=_optional(record.get("notes")),
    )


def provider_to_record(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate provider fields (domain names) into a backend payload.

    Unknown keys are dropped; only keys present in ``fields`` are emitted so
    the result can serve as a partial update.
    """
    return _to_record(fields, PROVIDER_FIELDS)


def payment_from_record(record: Mapping[str, Any]) -> PaymentEntry:
    next_payment = record.get("nextPayment") or ""
    return PaymentEntry(
        id=record["id"],
        server_id=record.get("system", ""),
        provider_id=record.get("provider", ""),
        period=record.get("period", ""),
        next_payment=next_payment[:10],
        amount=record.get("amount", 0),
        currency=record.get("currency", ""),
        country=_optional(record.get("country")),
        provider_url_override=_optional(record.get("providerUrlOverride")),
        notes=_optional(record.get("notes")),
    )


def payment_to_record(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate payment fields (domain names) into a backend payload."""
    return _to_record(fields, PAYMENT_FIELDS)


@dataclass(frozen=True)
class RecordMapper:
    """Bundles the mapping functions for one backend collection."""
    collection: str
    from_record: Callable[[Mapping[str, Any]], Any]
    to_record: Callable[[Mapping[str, Any]], Dict[str, Any]]
    # backend field linking to a parent record, for cascading deletes
    parent_field: Optional[str] = None
    parent_collection: Optional[str] = None


PROVIDERS = RecordMapper("providers", provider_from_record, provider_to_record)
PAYMENTS = RecordMapper(
    "payments",
    payment_from_record,
    payment_to_record,
    parent_field="provider",
    parent_collection="providers",
)
