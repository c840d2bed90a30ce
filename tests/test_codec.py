"""Tests for dataset import and export."""

import json

import pytest

from billing_sdk.connectors import SimulatorBackend, simulator_connectors
from billing_sdk.errors import ParseError
from billing_sdk.reconciliation import RecordReconciler
from billing_sdk.transfer import ExportDocument, ImportExportCodec


@pytest.fixture
def codec(provider_store, payment_store) -> ImportExportCodec:
    return ImportExportCodec(provider_store, payment_store)


def _payment(payment_id: str, provider_id: str, **fields) -> dict:
    entry = {
        "id": payment_id,
        "serverId": "srv-1",
        "providerId": provider_id,
        "period": "monthly",
        "nextPayment": "2024-07-01",
        "amount": 10,
        "currency": "USD",
    }
    entry.update(fields)
    return entry


class TestExport:
    """Test document export."""

    async def test_export_shape(self, codec, provider_store, payment_store):
        provider = await provider_store.create({"name": "Hetzner", "currency_default": "EUR"})
        await payment_store.create({
            "server_id": "srv-1", "provider_id": provider.id, "next_payment": "2024-07-01",
            "amount": 5, "currency": "EUR", "period": "monthly",
        })

        text = codec.export_json()
        data = json.loads(text)

        assert set(data) == {"providers", "payments", "exportedAt"}
        assert data["providers"][0]["currencyDefault"] == "EUR"
        assert data["payments"][0]["providerId"] == provider.id
        assert data["payments"][0]["nextPayment"] == "2024-07-01"
        assert "USD" not in data
        assert text.startswith("{\n  ")

    def test_empty_export(self, codec):
        document = ExportDocument.model_validate_json(codec.export_json())
        assert document.providers == []
        assert document.payments == []
        assert document.exported_at.endswith("Z")


class TestImport:
    """Test document import with foreign key remapping."""

    async def test_remaps_provider_ids(self, codec, provider_store, payment_store):
        document = {
            "providers": [{"id": "old-1", "name": "Hetzner"}, {"id": "old-2", "name": "OVH"}],
            "payments": [_payment("pay-1", "old-2")],
        }

        result = await codec.import_json(json.dumps(document))

        assert result.success
        assert result.errors == []
        assert result.providers_created == 2
        assert result.payments_created == 1
        ovh = next(p for p in provider_store.records() if p.name == "OVH")
        assert ovh.id != "old-2"
        (payment,) = payment_store.records()
        assert payment.provider_id == ovh.id
        assert payment.id != "pay-1"

    async def test_provider_without_id_is_created(self, codec, provider_store):
        document = {"providers": [{"name": "Hetzner", "url": "https://hetzner.com"}]}

        result = await codec.import_json(json.dumps(document))

        assert result.success
        assert result.providers_created == 1
        (provider,) = provider_store.records()
        assert provider.name == "Hetzner"
        assert provider.url == "https://hetzner.com"

    async def test_numeric_ids_are_remapped(self, codec, provider_store, payment_store):
        document = {
            "providers": [{"id": 1, "name": "Hetzner"}],
            "payments": [_payment(7, 1)],
        }

        result = await codec.import_json(json.dumps(document))

        assert result.errors == []
        assert result.providers_created == 1
        assert result.payments_created == 1
        (provider,) = provider_store.records()
        (payment,) = payment_store.records()
        assert payment.provider_id == provider.id

    async def test_missing_provider_mapping(self, codec, provider_store, payment_store):
        document = {
            "providers": [{"id": "old-1", "name": "Hetzner"}],
            "payments": [_payment("pay-1", "does-not-exist")],
        }

        result = await codec.import_json(json.dumps(document))

        assert not result.success
        assert result.errors == ["Payment pay-1: provider 'does-not-exist' was not imported"]
        assert result.payments_created == 0
        assert payment_store.records() == []
        assert [p.name for p in provider_store.records()] == ["Hetzner"]

    async def test_continues_past_failures(self, codec, payment_store):
        document = {
            "providers": [
                {"id": "bad"},
                "not an object",
                {"id": "old-1", "name": "Hetzner"},
            ],
            "payments": [
                _payment("neg", "old-1", amount=-1),
                _payment("orphan", "bad"),
                _payment("ok", "old-1"),
                42,
            ],
        }

        result = await codec.import_json(json.dumps(document))

        assert result.providers_created == 1
        assert result.payments_created == 1
        assert len(result.errors) == 5
        assert result.errors[0].startswith("Provider 'bad':")
        assert result.errors[1].startswith("Provider 'None':")
        assert result.errors[2].startswith("Payment neg:")
        assert result.errors[3] == "Payment orphan: provider 'bad' was not imported"
        assert len(payment_store.records()) == 1

    async def test_duplicate_payments_per_server_are_kept(self, codec, payment_store):
        document = {
            "providers": [{"id": "old-1", "name": "Hetzner"}],
            "payments": [_payment("a", "old-1"), _payment("b", "old-1")],
        }

        result = await codec.import_json(json.dumps(document))

        assert result.success
        assert len(payment_store.records()) == 2

    async def test_absent_arrays_are_empty(self, codec):
        result = await codec.import_json("{}")
        assert result.success
        assert result.providers_created == 0

    async def test_remote_failure_is_per_entity(self, backend, codec):
        backend.config.fail_operations = True
        result = await codec.import_json(json.dumps({"providers": [{"id": "x", "name": "Hetzner"}]}))

        assert not result.success
        assert result.errors[0].startswith("Provider 'Hetzner':")

    @pytest.mark.parametrize("text", [
        "not json",
        "[]",
        '"a string"',
        '{"providers": {}}',
        '{"payments": "nope"}',
    ])
    async def test_malformed_document(self, codec, text):
        with pytest.raises(ParseError):
            await codec.import_json(text)

    async def test_round_trip_into_fresh_backend(self, codec, provider_store, payment_store):
        provider = await provider_store.create({"name": "Hetzner", "url": "https://hetzner.com"})
        await payment_store.create({
            "server_id": "srv-1", "provider_id": provider.id, "next_payment": "2024-07-01",
            "amount": 5, "currency": "EUR", "period": "quarterly", "notes": "yearly discount",
        })
        exported = codec.export_json()

        target_providers, target_payments = simulator_connectors(SimulatorBackend())
        target = ImportExportCodec(RecordReconciler(target_providers), RecordReconciler(target_payments))
        result = await target.import_json(exported)

        assert result.success
        (imported,) = target.payment_store.records()
        (imported_provider,) = target.provider_store.records()
        assert imported.provider_id == imported_provider.id
        assert imported.notes == "yearly discount"
        assert imported.period == "quarterly"
