"""
Simple dashboard usage example. Two stores are kept in sync with an in-memory
realtime backend; a second client's change shows up without a refresh.
"""
import asyncio
from datetime import date, timedelta

from billing_sdk.connectors import RealtimeAction, SimulatorBackend, simulator_connectors
from billing_sdk.services import BillingService

async def run():
    backend = SimulatorBackend()
    service = BillingService.from_connectors(*simulator_connectors(backend))
    # Live rates need network access; without it the fallback rates are used
    await service.start()

    provider = await service.create_provider({"name": "Hetzner", "url": "https://accounts.hetzner.com"})
    await service.create_payment({
        "server_id": "srv-1",
        "provider_id": provider.id,
        "period": "monthly",
        "next_payment": (date.today() + timedelta(days=3)).isoformat(),
        "amount": 1000,
        "currency": "RUB",
    })

    # Another client adds an annual USD bill
    backend.push_external("payments", RealtimeAction.CREATE, {
        "id": "other-client-1",
        "system": "srv-2",
        "provider": provider.id,
        "period": "annual",
        "nextPayment": (date.today() + timedelta(days=40)).isoformat() + " 00:00:00.000Z",
        "amount": 120,
        "currency": "USD",
        "country": "",
        "providerUrlOverride": "",
        "notes": "",
    })

    for row in service.payment_rows(sort_by="amount", descending=True):
        print(f"{row.payment.server_id}: {row.monthly_base:.2f} RUB/month, due in {row.days_until} days ({row.urgency})")
    print("Summary:", service.summary().model_dump_json())
    print("Export:", service.export_json())

    await service.stop()

if __name__ == "__main__":
    asyncio.run(run())
