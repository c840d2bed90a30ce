"""HTTP API exposing the billing dashboard data."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import Response

from .connectors import database_connectors
from .database import DatabaseManager
from .errors import FetchError, ParseError
from .models import favicon_url
from .services import BillingService

logger = logging.getLogger(__name__)


def _service(request: Request) -> BillingService:
    return request.app.state.service


def create_app(service: Optional[BillingService] = None) -> FastAPI:
    """Build the API app.

    Args:
        service: Service to expose. When omitted, a service over the local
            database at DATABASE_URL is created and owned by the app.
    """
    manager: Optional[DatabaseManager] = None
    if service is None:
        manager = DatabaseManager()
        service = BillingService.from_connectors(*database_connectors(manager))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manager is not None:
            await manager.initialize()
        await service.start()
        try:
            yield
        finally:
            await service.stop()
            if manager is not None:
                await manager.shutdown()

    app = FastAPI(title="Billing SDK - Payments Dashboard API", lifespan=lifespan)
    app.state.service = service

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        billing = _service(request)
        return {
            "status": "healthy",
            "service": "billing",
            "rates_source": billing.snapshot.source.value,
        }

    @app.get("/rates")
    async def get_rates(request: Request):
        billing = _service(request)
        return {**billing.snapshot.to_dict(), "loading": billing.rates.loading}

    @app.post("/rates/refresh")
    async def refresh_rates(request: Request):
        """Reload rates from upstream. Falls back silently on failure."""
        billing = _service(request)
        snapshot = await billing.rates.load_rates()
        return snapshot.to_dict()

    @app.get("/providers")
    async def list_providers(request: Request):
        providers = []
        for provider in _service(request).list_providers():
            data = provider.model_dump(mode="json", by_alias=True)
            data["domain"] = provider.domain
            data["faviconUrl"] = favicon_url(provider.domain)
            providers.append(data)
        return providers

    @app.get("/payments")
    async def list_payments(
        request: Request,
        sort: str = Query(default="date", description="Sort key: date, amount, days"),
        order: str = Query(default="asc", description="Sort order: asc, desc"),
        provider: Optional[str] = Query(default=None, description="Provider name filter"),
        server: Optional[str] = Query(default=None, description="Server name or id filter"),
    ):
        """
        List payments decorated for the dashboard table.

        Each row carries the provider name, payment link, days until due,
        urgency band and monthly cost in RUB.
        """
        if order not in ("asc", "desc"):
            raise HTTPException(status_code=400, detail="order must be one of: asc, desc")
        try:
            rows = _service(request).payment_rows(
                sort_by=sort,
                descending=order == "desc",
                provider_filter=provider,
                server_filter=server,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [row.model_dump(mode="json", by_alias=True) for row in rows]

    @app.post("/payments/{payment_id}/paid")
    async def mark_paid(payment_id: str, request: Request):
        """Advance a payment's due date by one period."""
        try:
            payment = await _service(request).mark_paid(payment_id)
        except FetchError as e:
            raise HTTPException(status_code=502, detail=str(e))
        if payment is None:
            raise HTTPException(status_code=404, detail=f"Payment {payment_id} not found")
        return payment.model_dump(mode="json", by_alias=True)

    @app.get("/summary")
    async def summary(request: Request):
        return _service(request).summary().model_dump()

    @app.get("/export")
    async def export(request: Request):
        content = _service(request).export_json()
        return Response(
            content=content,
            media_type="application/json",
            headers={"Content-Disposition": 'attachment; filename="billing-export.json"'},
        )

    @app.post("/import")
    async def import_document(request: Request):
        """
        Import a previously exported document.

        Providers get new ids and payments are re-linked to them. Entries
        that fail are reported in ``errors``; the rest are still imported.
        """
        body = await request.body()
        try:
            result = await _service(request).import_json(body.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise HTTPException(status_code=400, detail=f"Import document is not UTF-8: {e}")
        except ParseError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return result.model_dump()

    return app
