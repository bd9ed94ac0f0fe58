"""
FastAPI application for the lab case dashboard backend.

Exposes record CRUD with change tracking, the audit history, and
stateless previews of reconciliation and change detection for the
editing UI.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
import structlog

from .config import get_settings
from .exceptions import (
    ConflictError,
    ExchangeRateError,
    LabCasesError,
    RecordNotFoundError,
    RecordValidationError,
)
from .integrations.exchange_rate import ExchangeRateClient
from .logging_config import setup_logging
from .models import FIELD_LABELS, Actor, PaymentEntry
from .models.base import utc_now
from .reconciliation.currency import parse_amount
from .services.case_service import CaseService
from .storage import (
    InMemoryAuditStore,
    InMemoryRecordStore,
    SqlAuditStore,
    SqlRecordStore,
    create_store_engine,
)
from .tracking.diff import canonical
from .utils.method_matching import resolve_payment_method

logger = structlog.get_logger()
settings = get_settings()

setup_logging()

STATUS_BY_ERROR = {
    RecordNotFoundError: 404,
    ConflictError: 409,
    RecordValidationError: 422,
    ExchangeRateError: 502,
}


def build_service() -> CaseService:
    """Create the case service over the configured storage backend."""
    if settings.storage_backend == "sql":
        engine = create_store_engine(settings.database_url)
        return CaseService(SqlRecordStore(engine), SqlAuditStore(engine))
    return CaseService(InMemoryRecordStore(), InMemoryAuditStore())


# Request/Response models
class PaymentEntryModel(BaseModel):
    method: Optional[str] = None
    amount: Optional[Any] = None
    reference: Optional[str] = None


class CreateRecordRequest(BaseModel):
    fields: Dict[str, Any]


class UpdateRecordRequest(BaseModel):
    fields: Dict[str, Any]
    expected_version: Optional[int] = None


class ReconcileRequest(BaseModel):
    total_amount: Any
    exchange_rate: Optional[Any] = None
    payments: List[PaymentEntryModel] = Field(default_factory=list)


class DiffRequest(BaseModel):
    current: Dict[str, Any]
    proposed: Dict[str, Any]


class ChangeResponse(BaseModel):
    field: str
    field_label: str
    old_value: Optional[str]
    new_value: Optional[str]


def create_app(
    service: Optional[CaseService] = None,
    rate_client: Optional[ExchangeRateClient] = None,
) -> FastAPI:
    """Build the API around a case service and an exchange rate client."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting lab case API", storage_backend=settings.storage_backend)
        yield
        await app.state.rate_client.close()
        logger.info("Shutting down lab case API")

    app = FastAPI(
        title="Lab Cases",
        description="Seguimiento de cambios y conciliacion de pagos de casos",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service or build_service()
    app.state.rate_client = rate_client or ExchangeRateClient()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LabCasesError)
    async def handle_domain_error(request: Request, exc: LabCasesError):
        status_code = 500
        for error_type, code in STATUS_BY_ERROR.items():
            if isinstance(exc, error_type):
                status_code = code
                break
        if status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "details": exc.details},
        )

    def get_service(request: Request) -> CaseService:
        return request.app.state.service

    def get_actor(
        x_actor_id: Optional[str] = Header(None),
        x_actor_label: Optional[str] = Header(None),
    ) -> Actor:
        if not x_actor_id or not x_actor_id.strip():
            raise HTTPException(401, "X-Actor-Id header is required")
        label = x_actor_label if x_actor_label and x_actor_label.strip() else x_actor_id
        return Actor(id=x_actor_id.strip(), label=label.strip())

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": utc_now().isoformat()}

    @app.post("/api/records", status_code=201)
    async def create_record(
        body: CreateRecordRequest,
        request: Request,
        actor: Actor = Depends(get_actor),
        service: CaseService = Depends(get_service),
    ):
        fields = dict(body.fields)
        if parse_amount(fields.get("exchange_rate")) <= 0:
            # Snapshot the current rate onto the new record
            fields["exchange_rate"] = str(await request.app.state.rate_client.get_rate())

        record = await run_in_threadpool(service.create_record, actor, fields)
        return {
            "record": record.to_dict(),
            "payment": service.payment_summary(record).to_dict(),
        }

    @app.get("/api/records/{record_id}")
    def get_record(record_id: str, service: CaseService = Depends(get_service)):
        record = service.get_record(record_id)
        return {
            "record": record.to_dict(),
            "payment": service.payment_summary(record).to_dict(),
        }

    @app.patch("/api/records/{record_id}")
    def update_record(
        record_id: str,
        body: UpdateRecordRequest,
        actor: Actor = Depends(get_actor),
        service: CaseService = Depends(get_service),
    ):
        outcome = service.update_record(
            record_id,
            actor,
            body.fields,
            expected_version=body.expected_version,
        )
        return {
            "record": outcome.record.to_dict(),
            "changes": [_change_response(c) for c in outcome.changes],
            "payment": outcome.payment.to_dict() if outcome.payment else None,
        }

    @app.delete("/api/records/{record_id}", status_code=204)
    def delete_record(
        record_id: str,
        actor: Actor = Depends(get_actor),
        service: CaseService = Depends(get_service),
    ):
        service.delete_record(record_id, actor)

    @app.get("/api/records/{record_id}/history")
    def get_history(record_id: str, service: CaseService = Depends(get_service)):
        entries = service.history(record_id)
        return {
            "record_id": record_id,
            "entries": [entry.to_dict() for entry in entries],
            "summary": service.reader.summary(record_id),
        }

    @app.post("/api/payments/reconcile")
    def reconcile_payments(
        body: ReconcileRequest,
        service: CaseService = Depends(get_service),
    ):
        entries = [
            PaymentEntry(
                method=resolve_payment_method(p.method),
                amount=parse_amount(p.amount),
                reference=p.reference,
            )
            for p in body.payments
        ]
        rate = parse_amount(body.exchange_rate) if body.exchange_rate is not None else None
        result = service.reconciler.reconcile(body.total_amount, entries, rate)
        return result.to_dict()

    @app.post("/api/tracking/diff")
    def diff_preview(
        body: DiffRequest,
        service: CaseService = Depends(get_service),
    ):
        changes = service.detector.diff(body.current, body.proposed, FIELD_LABELS)
        return {"changes": [_change_response(c) for c in changes]}

    return app


def _change_response(change) -> Dict[str, Any]:
    return ChangeResponse(
        field=change.field,
        field_label=change.field_label,
        old_value=canonical(change.old_value),
        new_value=canonical(change.new_value),
    ).model_dump()


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "labcases.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.app_debug,
    )
