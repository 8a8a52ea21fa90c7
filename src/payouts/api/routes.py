"""FastAPI routes for the Payouts domain — disbursements and settlements."""

import json
import os
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query
from protean.utils.globals import current_domain

from payouts.api.schemas import (
    ApprovalOutcomeSchema,
    ApprovalRequest,
    ApprovalResponse,
    BulkCreatedResponse,
    ConfigureProviderRequest,
    CreateBulkDisbursementsRequest,
    CreateDisbursementRequest,
    DisbursementCreatedResponse,
    DisbursementPageResponse,
    DisbursementSchema,
    DisbursementStatsResponse,
    ProcessingResponse,
    ProviderCallbackRequest,
    ProviderConfigResponse,
    ReconciliationResponse,
    StatusResponse,
    VerificationResponse,
)
from payouts.disbursement.approval import ProcessDisbursementApprovals
from payouts.disbursement.creation import CreateBulkDisbursements, CreateDisbursement
from payouts.disbursement.disbursement import Disbursement
from payouts.disbursement.processing import ProcessDisbursement, RetryDisbursement
from payouts.disbursement.queries import DisbursementFilters, get_disbursement_stats, get_disbursements
from payouts.disbursement.verification import HandleProviderCallback, VerifyDisbursement
from payouts.provider import get_provider
from payouts.provider.fake_adapter import FakePayoutProvider
from payouts.settlement.reconciliation import ReconcileSettlements

# ---------------------------------------------------------------------------
# Disbursement Router
# ---------------------------------------------------------------------------
disbursement_router = APIRouter(prefix="/disbursements", tags=["disbursements"])

# Handlers that can reach the payout provider are plain ``def``; the provider
# client is synchronous httpx, so FastAPI runs them in its threadpool.


@disbursement_router.post("", status_code=201, response_model=DisbursementCreatedResponse)
def create_disbursement(body: CreateDisbursementRequest) -> DisbursementCreatedResponse:
    command = CreateDisbursement(
        disbursement_type=body.type,
        amount=body.amount,
        currency=body.currency,
        recipient_phone=body.recipient_phone,
        recipient_name=body.recipient_name,
        reference=body.reference,
        description=body.description,
        metadata=json.dumps(body.metadata) if body.metadata is not None else None,
        requires_approval=body.requires_approval,
        scheduled_for=body.scheduled_for,
        created_by=body.created_by,
    )
    disbursement_id = current_domain.process(command, asynchronous=False)

    disbursement = current_domain.repository_for(Disbursement).get(disbursement_id)
    return DisbursementCreatedResponse(
        disbursement_id=disbursement_id,
        reference=disbursement.reference,
        status=disbursement.status,
        requires_approval=disbursement.requires_approval,
    )


@disbursement_router.post("/bulk", status_code=201, response_model=BulkCreatedResponse)
def create_bulk_disbursements(body: CreateBulkDisbursementsRequest) -> BulkCreatedResponse:
    command = CreateBulkDisbursements(
        disbursements=json.dumps(body.disbursements, default=str),
        description=body.description,
        scheduled_for=body.scheduled_for,
        requires_approval=body.requires_approval,
        metadata=json.dumps(body.metadata) if body.metadata is not None else None,
        created_by=body.created_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return BulkCreatedResponse(
        batch_id=result.batch_id,
        total_disbursements=len(result.disbursement_ids),
        disbursement_ids=result.disbursement_ids,
    )


@disbursement_router.post("/approvals", response_model=ApprovalResponse)
def process_approvals(body: ApprovalRequest) -> ApprovalResponse:
    command = ProcessDisbursementApprovals(
        disbursement_ids=json.dumps(body.disbursement_ids),
        action=body.action,
        approver_id=body.approver_id,
        note=body.note,
    )
    outcomes = current_domain.process(command, asynchronous=False)
    return ApprovalResponse(
        succeeded=sum(1 for o in outcomes if o.success),
        failed=sum(1 for o in outcomes if not o.success),
        results=[ApprovalOutcomeSchema.model_validate(o) for o in outcomes],
    )


@disbursement_router.get("", response_model=DisbursementPageResponse)
async def list_disbursements(
    type: str | None = None,  # noqa: A002
    status: str | None = None,
    recipient_phone: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    min_amount: float | None = None,
    max_amount: float | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> DisbursementPageResponse:
    result = get_disbursements(
        DisbursementFilters(
            disbursement_type=type,
            status=status,
            recipient_phone=recipient_phone,
            start_date=start_date,
            end_date=end_date,
            min_amount=min_amount,
            max_amount=max_amount,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    )
    return DisbursementPageResponse(
        disbursements=[DisbursementSchema.model_validate(d) for d in result.disbursements],
        page=result.page,
        limit=result.limit,
        total=result.total,
        total_pages=result.total_pages,
    )


@disbursement_router.get("/stats", response_model=DisbursementStatsResponse)
async def disbursement_stats(
    start_date: datetime | None = None, end_date: datetime | None = None
) -> DisbursementStatsResponse:
    return DisbursementStatsResponse.model_validate(get_disbursement_stats(start_date, end_date))


@disbursement_router.post("/callbacks/provider", response_model=StatusResponse)
def provider_callback(body: ProviderCallbackRequest) -> StatusResponse:
    command = HandleProviderCallback(
        provider_transaction_id=body.provider_transaction_id,
        status=body.status,
        reason=body.reason,
    )
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


@disbursement_router.post("/provider/configure", response_model=ProviderConfigResponse)
async def configure_provider(body: ConfigureProviderRequest) -> ProviderConfigResponse:
    """Configure the FakePayoutProvider behaviour (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Provider configuration not available in production")

    provider = get_provider()
    if not isinstance(provider, FakePayoutProvider):
        raise HTTPException(status_code=400, detail="Provider configuration only available for FakePayoutProvider")

    provider.configure(outcome=body.outcome, failure_reason=body.failure_reason)
    return ProviderConfigResponse(
        provider=provider.name,
        outcome=provider.outcome,
        failure_reason=provider.failure_reason,
    )


@disbursement_router.get("/{disbursement_id}", response_model=DisbursementSchema)
async def get_disbursement(disbursement_id: str) -> DisbursementSchema:
    return DisbursementSchema.model_validate(current_domain.repository_for(Disbursement).get(disbursement_id))


@disbursement_router.post("/{disbursement_id}/process", response_model=ProcessingResponse)
def process_disbursement(disbursement_id: str) -> ProcessingResponse:
    result = current_domain.process(ProcessDisbursement(disbursement_id=disbursement_id), asynchronous=False)
    return ProcessingResponse.model_validate(result)


@disbursement_router.post("/{disbursement_id}/retry", response_model=ProcessingResponse)
def retry_disbursement(disbursement_id: str) -> ProcessingResponse:
    result = current_domain.process(RetryDisbursement(disbursement_id=disbursement_id), asynchronous=False)
    return ProcessingResponse.model_validate(result)


@disbursement_router.get("/{disbursement_id}/verify", response_model=VerificationResponse)
def verify_disbursement(disbursement_id: str) -> VerificationResponse:
    result = current_domain.process(VerifyDisbursement(disbursement_id=disbursement_id), asynchronous=False)
    return VerificationResponse.model_validate(result)


# ---------------------------------------------------------------------------
# Settlement Router
# ---------------------------------------------------------------------------
settlement_router = APIRouter(prefix="/settlements", tags=["settlements"])


@settlement_router.post("/reconcile", response_model=ReconciliationResponse)
def reconcile_settlements(limit: int = Query(100, ge=1, le=1000)) -> ReconciliationResponse:
    result = current_domain.process(ReconcileSettlements(limit=limit), asynchronous=False)
    return ReconciliationResponse.model_validate(result)
