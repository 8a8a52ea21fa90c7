"""Pydantic request/response schemas for the Payouts API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DisbursementRequestSchema(BaseModel):
    type: str = Field(description="MERCHANT_PAYOUT, CUSTOMER_REFUND, ADMIN_PAYOUT, COMMISSION_PAYOUT or BONUS_PAYOUT")
    amount: float
    currency: str | None = None
    recipient_phone: str
    recipient_name: str
    reference: str | None = None
    description: str | None = None
    metadata: dict | None = None
    requires_approval: bool | None = None
    scheduled_for: datetime | None = None


class CreateDisbursementRequest(DisbursementRequestSchema):
    created_by: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "MERCHANT_PAYOUT",
                    "amount": 15000,
                    "recipient_phone": "0788123456",
                    "recipient_name": "Kigali Bites",
                    "created_by": "admin-001",
                }
            ]
        }
    }


class CreateBulkDisbursementsRequest(BaseModel):
    disbursements: list[dict]
    description: str | None = None
    scheduled_for: datetime | None = None
    requires_approval: bool | None = None
    metadata: dict | None = None
    created_by: str


class DisbursementCreatedResponse(BaseModel):
    disbursement_id: str
    reference: str
    status: str
    requires_approval: bool


class BulkCreatedResponse(BaseModel):
    batch_id: str
    total_disbursements: int
    disbursement_ids: list[str]


class ApprovalRequest(BaseModel):
    disbursement_ids: list[str] = Field(min_length=1)
    action: Literal["APPROVE", "REJECT"]
    approver_id: str
    note: str | None = None


class ApprovalOutcomeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    disbursement_id: str
    success: bool
    status: str | None = None
    message: str | None = None


class ApprovalResponse(BaseModel):
    succeeded: int
    failed: int
    results: list[ApprovalOutcomeSchema]


class ProcessingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    disbursement_id: str
    status: str
    provider_transaction_id: str | None = None
    failure_reason: str | None = None
    failure_retryable: bool | None = None
    deferred: bool = False
    already_completed: bool = False


class VerificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    status: str | None = None
    failure_reason: str | None = None
    provider_status: str | None = None


class DisbursementSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    disbursement_type: str
    amount: float
    currency: str
    recipient_phone: str
    recipient_name: str
    reference: str
    description: str | None = None
    status: str
    requires_approval: bool
    provider_transaction_id: str | None = None
    failure_reason: str | None = None
    failure_retryable: bool | None = None
    attempt_count: int = 0
    scheduled_for: datetime | None = None
    created_by: str
    approved_by: str | None = None
    created_at: datetime
    processed_at: datetime | None = None
    completed_at: datetime | None = None


class DisbursementPageResponse(BaseModel):
    disbursements: list[DisbursementSchema]
    page: int
    limit: int
    total: int
    total_pages: int


class BreakdownSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    count: int
    amount: float


class DisbursementStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_disbursements: int
    total_amount: float
    successful_disbursements: int
    failed_disbursements: int
    pending_disbursements: int
    success_rate: float
    average_amount: float
    by_type: dict[str, BreakdownSchema]
    by_status: dict[str, BreakdownSchema]


class ProviderCallbackRequest(BaseModel):
    provider_transaction_id: str = Field(validation_alias="ref")
    status: str
    reason: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ReconciliationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    examined: int
    disbursed: list[str]
    still_pending: list[str]
    below_threshold: list[str] = []


class ConfigureProviderRequest(BaseModel):
    outcome: Literal["success", "pending", "reject", "error", "timeout_after_send"] = "success"
    failure_reason: str | None = None


class ProviderConfigResponse(BaseModel):
    provider: str
    outcome: str
    failure_reason: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
