"""Disbursement request validation.

Every field error is collected before anything is created, so a caller gets
the full list in one ``ValidationError``. Bulk batches are validated item by
item with the item index in the error key.
"""

import re
from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ValidationError

from payouts.disbursement.disbursement import DisbursementType
from shared.settings import get_settings

PHONE_PATTERN = re.compile(r"^(\+?25[0-9]|0)[0-9]{8,9}$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


@dataclass(frozen=True)
class DisbursementRequest:
    """A validated, normalised request to move money."""

    disbursement_type: DisbursementType
    amount: float
    currency: str
    recipient_phone: str
    recipient_name: str
    reference: str | None = None
    description: str | None = None
    metadata: dict | None = None
    requires_approval: bool | None = None
    scheduled_for: datetime | None = None


def normalize_phone(phone: str | None) -> str:
    return re.sub(r"\s+", "", phone or "")


def _field_errors(data: dict) -> tuple[dict[str, list[str]], dict]:
    settings = get_settings()
    errors: dict[str, list[str]] = {}
    cleaned: dict = {}

    raw_type = data.get("type") or data.get("disbursement_type")
    try:
        cleaned["disbursement_type"] = DisbursementType(raw_type)
    except ValueError:
        allowed = ", ".join(t.value for t in DisbursementType)
        errors["type"] = [f"Unknown disbursement type '{raw_type}'. Expected one of: {allowed}"]

    amount = data.get("amount")
    if not isinstance(amount, int | float) or isinstance(amount, bool):
        errors["amount"] = ["Amount must be a number"]
    elif amount <= 0:
        errors["amount"] = ["Amount must be greater than zero"]
    elif amount < settings.min_disbursement_amount:
        errors["amount"] = [f"Amount must be at least {settings.min_disbursement_amount:,.0f}"]
    elif amount > settings.max_disbursement_amount:
        errors["amount"] = [f"Amount cannot exceed {settings.max_disbursement_amount:,.0f}"]
    else:
        cleaned["amount"] = round(float(amount), 2)

    currency = (data.get("currency") or settings.default_currency).upper()
    if not CURRENCY_PATTERN.match(currency):
        errors["currency"] = ["Currency must be a 3-letter code"]
    cleaned["currency"] = currency

    phone = normalize_phone(data.get("recipient_phone"))
    if not PHONE_PATTERN.match(phone):
        errors["recipient_phone"] = ["Invalid phone number format"]
    cleaned["recipient_phone"] = phone

    name = (data.get("recipient_name") or "").strip()
    if not 2 <= len(name) <= 100:
        errors["recipient_name"] = ["Recipient name must be between 2 and 100 characters"]
    cleaned["recipient_name"] = name

    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        errors["metadata"] = ["Metadata must be an object"]

    for key in ("reference", "description", "requires_approval", "scheduled_for"):
        cleaned[key] = data.get(key)
    cleaned["metadata"] = metadata

    return errors, cleaned


def validate_request(data: dict) -> DisbursementRequest:
    errors, cleaned = _field_errors(data)
    if errors:
        raise ValidationError(errors)
    return DisbursementRequest(**cleaned)


def validate_batch(items: list[dict], batch_overrides: dict | None = None) -> list[DisbursementRequest]:
    """Validate a whole batch; batch-level values override the items' own.

    Nothing is returned unless every item is valid.
    """
    settings = get_settings()
    if not items:
        raise ValidationError({"disbursements": ["At least one disbursement is required"]})
    if len(items) > settings.max_bulk_disbursements:
        raise ValidationError(
            {"disbursements": [f"A batch can hold at most {settings.max_bulk_disbursements} disbursements"]}
        )

    overrides = {k: v for k, v in (batch_overrides or {}).items() if v is not None}
    errors: dict[str, list[str]] = {}
    requests = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"disbursements[{index}]"] = ["Must be an object"]
            continue
        item_metadata = item.get("metadata")
        if item_metadata is not None and not isinstance(item_metadata, dict):
            errors[f"disbursements[{index}].metadata"] = ["Metadata must be an object"]
            continue

        merged = {**item, **overrides}
        if "metadata" in overrides:
            merged["metadata"] = {**(item_metadata or {}), **overrides["metadata"]}

        item_errors, cleaned = _field_errors(merged)
        for field, messages in item_errors.items():
            errors[f"disbursements[{index}].{field}"] = messages
        if not item_errors:
            requests.append(DisbursementRequest(**cleaned))

    if errors:
        raise ValidationError(errors)
    return requests
