from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from .config import DEFAULT_MINIMUM_PAYMENT_PERCENTAGE
from .exceptions import ValidationError, ValidationIssue
from .models import StaffSnapshot, User
from .models_orders import Order, OrderDraft, OrderStatus, PaymentStatus


def new_receipt_id(now: datetime | None = None) -> str:
    stamp = now or datetime.now(timezone.utc)
    millis = str(int(stamp.timestamp() * 1000))
    return f"RCP-{millis[-6:]}"


def validate_minimum_percentage(value: int, field: str = "minimum_payment_percentage") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        _raise_issue(None, field, "must be a whole number between 0 and 100")
    return value


def validate_order_draft(draft: OrderDraft | Mapping[str, Any]) -> OrderDraft:
    data = _coerce_draft(draft)
    issues: list[ValidationIssue] = []
    customer_name = data.customer_name.strip()
    if not customer_name:
        issues.append(ValidationIssue(field="customer_name", reason="customer name is required"))
    if not data.products:
        issues.append(ValidationIssue(field="products", reason="at least one product is required"))
    for index, item in enumerate(data.products):
        if item.quantity < 1:
            issues.append(ValidationIssue(field="quantity", reason="quantity must be at least 1", row_index=index))
        if item.unit_price < 0:
            issues.append(ValidationIssue(field="unit_price", reason="price cannot be negative", row_index=index))
    minimum = data.minimum_payment_percentage
    if minimum is not None and not 0 <= minimum <= 100:
        issues.append(
            ValidationIssue(field="minimum_payment_percentage", reason="must be between 0 and 100")
        )
    if issues:
        raise ValidationError(issues)
    phone = data.customer_phone.strip() if data.customer_phone else None
    return data.model_copy(update={"customer_name": customer_name, "customer_phone": phone or None})


def build_order(
    draft: OrderDraft | Mapping[str, Any],
    *,
    attendee: User,
    order_id: str | None = None,
    receipt_id: str | None = None,
    minimum_payment_percentage: int = DEFAULT_MINIMUM_PAYMENT_PERCENTAGE,
    now: datetime | None = None,
) -> Order:
    """Turn a validated draft into a fresh ``pending_payment`` order."""
    data = validate_order_draft(draft)
    stamp = now or datetime.now(timezone.utc)
    total = sum(item.line_total for item in data.products)
    minimum = data.minimum_payment_percentage
    return Order(
        id=order_id or str(uuid.uuid4()),
        receipt_id=receipt_id or new_receipt_id(stamp),
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        products=list(data.products),
        status=OrderStatus.PENDING_PAYMENT,
        payment_status=PaymentStatus.PENDING,
        total_amount=total,
        paid_amount=0,
        balance_amount=total,
        payment_history=[],
        minimum_payment_percentage=minimum if minimum is not None else minimum_payment_percentage,
        attendee_id=attendee.id,
        attendee=StaffSnapshot.from_user(attendee),
        shop_id=data.shop_id or attendee.shop_id,
        notes=data.notes,
        delivery_address=data.delivery_address,
        created_at=stamp,
        updated_at=stamp,
    )


def _coerce_draft(draft: OrderDraft | Mapping[str, Any]) -> OrderDraft:
    if isinstance(draft, OrderDraft):
        return draft
    try:
        return OrderDraft.model_validate(draft)
    except PydanticValidationError as exc:
        issues = []
        for error in exc.errors():
            loc = error.get("loc", ("draft",))
            row_index = loc[1] if len(loc) > 1 and loc[0] == "products" and isinstance(loc[1], int) else None
            field = str(loc[-1]) if row_index is not None else ".".join(str(part) for part in loc)
            issues.append(ValidationIssue(field=field, reason=error.get("msg", "invalid value"), row_index=row_index))
        raise ValidationError(issues) from None


def _raise_issue(row_index: int | None, field: str, reason: str) -> None:
    raise ValidationError([ValidationIssue(field=field, reason=reason, row_index=row_index)])
