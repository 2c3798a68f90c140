from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal

from .exceptions import IllegalTransitionError, InvalidAmountError, PaymentThresholdError
from .models_orders import (
    Order,
    OrderPatch,
    OrderStatus,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
)

_PRE_CONFIRMATION_STATUSES = frozenset(
    {OrderStatus.PENDING_PAYMENT, OrderStatus.PARTIAL_PAYMENT, OrderStatus.PAID}
)
_CONFIRMABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.OVERPAID})


@dataclass(frozen=True)
class PaymentOutcome:
    paid_amount: int
    balance_amount: int
    payment_status: PaymentStatus
    history_entry: PaymentRecord

    def to_patch(self, order: Order) -> OrderPatch:
        changes: dict[str, object] = {
            "paid_amount": self.paid_amount,
            "balance_amount": self.balance_amount,
            "payment_status": self.payment_status,
            "payment_method": self.history_entry.method,
            "payment_history": [*order.payment_history, self.history_entry],
            "updated_at": self.history_entry.timestamp,
        }
        next_status = status_after_payment(order.status, self.payment_status)
        if next_status != order.status:
            changes["status"] = next_status
        return OrderPatch(**changes)


def format_naira(amount: int) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}₦{abs(amount):,}"


def derive_payment_status(total_amount: int, paid_amount: int) -> PaymentStatus:
    balance = total_amount - paid_amount
    if balance < 0:
        return PaymentStatus.OVERPAID
    if balance == 0:
        return PaymentStatus.PAID
    if paid_amount == 0:
        return PaymentStatus.PENDING
    return PaymentStatus.PARTIAL


def status_after_payment(status: OrderStatus, payment_status: PaymentStatus) -> OrderStatus:
    """Order status implied by a payment, before any human confirmation.

    Once an order is confirmed (or further along) more money does not move it.
    """
    if status not in _PRE_CONFIRMATION_STATUSES:
        return status
    if payment_status in _CONFIRMABLE_PAYMENT_STATUSES:
        return OrderStatus.PAID
    if payment_status == PaymentStatus.PARTIAL:
        return OrderStatus.PARTIAL_PAYMENT
    return OrderStatus.PENDING_PAYMENT


def default_reference(method: PaymentMethod, now: datetime) -> str:
    return f"{method.value.upper()}-{int(now.timestamp() * 1000)}"


def record_payment(
    order: Order,
    amount: int,
    method: PaymentMethod | str,
    reference: str | None = None,
    notes: str | None = None,
    *,
    recorded_by: str,
    allow_overpayment: bool = True,
    now: datetime | None = None,
) -> PaymentOutcome:
    """Compute the financial consequence of a payment; ``order`` is left untouched."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "amount must be a whole number of Naira")
    if amount <= 0:
        raise InvalidAmountError(amount)
    if order.is_terminal:
        raise IllegalTransitionError(order.status.value, "record_payment", f"order is already {order.status.value}")
    if not allow_overpayment and amount > order.balance_amount:
        raise InvalidAmountError(
            amount,
            f"amount cannot exceed balance of {format_naira(order.balance_amount)}",
        )

    payment_method = PaymentMethod(method)
    stamp = now or datetime.now(timezone.utc)
    new_paid = order.paid_amount + amount
    new_balance = order.total_amount - new_paid
    entry = PaymentRecord(
        id=str(uuid.uuid4()),
        amount=amount,
        method=payment_method,
        reference=reference or default_reference(payment_method, stamp),
        timestamp=stamp,
        recorded_by=recorded_by,
        notes=notes or None,
    )
    return PaymentOutcome(
        paid_amount=new_paid,
        balance_amount=new_balance,
        payment_status=derive_payment_status(order.total_amount, new_paid),
        history_entry=entry,
    )


def payment_percentage(order: Order) -> Decimal:
    if order.total_amount <= 0:
        return Decimal("100.0")
    ratio = Decimal(order.paid_amount) * 100 / Decimal(order.total_amount)
    # Truncated: 69.99% must not display as 70.0%.
    return ratio.quantize(Decimal("0.1"), rounding=ROUND_DOWN)


def can_proceed_with_partial(order: Order) -> bool:
    # Nothing owed on a zero-total order.
    if order.total_amount <= 0:
        return True
    return order.paid_amount * 100 >= order.minimum_payment_percentage * order.total_amount


def can_confirm_payment(order: Order) -> bool:
    if order.payment_status in _CONFIRMABLE_PAYMENT_STATUSES:
        return True
    return order.payment_status == PaymentStatus.PARTIAL and can_proceed_with_partial(order)


def confirm_payment(order: Order, *, now: datetime | None = None) -> OrderPatch:
    if order.payment_status == PaymentStatus.CONFIRMED:
        raise IllegalTransitionError(order.status.value, "confirm_payment", "payment is already confirmed")
    if not can_confirm_payment(order):
        if order.payment_status == PaymentStatus.PARTIAL:
            raise PaymentThresholdError(
                order.status.value,
                "confirm_payment",
                (
                    f"only {payment_percentage(order)}% paid; "
                    f"{order.minimum_payment_percentage}% is required before confirmation"
                ),
            )
        raise IllegalTransitionError(
            order.status.value,
            "confirm_payment",
            f"payment status {order.payment_status.value} cannot be confirmed",
        )
    stamp = now or datetime.now(timezone.utc)
    return OrderPatch(payment_status=PaymentStatus.CONFIRMED, payment_confirmed_at=stamp, updated_at=stamp)
