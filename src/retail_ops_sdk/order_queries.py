"""Filters and counters behind the payment desk and order list screens."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone

from .models_orders import Order, OrderStatus, PaymentStatus

_AWAITING_PAYMENT = frozenset({PaymentStatus.PENDING, PaymentStatus.PARTIAL})
_PROCESSED = frozenset({PaymentStatus.PAID, PaymentStatus.OVERPAID, PaymentStatus.CONFIRMED})


@dataclass(frozen=True)
class PaymentDeskSummary:
    total_pending: int
    total_outstanding: int
    partial_payments: int
    paid_orders: int
    today_processed: int


def by_status(*statuses: OrderStatus | str) -> Callable[[Order], bool]:
    wanted = frozenset(OrderStatus(status) for status in statuses)
    return lambda order: order.status in wanted


def by_payment_status(*statuses: PaymentStatus | str) -> Callable[[Order], bool]:
    wanted = frozenset(PaymentStatus(status) for status in statuses)
    return lambda order: order.payment_status in wanted


def search_orders(orders: Iterable[Order], term: str | None) -> list[Order]:
    needle = (term or "").strip().lower()
    if not needle:
        return list(orders)
    matches = []
    for order in orders:
        haystack = (order.receipt_id, order.customer_name, order.customer_phone or "")
        if any(needle in value.lower() for value in haystack):
            matches.append(order)
    return matches


def partial_payment_orders(orders: Iterable[Order]) -> list[Order]:
    return [
        order
        for order in orders
        if order.payment_status == PaymentStatus.PARTIAL
        or (order.payment_status == PaymentStatus.PENDING and order.paid_amount > 0)
    ]


def payment_desk_summary(orders: Iterable[Order], today: date | None = None) -> PaymentDeskSummary:
    snapshot = list(orders)
    day = today or datetime.now(timezone.utc).date()
    awaiting = [order for order in snapshot if order.payment_status in _AWAITING_PAYMENT and not order.is_terminal]
    return PaymentDeskSummary(
        total_pending=len(awaiting),
        total_outstanding=sum(max(order.balance_amount, 0) for order in awaiting),
        partial_payments=sum(1 for order in snapshot if order.payment_status == PaymentStatus.PARTIAL),
        paid_orders=sum(
            1 for order in snapshot if order.payment_status in {PaymentStatus.PAID, PaymentStatus.OVERPAID}
        ),
        today_processed=sum(
            1 for order in snapshot if order.payment_status in _PROCESSED and order.created_at.date() == day
        ),
    )
