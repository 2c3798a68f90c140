from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timezone
from typing import Any

from .config import DEFAULT_MINIMUM_PAYMENT_PERCENTAGE
from .exceptions import NotFoundError, StaleOrderError, ValidationError, ValidationIssue
from .models import User
from .models_orders import Order, OrderDraft, OrderPatch
from .order_validation import build_order, validate_minimum_percentage

OrderPredicate = Callable[[Order], bool]


class OrderLedger:
    """In-memory set of orders; every mutation goes through :meth:`apply_update`.

    Snapshots are frozen pydantic models, so handing them out is safe. Writes
    to the same order are serialized by a per-order lock.
    """

    def __init__(self, minimum_payment_percentage: int = DEFAULT_MINIMUM_PAYMENT_PERCENTAGE) -> None:
        self.minimum_payment_percentage = validate_minimum_percentage(minimum_payment_percentage)
        self._orders: dict[str, Order] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def _lock_for(self, order_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(order_id)
            if lock is None:
                lock = self._locks[order_id] = threading.Lock()
            return lock

    def create(
        self,
        draft: OrderDraft | Mapping[str, Any],
        *,
        attendee: User,
        order_id: str | None = None,
        receipt_id: str | None = None,
        now: datetime | None = None,
    ) -> Order:
        order = build_order(
            draft,
            attendee=attendee,
            order_id=order_id,
            receipt_id=receipt_id,
            minimum_payment_percentage=self.minimum_payment_percentage,
            now=now,
        )
        with self._lock_for(order.id):
            if order.id in self._orders:
                raise ValidationError([ValidationIssue(field="id", reason=f"order {order.id} already exists")])
            self._orders[order.id] = order
        return order

    def get(self, order_id: str) -> Order:
        try:
            return self._orders[order_id]
        except KeyError:
            raise NotFoundError(order_id) from None

    def list(self, predicate: OrderPredicate | None = None) -> Iterator[Order]:
        """Yield orders present at call time; call again for a fresh pass."""
        order_ids = [*self._orders]
        return self._iterate(order_ids, predicate)

    def _iterate(self, order_ids: list[str], predicate: OrderPredicate | None) -> Iterator[Order]:
        for order_id in order_ids:
            order = self._orders.get(order_id)
            if order is None:
                continue
            if predicate is None or predicate(order):
                yield order

    def apply_update(
        self,
        order_id: str,
        patch: OrderPatch,
        *,
        now: datetime | None = None,
        expected: Order | None = None,
    ) -> Order:
        """Merge ``patch`` into the stored order.

        With ``expected``, the patch only lands if the stored order still equals
        that snapshot; otherwise :class:`StaleOrderError` is raised.
        """
        with self._lock_for(order_id):
            current = self.get(order_id)
            if expected is not None and current != expected:
                raise StaleOrderError(order_id)
            changes = patch.changes()
            _check_payment_totals(current, changes)
            changes.setdefault("updated_at", now or datetime.now(timezone.utc))
            updated = current.model_copy(update=changes)
            balance = updated.total_amount - updated.paid_amount
            if updated.balance_amount != balance:
                updated = updated.model_copy(update={"balance_amount": balance})
            self._orders[order_id] = updated
            return updated

    def upsert(self, order: Order) -> Order:
        with self._lock_for(order.id):
            self._orders[order.id] = order
            return order

    def replace_all(self, orders: Iterable[Order]) -> None:
        fresh = {order.id: order for order in orders}
        with self._registry_lock:
            self._orders = fresh


def _check_payment_totals(current: Order, changes: dict[str, Any]) -> None:
    if "payment_history" not in changes and "paid_amount" not in changes:
        return
    history = changes.get("payment_history", current.payment_history)
    _check_history_append_only(current.payment_history, history)
    recorded = sum(record.amount for record in history[len(current.payment_history) :])
    claimed = changes.get("paid_amount", current.paid_amount) - current.paid_amount
    if claimed != recorded:
        raise ValidationError(
            [
                ValidationIssue(
                    field="paid_amount",
                    reason=f"paid amount moved by {claimed} but new payment history adds {recorded}",
                )
            ]
        )


def _check_history_append_only(previous: list[Any], history: list[Any]) -> None:
    if len(history) < len(previous) or [record.id for record in history[: len(previous)]] != [
        record.id for record in previous
    ]:
        raise ValidationError(
            [ValidationIssue(field="payment_history", reason="payment history is append-only")]
        )
