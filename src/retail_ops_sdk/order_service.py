"""Runs one caller action end to end.

Each call computes the change locally first (pure, fails fast), sends it to
the orders API, and only applies it to the ledger once the API accepted it. A
remote failure leaves the ledger exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from . import order_workflow
from .clients.orders_client import OrdersClient
from .clients.users_client import UsersClient
from .config import ClientConfig
from .exceptions import OrderFlowError, PermissionDeniedError, RemoteError, StaleOrderError, ValidationError
from .logger import get_logger, log_action
from .models import User, UserRole
from .models_orders import (
    FulfillmentAction,
    Order,
    OrderDraft,
    OrderPatch,
    OrderStatus,
    PaymentMethod,
    PaymentRequest,
    PaymentStatus,
    PaymentStatusUpdate,
)
from .order_ledger import OrderLedger
from .order_validation import build_order
from .payment_engine import format_naira, record_payment
from .session import ActorContext

_MODULE = "order_service"
# Fields the status endpoint cannot derive itself; sent alongside the new status.
_STATUS_EXTRA_FIELDS = (
    "packaging_started_at",
    "packaged_at",
    "out_for_delivery_at",
    "delivered_at",
    "cancelled_at",
    "refunded_at",
    "payment_status",
    "notes",
)


@dataclass(frozen=True)
class ActionResult:
    order: Order
    message: str


@dataclass
class OrderService:
    ledger: OrderLedger
    orders: OrdersClient
    actor: ActorContext
    users: UsersClient | None = None
    allow_overpayment: bool = True
    logger: logging.Logger = field(default_factory=lambda: get_logger("retail_ops_sdk.orders"))
    _staff: dict[str, User] = field(default_factory=dict)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        orders: OrdersClient,
        actor: ActorContext,
        users: UsersClient | None = None,
    ) -> "OrderService":
        return cls(
            ledger=OrderLedger(minimum_payment_percentage=config.minimum_payment_percentage),
            orders=orders,
            actor=actor,
            users=users,
            allow_overpayment=config.allow_overpayment,
        )

    def refresh(self) -> list[Order]:
        orders = self._remote("refresh", None, self.orders.list_orders)
        self.ledger.replace_all(orders)
        return orders

    def refresh_order(self, order_id: str) -> Order:
        order = self._remote("refresh_order", order_id, self.orders.get_order, order_id)
        return self.ledger.upsert(order)

    def load_staff(self) -> dict[str, User]:
        if self.users is None:
            return self._staff
        staff = self._remote("load_staff", None, self.users.list_users)
        self._staff = {user.id: user for user in staff}
        return self._staff

    def create_order(self, draft: OrderDraft | Mapping[str, Any]) -> ActionResult:
        action = "create_order"
        try:
            self._require_role(action, order_workflow.ORDER_ENTRY_ROLES)
            local = build_order(
                draft,
                attendee=self.actor.user,
                minimum_payment_percentage=self.ledger.minimum_payment_percentage,
            )
        except OrderFlowError as exc:
            self._log(action, None, f"rejected:{exc.code}")
            raise
        created = self._remote(action, None, self.orders.create_order, local)
        order = self.ledger.upsert(created)
        self._log(action, order.id, "success")
        return ActionResult(order, f"Order {order.receipt_id} created. Total {format_naira(order.total_amount)}.")

    def record_payment(
        self,
        order_id: str,
        amount: int,
        method: PaymentMethod | str,
        reference: str | None = None,
        notes: str | None = None,
    ) -> ActionResult:
        action = "record_payment"
        try:
            self._require_role(action, order_workflow.PAYMENT_ROLES)
            order = self.ledger.get(order_id)
            outcome = record_payment(
                order,
                amount,
                method,
                reference,
                notes,
                recorded_by=self.actor.id,
                allow_overpayment=self.allow_overpayment,
            )
        except OrderFlowError as exc:
            self._log(action, order_id, f"rejected:{exc.code}")
            raise
        entry = outcome.history_entry
        request = PaymentRequest(
            payment_amount=entry.amount,
            payment_method=entry.method,
            payment_reference=entry.reference,
            notes=entry.notes,
            recorded_by=self.actor.id,
        )
        summary = self._remote(action, order_id, self.orders.record_payment, order_id, request)
        updated = self._settle(action, order, outcome.to_patch(order))
        if updated is not None and summary.paid_amount != updated.paid_amount:
            self.logger.warning("payment totals diverged for order %s; refreshing", order_id)
            updated = None
        if updated is None:
            updated = self.refresh_order(order_id)
        self._log(action, order_id, "success")
        return ActionResult(updated, _payment_message(amount, updated))

    def advance(
        self,
        order_id: str,
        action: FulfillmentAction | str,
        assignee_id: str | None = None,
        notes: str | None = None,
    ) -> ActionResult:
        action_name = str(getattr(action, "value", action))
        stamp = datetime.now(timezone.utc)
        try:
            order = self.ledger.get(order_id)
            if _known_action(action) in _ASSIGN_ACTIONS and assignee_id and assignee_id not in self._staff:
                self.load_staff()
            patch = order_workflow.apply(
                order,
                action,
                assignee_id,
                users=self._staff,
                actor=self.actor.user,
                notes=notes,
                now=stamp,
            )
        except OrderFlowError as exc:
            self._log(action_name, order_id, f"rejected:{exc.code}")
            raise
        parsed = FulfillmentAction(action)
        remote = self._remote(parsed.value, order_id, self._dispatch, order, parsed, patch)
        updated = self._settle(parsed.value, order, patch)
        if updated is None:
            updated = self.refresh_order(order_id)
        elif remote is not None and remote.status != updated.status:
            self.logger.warning("server reported status %s for order %s", remote.status.value, order_id)
            updated = self.ledger.upsert(remote)
        self._log(parsed.value, order_id, "success")
        return ActionResult(updated, _advance_message(parsed, updated))

    def _settle(self, action: str, snapshot: Order, patch: OrderPatch) -> Order | None:
        """Apply ``patch`` after the server accepted it; ``None`` means refetch.

        A patch computed from a snapshot that changed in the meantime is not
        applied, so newer local state is never overwritten by it.
        """
        try:
            return self.ledger.apply_update(snapshot.id, patch, expected=snapshot)
        except (StaleOrderError, ValidationError) as exc:
            self.logger.warning("order %s changed during %s (%s); refreshing", snapshot.id, action, exc.code)
            return None

    def _dispatch(self, order: Order, action: FulfillmentAction, patch: OrderPatch) -> Order | None:
        if action == FulfillmentAction.CONFIRM_PAYMENT:
            update = PaymentStatusUpdate(
                status=OrderStatus.CONFIRMED,
                payment_status=PaymentStatus.CONFIRMED,
                payment_method=order.payment_method,
                receptionist_id=self.actor.id,
            )
            return self.orders.update_payment_status(order.id, update)
        if action == FulfillmentAction.ASSIGN_PACKAGER:
            return self.orders.assign_packager(order.id, patch.packager_id)
        if action == FulfillmentAction.ASSIGN_DELIVERY:
            return self.orders.assign_delivery(order.id, patch.storekeeper_id, patch.assigned_at)
        if action == FulfillmentAction.COMPLETE_ORDER:
            return self.orders.complete_order(order.id, self.actor.id)
        extra = patch.model_dump(
            mode="json",
            by_alias=True,
            include=set(_STATUS_EXTRA_FIELDS) & patch.model_fields_set,
        )
        return self.orders.update_status(order.id, patch.status, self.actor.id, extra=extra or None)

    def _require_role(self, action: str, allowed: frozenset[UserRole]) -> None:
        if self.actor.role not in allowed:
            raise PermissionDeniedError(action, self.actor.role.value)

    def _remote(self, action: str, order_id: str | None, call, *args):
        try:
            return call(*args)
        except RemoteError as exc:
            self._log(action, order_id, f"remote_error:{exc.code}", trace_id=exc.trace_id)
            raise

    def _log(self, action: str, order_id: str | None, outcome: str, trace_id: str | None = None) -> None:
        if trace_id is None and self.orders.http.last_operation is not None:
            trace_id = self.orders.http.last_operation.trace_id
        log_action(self.logger, _MODULE, action, self.actor.role.value, order_id, trace_id, outcome)


_ASSIGN_ACTIONS = frozenset({FulfillmentAction.ASSIGN_PACKAGER, FulfillmentAction.ASSIGN_DELIVERY})


def _known_action(action: FulfillmentAction | str) -> FulfillmentAction | None:
    try:
        return FulfillmentAction(action)
    except ValueError:
        return None


def _payment_message(amount: int, order: Order) -> str:
    if order.payment_status == PaymentStatus.PARTIAL:
        return (
            f"Partial payment of {format_naira(amount)} recorded. "
            f"Balance {format_naira(order.balance_amount)}."
        )
    if order.payment_status == PaymentStatus.OVERPAID:
        return (
            f"Payment of {format_naira(amount)} recorded. "
            f"Overpaid by {format_naira(-order.balance_amount)}."
        )
    return f"Payment of {format_naira(amount)} recorded. Order is fully paid."


def _advance_message(action: FulfillmentAction, order: Order) -> str:
    if action == FulfillmentAction.CONFIRM_PAYMENT:
        return f"Payment confirmed for order {order.receipt_id}."
    if action == FulfillmentAction.ASSIGN_PACKAGER and order.packager is not None:
        return f"Order {order.receipt_id} assigned to {order.packager.full_name or order.packager_id} for packaging."
    if action == FulfillmentAction.ASSIGN_DELIVERY and order.storekeeper is not None:
        return f"Order {order.receipt_id} assigned to {order.storekeeper.full_name or order.storekeeper_id} for delivery."
    label = order_workflow.status_display(order.status).label
    return f"Order {order.receipt_id} is now {label}."
