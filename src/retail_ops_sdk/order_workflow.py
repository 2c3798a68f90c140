"""Order fulfillment state machine.

Every function here is pure: it reads an :class:`Order` snapshot and returns
either the legal actions or an :class:`OrderPatch` for
``OrderLedger.apply_update``. Nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Mapping

from .exceptions import (
    IllegalTransitionError,
    MissingAssignmentError,
    PermissionDeniedError,
)
from .models import StaffSnapshot, User, UserRole
from .models_orders import (
    FulfillmentAction,
    Order,
    OrderPatch,
    OrderStatus,
    PaymentStatus,
)
from .payment_engine import confirm_payment

S = OrderStatus
A = FulfillmentAction


@dataclass(frozen=True)
class Transition:
    action: FulfillmentAction
    sources: frozenset[OrderStatus]
    target: OrderStatus
    label: str
    assignee_role: UserRole | None = None
    stamps: tuple[str, ...] = ()


@dataclass(frozen=True)
class NextAction:
    action: FulfillmentAction
    label: str
    requires_assignment: bool
    required_role: UserRole | None = None


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    progress: int


TRANSITIONS: tuple[Transition, ...] = (
    Transition(A.CONFIRM_PAYMENT, frozenset({S.PARTIAL_PAYMENT, S.PAID}), S.CONFIRMED, "Confirm Payment"),
    Transition(
        A.ASSIGN_PACKAGER,
        frozenset({S.CONFIRMED}),
        S.ASSIGNED_PACKAGER,
        "Assign to Packager",
        assignee_role=UserRole.PACKAGER,
        stamps=("assigned_to_packager_at",),
    ),
    Transition(
        A.START_PACKAGING,
        frozenset({S.ASSIGNED_PACKAGER}),
        S.PACKAGING,
        "Start Packaging",
        stamps=("packaging_started_at",),
    ),
    Transition(
        A.COMPLETE_PACKAGING,
        frozenset({S.PACKAGING}),
        S.PACKAGED,
        "Complete Packaging",
        stamps=("packaged_at",),
    ),
    Transition(A.READY_FOR_PICKUP, frozenset({S.PACKAGED}), S.READY_FOR_PICKUP, "Ready for Pickup"),
    Transition(
        A.ASSIGN_DELIVERY,
        frozenset({S.PACKAGED}),
        S.ASSIGNED_DELIVERY,
        "Assign for Delivery",
        assignee_role=UserRole.STOREKEEPER,
        stamps=("assigned_to_delivery_at",),
    ),
    Transition(
        A.MARK_PICKED_UP,
        frozenset({S.READY_FOR_PICKUP}),
        S.PICKED_UP,
        "Mark as Picked Up",
        stamps=("delivered_at",),
    ),
    Transition(
        A.START_DELIVERY,
        frozenset({S.ASSIGNED_DELIVERY}),
        S.OUT_FOR_DELIVERY,
        "Start Delivery",
        stamps=("out_for_delivery_at",),
    ),
    Transition(
        A.MARK_DELIVERED,
        frozenset({S.OUT_FOR_DELIVERY}),
        S.DELIVERED,
        "Mark as Delivered",
        stamps=("delivered_at",),
    ),
    Transition(
        A.COMPLETE_ORDER,
        frozenset({S.PICKED_UP, S.DELIVERED}),
        S.COMPLETED,
        "Complete Order",
        stamps=("completed_at",),
    ),
    # Cancellation needs paid_amount == 0, so past pending_payment it only
    # applies to zero-total orders; partial_payment always holds money.
    # Any order holding money leaves through a refund.
    Transition(
        A.CANCEL_ORDER,
        frozenset({S.PENDING_PAYMENT, S.PAID, S.CONFIRMED, S.ASSIGNED_PACKAGER}),
        S.CANCELLED,
        "Cancel Order",
        stamps=("cancelled_at",),
    ),
    Transition(
        A.REFUND_ORDER,
        frozenset(status for status in S if status not in {S.COMPLETED, S.CANCELLED, S.REFUNDED}),
        S.REFUNDED,
        "Refund Order",
        stamps=("refunded_at",),
    ),
)

_ADMINS = frozenset({UserRole.CEO, UserRole.ADMIN})

ACTION_ROLES: dict[FulfillmentAction, frozenset[UserRole]] = {
    A.CONFIRM_PAYMENT: _ADMINS | {UserRole.RECEPTIONIST, UserRole.CASHIER},
    A.ASSIGN_PACKAGER: _ADMINS | {UserRole.RECEPTIONIST},
    A.START_PACKAGING: _ADMINS | {UserRole.PACKAGER},
    A.COMPLETE_PACKAGING: _ADMINS | {UserRole.PACKAGER},
    A.READY_FOR_PICKUP: _ADMINS | {UserRole.PACKAGER, UserRole.STOREKEEPER},
    A.ASSIGN_DELIVERY: _ADMINS | {UserRole.RECEPTIONIST, UserRole.STOREKEEPER},
    A.MARK_PICKED_UP: _ADMINS | {UserRole.STOREKEEPER},
    A.START_DELIVERY: _ADMINS | {UserRole.STOREKEEPER},
    A.MARK_DELIVERED: _ADMINS | {UserRole.STOREKEEPER},
    A.COMPLETE_ORDER: _ADMINS | {UserRole.STOREKEEPER},
    A.CANCEL_ORDER: _ADMINS | {UserRole.RECEPTIONIST},
    A.REFUND_ORDER: _ADMINS,
}

PAYMENT_ROLES = _ADMINS | {UserRole.RECEPTIONIST, UserRole.CASHIER}
ORDER_ENTRY_ROLES = _ADMINS | {UserRole.ATTENDEE}

STATUS_DISPLAY: dict[OrderStatus, StatusDisplay] = {
    S.PENDING_PAYMENT: StatusDisplay("Pending Payment", 10),
    S.PARTIAL_PAYMENT: StatusDisplay("Partial Payment", 20),
    S.PAID: StatusDisplay("Paid", 30),
    S.CONFIRMED: StatusDisplay("Payment Confirmed", 40),
    S.ASSIGNED_PACKAGER: StatusDisplay("Assigned to Packager", 50),
    S.PACKAGING: StatusDisplay("Being Packaged", 60),
    S.PACKAGED: StatusDisplay("Packaged", 70),
    S.ASSIGNED_DELIVERY: StatusDisplay("Assigned for Delivery", 75),
    S.READY_FOR_PICKUP: StatusDisplay("Ready for Pickup", 80),
    S.OUT_FOR_DELIVERY: StatusDisplay("Out for Delivery", 85),
    S.PICKED_UP: StatusDisplay("Picked Up", 95),
    S.DELIVERED: StatusDisplay("Delivered", 100),
    S.COMPLETED: StatusDisplay("Completed", 100),
    S.CANCELLED: StatusDisplay("Cancelled", 0),
    S.REFUNDED: StatusDisplay("Refunded", 0),
}

PAYMENT_STATUS_LABELS: dict[PaymentStatus, str] = {
    PaymentStatus.PENDING: "Pending Payment",
    PaymentStatus.PARTIAL: "Partial Payment",
    PaymentStatus.PAID: "Fully Paid",
    PaymentStatus.CONFIRMED: "Payment Confirmed",
    PaymentStatus.OVERPAID: "Overpaid",
    PaymentStatus.REFUNDED: "Refunded",
}


def _check_exhaustive(table: Mapping[Enum, object], members: Iterable[Enum], name: str) -> None:
    missing = [member.value for member in members if member not in table]
    if missing:
        raise RuntimeError(f"{name} is missing entries for: {', '.join(missing)}")


_TRANSITIONS_BY_STATUS: dict[OrderStatus, list[Transition]] = {
    status: [transition for transition in TRANSITIONS if status in transition.sources] for status in S
}

_check_exhaustive(_TRANSITIONS_BY_STATUS, S, "_TRANSITIONS_BY_STATUS")
_check_exhaustive(ACTION_ROLES, A, "ACTION_ROLES")
_check_exhaustive(STATUS_DISPLAY, S, "STATUS_DISPLAY")
_check_exhaustive(PAYMENT_STATUS_LABELS, PaymentStatus, "PAYMENT_STATUS_LABELS")
_check_exhaustive({transition.action: transition for transition in TRANSITIONS}, A, "TRANSITIONS")


def status_display(status: OrderStatus | str) -> StatusDisplay:
    return STATUS_DISPLAY[OrderStatus(status)]


def payment_status_label(status: PaymentStatus | str) -> str:
    return PAYMENT_STATUS_LABELS[PaymentStatus(status)]


def role_allows(role: UserRole | str | None, action: FulfillmentAction | str) -> bool:
    if role is None:
        return False
    try:
        resolved = UserRole(role)
    except ValueError:
        return False
    return resolved in ACTION_ROLES[FulfillmentAction(action)]


def _exit_allowed(order: Order, transition: Transition) -> bool:
    if transition.action == A.CANCEL_ORDER:
        return order.paid_amount == 0
    if transition.action == A.REFUND_ORDER:
        return order.paid_amount > 0
    return True


def _legal_transitions(order: Order) -> list[Transition]:
    return [
        transition for transition in _TRANSITIONS_BY_STATUS[order.status] if _exit_allowed(order, transition)
    ]


def next_actions(order: Order) -> list[NextAction]:
    return [
        NextAction(
            action=transition.action,
            label=transition.label,
            requires_assignment=transition.assignee_role is not None,
            required_role=transition.assignee_role,
        )
        for transition in _legal_transitions(order)
    ]


def available_actions(order: Order, actor_role: UserRole | str | None) -> list[NextAction]:
    return [action for action in next_actions(order) if role_allows(actor_role, action.action)]


def _parse_action(order: Order, action: FulfillmentAction | str) -> FulfillmentAction:
    try:
        return FulfillmentAction(action)
    except ValueError:
        raise IllegalTransitionError(order.status.value, str(action), f"unknown action {action!r}") from None


def _find_transition(order: Order, action: FulfillmentAction) -> Transition:
    for transition in _legal_transitions(order):
        if transition.action == action:
            return transition
    if order.is_terminal:
        reason = f"order is {order.status.value}; no further actions are possible"
    elif action == A.CANCEL_ORDER and order.paid_amount > 0:
        reason = "orders holding payments must be refunded, not cancelled"
    elif action == A.REFUND_ORDER and order.paid_amount == 0:
        reason = "nothing has been paid, cancel the order instead"
    else:
        reason = None
    raise IllegalTransitionError(order.status.value, action.value, reason)


def _index_users(users: Iterable[User] | Mapping[str, User]) -> dict[str, User]:
    if isinstance(users, Mapping):
        return dict(users)
    return {user.id: user for user in users}


def resolve_assignee(
    action: FulfillmentAction,
    assignee_id: str | None,
    required_role: UserRole,
    users: Iterable[User] | Mapping[str, User],
) -> User:
    if not assignee_id:
        raise MissingAssignmentError(
            action.value, None, required_role.value, f"select a {required_role.value.lower()} first"
        )
    user = _index_users(users).get(assignee_id)
    if user is None:
        raise MissingAssignmentError(
            action.value, assignee_id, required_role.value, f"user {assignee_id} is not known"
        )
    if user.role != required_role:
        raise MissingAssignmentError(
            action.value,
            assignee_id,
            required_role.value,
            f"{user.display_name} is a {user.role.value}, not a {required_role.value}",
        )
    if not user.is_active:
        raise MissingAssignmentError(
            action.value, assignee_id, required_role.value, f"{user.display_name} is not active"
        )
    return user


def apply(
    order: Order,
    action: FulfillmentAction | str,
    assignee_id: str | None = None,
    *,
    users: Iterable[User] | Mapping[str, User] = (),
    actor: User | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> OrderPatch:
    """Validate ``action`` against ``order`` and return the resulting patch.

    Raises ``IllegalTransitionError`` for actions outside the transition
    table, ``MissingAssignmentError`` when an assignment cannot be resolved to
    a user with the right role, and ``PermissionDeniedError`` when ``actor``
    is given and their role may not perform the action.
    """
    parsed = _parse_action(order, action)
    transition = _find_transition(order, parsed)
    if actor is not None and not role_allows(actor.role, parsed):
        raise PermissionDeniedError(parsed.value, actor.role.value)

    stamp = now or datetime.now(timezone.utc)
    changes: dict[str, object] = {"status": transition.target, "updated_at": stamp}

    if parsed == A.CONFIRM_PAYMENT:
        changes.update(confirm_payment(order, now=stamp).changes())
        if actor is not None:
            changes["receptionist_id"] = actor.id
            changes["receptionist"] = StaffSnapshot.from_user(actor)
    elif parsed == A.ASSIGN_PACKAGER:
        packager = resolve_assignee(parsed, assignee_id, UserRole.PACKAGER, users)
        changes.update(packager_id=packager.id, packager=StaffSnapshot.from_user(packager), assigned_at=stamp)
    elif parsed == A.ASSIGN_DELIVERY:
        storekeeper = resolve_assignee(parsed, assignee_id, UserRole.STOREKEEPER, users)
        changes.update(
            storekeeper_id=storekeeper.id,
            storekeeper=StaffSnapshot.from_user(storekeeper),
            assigned_at=stamp,
        )
    elif parsed == A.START_PACKAGING and not order.packager_id:
        raise MissingAssignmentError(parsed.value, None, UserRole.PACKAGER.value, "no packager is assigned")
    elif parsed == A.START_DELIVERY and not order.storekeeper_id:
        raise MissingAssignmentError(parsed.value, None, UserRole.STOREKEEPER.value, "no storekeeper is assigned")
    elif parsed == A.REFUND_ORDER:
        changes["payment_status"] = PaymentStatus.REFUNDED

    for field_name in transition.stamps:
        if getattr(order, field_name) is None:
            changes[field_name] = stamp
    if notes:
        changes["notes"] = notes
    return OrderPatch(**changes)
