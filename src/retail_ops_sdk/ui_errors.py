from __future__ import annotations

from dataclasses import dataclass

from .exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    IllegalTransitionError,
    InvalidAmountError,
    MalformedResponseError,
    MissingAssignmentError,
    NotFoundError,
    OrderFlowError,
    PaymentThresholdError,
    PermissionDeniedError,
    RemoteError,
    RemoteNotFoundError,
    StaleOrderError,
    TransportError,
    ValidationError,
)

_ASSIGN_ACTIONS = {"assign_packager", "assign_delivery"}


@dataclass(frozen=True)
class UserFacingError:
    message: str
    details: str | None = None
    trace_id: str | None = None

    @property
    def technical_details(self) -> str | None:
        if self.details:
            return self.details
        return None


def _sentence(text: str) -> str:
    text = text.strip()
    if not text:
        return text
    text = text[0].upper() + text[1:]
    return text if text.endswith(".") else f"{text}."


def _missing_assignment_message(exc: MissingAssignmentError) -> str:
    role = (exc.required_role or "staff member").lower()
    if exc.assignee_id is None and exc.action in _ASSIGN_ACTIONS:
        return f"Select a {role} before assigning the order."
    if exc.assignee_id is None:
        return f"Assign a {role} to the order first."
    return _sentence(exc.message)


def _message_for(exc: OrderFlowError) -> str:
    if isinstance(exc, TransportError):
        return "Network error. Check your connection and try again."
    if isinstance(exc, MalformedResponseError):
        return "The server sent an unexpected response. Try again later."
    if isinstance(exc, AuthError):
        return "Your session has expired. Please sign in again."
    if isinstance(exc, (ForbiddenError, PermissionDeniedError)):
        return "You do not have permission to perform this action."
    if isinstance(exc, (ConflictError, StaleOrderError)):
        return "This order was changed by someone else. Refresh it and try again."
    if isinstance(exc, (NotFoundError, RemoteNotFoundError)):
        return "Order not found. Refresh the order list and try again."
    if isinstance(exc, MissingAssignmentError):
        return _missing_assignment_message(exc)
    if isinstance(exc, PaymentThresholdError):
        return f"Minimum payment not reached: {exc.message}."
    if isinstance(exc, IllegalTransitionError):
        return "This action is not available for the order's current status."
    if isinstance(exc, InvalidAmountError):
        return f"Invalid payment amount: {exc.message}."
    if isinstance(exc, ValidationError):
        return f"Please correct the order details: {exc.message}."
    return exc.message.strip() or "Request failed"


def to_user_facing_error(exc: OrderFlowError) -> UserFacingError:
    message = _message_for(exc)
    if isinstance(exc, RemoteError):
        details = f"{exc.code} (HTTP {exc.status_code})"
        if exc.details:
            details = f"{details}: {exc.details}"
        return UserFacingError(message=message, details=details, trace_id=exc.trace_id)
    details = exc.code if message == _sentence(exc.message) else f"{exc.code}: {exc.message}"
    return UserFacingError(message=message, details=details)
