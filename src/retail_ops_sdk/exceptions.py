from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    reason: str
    row_index: int | None = None


class OrderFlowError(Exception):
    """Base class for every failure the SDK raises.

    ``code`` is stable and meant for branching (e.g. "select a packager" vs.
    "network error"); ``message`` is human readable.
    """

    code = "ORDER_FLOW_ERROR"

    def __init__(self, message: str, *, details: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(OrderFlowError):
    code = "VALIDATION_ERROR"

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        super().__init__(self._format_message(), details=[issue.__dict__ for issue in self.issues])

    def _format_message(self) -> str:
        if not self.issues:
            return "Validation failed"
        issue = self.issues[0]
        location = f"row {issue.row_index}" if issue.row_index is not None else "payload"
        return f"{location} {issue.field}: {issue.reason}"


class InvalidAmountError(OrderFlowError):
    code = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str = "amount must be greater than 0") -> None:
        self.amount = amount
        super().__init__(reason, details={"amount": amount})


class IllegalTransitionError(OrderFlowError):
    code = "ILLEGAL_TRANSITION"

    def __init__(self, status: str, action: str, reason: str | None = None) -> None:
        self.status = status
        self.action = action
        super().__init__(
            reason or f"{action} is not allowed while the order is {status}",
            details={"status": status, "action": action},
        )


class PaymentThresholdError(IllegalTransitionError):
    """Confirmation attempted before the minimum payment percentage was reached."""

    code = "PAYMENT_THRESHOLD_NOT_MET"


class MissingAssignmentError(OrderFlowError):
    code = "MISSING_ASSIGNMENT"

    def __init__(self, action: str, assignee_id: str | None, required_role: str | None, reason: str) -> None:
        self.action = action
        self.assignee_id = assignee_id
        self.required_role = required_role
        super().__init__(
            reason,
            details={"action": action, "assignee_id": assignee_id, "required_role": required_role},
        )


class NotFoundError(OrderFlowError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"order {order_id} not found", details={"order_id": order_id})


class StaleOrderError(OrderFlowError):
    """The order changed after the snapshot a patch was computed from."""

    code = "STALE_ORDER"

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"order {order_id} changed since it was read", details={"order_id": order_id})


class PermissionDeniedError(OrderFlowError):
    code = "PERMISSION_DENIED"

    def __init__(self, action: str, role: str | None) -> None:
        self.action = action
        self.role = role
        super().__init__(f"role {role or 'ANONYMOUS'} may not {action}", details={"action": action, "role": role})


class RemoteError(OrderFlowError):
    """The remote collaborator failed: non-2xx, rejected envelope, malformed body or transport."""

    def __init__(
        self,
        code: str,
        message: str,
        details: object | None = None,
        trace_id: str | None = None,
        status_code: int = 0,
        raw_payload: object | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.code = code
        self.trace_id = trace_id
        self.status_code = status_code
        self.raw_payload = raw_payload

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class AuthError(RemoteError):
    pass


class ForbiddenError(RemoteError):
    pass


class RemoteNotFoundError(RemoteError):
    pass


class RemoteValidationError(RemoteError):
    pass


class ConflictError(RemoteError):
    """409, typically a concurrent update; refresh the order before retrying."""


class RateLimitError(RemoteError):
    """429 throttling error."""


class ServerError(RemoteError):
    """5xx server-side failures."""


class TransportError(RemoteError):
    """Network/timeout failure before an HTTP response was returned."""


class MalformedResponseError(RemoteError):
    """A 2xx answer whose body is not JSON or not the expected shape."""
