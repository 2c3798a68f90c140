from __future__ import annotations

from retail_ops_sdk.exceptions import (
    ConflictError,
    IllegalTransitionError,
    InvalidAmountError,
    MalformedResponseError,
    MissingAssignmentError,
    PaymentThresholdError,
    PermissionDeniedError,
    TransportError,
    ValidationError,
    ValidationIssue,
)
from retail_ops_sdk.ui_errors import to_user_facing_error


def test_missing_packager_selection() -> None:
    error = MissingAssignmentError("assign_packager", None, "Packager", "select a packager first")
    assert to_user_facing_error(error).message == "Select a packager before assigning the order."


def test_missing_storekeeper_on_start_delivery() -> None:
    error = MissingAssignmentError("start_delivery", None, "Storekeeper", "no storekeeper is assigned")
    assert to_user_facing_error(error).message == "Assign a storekeeper to the order first."


def test_wrong_role_assignee_keeps_reason() -> None:
    error = MissingAssignmentError("assign_packager", "u-store", "Packager", "Sam Store is a Storekeeper, not a Packager")
    facing = to_user_facing_error(error)
    assert facing.message == "Sam Store is a Storekeeper, not a Packager."
    assert facing.details == "MISSING_ASSIGNMENT"


def test_threshold_and_transition_messages() -> None:
    threshold = PaymentThresholdError("partial_payment", "confirm_payment", "only 50.0% paid")
    assert to_user_facing_error(threshold).message == "Minimum payment not reached: only 50.0% paid."

    illegal = IllegalTransitionError("packaged", "mark_picked_up")
    facing = to_user_facing_error(illegal)
    assert facing.message == "This action is not available for the order's current status."
    assert facing.details == "ILLEGAL_TRANSITION: mark_picked_up is not allowed while the order is packaged"


def test_amount_validation_and_permission_messages() -> None:
    assert to_user_facing_error(InvalidAmountError(0)).message == "Invalid payment amount: amount must be greater than 0."
    validation = ValidationError([ValidationIssue(field="customer_name", reason="customer name is required")])
    assert to_user_facing_error(validation).message == (
        "Please correct the order details: payload customer_name: customer name is required."
    )
    denied = PermissionDeniedError("refund_order", "Cashier")
    assert to_user_facing_error(denied).message == "You do not have permission to perform this action."


def test_remote_errors_carry_trace_and_http_details() -> None:
    transport = TransportError(code="TRANSPORT_ERROR", message="timed out", trace_id="t-1")
    facing = to_user_facing_error(transport)
    assert facing.message == "Network error. Check your connection and try again."
    assert facing.trace_id == "t-1"
    assert facing.details == "TRANSPORT_ERROR (HTTP 0)"

    conflict = ConflictError(code="CONFLICT", message="stale", details={"id": "o1"}, status_code=409)
    facing = to_user_facing_error(conflict)
    assert facing.technical_details == "CONFLICT (HTTP 409): {'id': 'o1'}"


def test_malformed_response_message() -> None:
    malformed = MalformedResponseError(
        code="MALFORMED_RESPONSE", message="Response body is not valid JSON", trace_id="t-2", status_code=200
    )
    facing = to_user_facing_error(malformed)
    assert facing.message == "The server sent an unexpected response. Try again later."
    assert facing.details == "MALFORMED_RESPONSE (HTTP 200)"
    assert facing.trace_id == "t-2"
