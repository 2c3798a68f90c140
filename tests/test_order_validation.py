from __future__ import annotations

from datetime import datetime, timezone

import pytest

from retail_ops_sdk.exceptions import ValidationError
from retail_ops_sdk.models_orders import OrderDraft
from retail_ops_sdk.order_validation import build_order, new_receipt_id, validate_order_draft


def test_new_receipt_id_uses_last_six_digits() -> None:
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert new_receipt_id(stamp) == "RCP-200000"


def test_validate_trims_customer_fields(draft) -> None:
    cleaned = validate_order_draft({**draft, "customerName": "  Bola  ", "customerPhone": "   "})
    assert cleaned.customer_name == "Bola"
    assert cleaned.customer_phone is None


def test_validate_accepts_model(draft) -> None:
    model = OrderDraft.model_validate(draft)
    assert validate_order_draft(model).products[0].product_id == "p-shirt"


def test_validate_reports_every_bad_row(draft) -> None:
    products = [
        {"productId": "a", "unitPrice": 100, "quantity": 0},
        {"productId": "b", "unitPrice": -1, "quantity": 1},
    ]
    with pytest.raises(ValidationError) as excinfo:
        validate_order_draft({**draft, "products": products})

    issues = [(issue.row_index, issue.field) for issue in excinfo.value.issues]
    assert issues == [(0, "quantity"), (1, "unit_price")]
    assert excinfo.value.message == "row 0 quantity: quantity must be at least 1"


def test_validate_rejects_bad_minimum(draft) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_order_draft({**draft, "minimumPaymentPercentage": 120})
    assert excinfo.value.issues[0].field == "minimum_payment_percentage"


def test_validate_maps_pydantic_errors(draft) -> None:
    products = [{"productId": "a", "unitPrice": 100, "quantity": "lots"}]
    with pytest.raises(ValidationError) as excinfo:
        validate_order_draft({**draft, "products": products})
    issue = excinfo.value.issues[0]
    assert issue.row_index == 0
    assert issue.field == "quantity"


def test_validate_requires_customer_name(draft) -> None:
    payload = dict(draft)
    payload.pop("customerName")
    with pytest.raises(ValidationError):
        validate_order_draft(payload)


def test_build_order_totals_and_legacy_item_keys(attendee) -> None:
    draft = {
        "customerName": "Bola",
        "products": [{"id": "p1", "price": 2500, "quantity": 3}],
    }
    order = build_order(draft, attendee=attendee, minimum_payment_percentage=80)

    assert order.total_amount == 7500
    assert order.balance_amount == 7500
    assert order.minimum_payment_percentage == 80
    assert order.products[0].line_total == 7500


def test_zero_minimum_is_kept(draft, attendee) -> None:
    order = build_order({**draft, "minimumPaymentPercentage": 0}, attendee=attendee)
    assert order.minimum_payment_percentage == 0
