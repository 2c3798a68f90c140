from __future__ import annotations

import re
import threading
from datetime import datetime, timezone

import pytest

from retail_ops_sdk.exceptions import NotFoundError, ValidationError
from retail_ops_sdk.models_orders import OrderPatch, OrderStatus, PaymentStatus
from retail_ops_sdk.order_ledger import OrderLedger
from retail_ops_sdk.order_queries import by_status
from retail_ops_sdk.payment_engine import record_payment

NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def test_create_defaults(order, attendee) -> None:
    assert order.id == "o1"
    assert order.receipt_id == "RCP-000001"
    assert order.customer_name == "Bola Customer"
    assert order.total_amount == 13000
    assert order.paid_amount == 0
    assert order.balance_amount == 13000
    assert order.payment_history == []
    assert order.minimum_payment_percentage == 70
    assert order.status == OrderStatus.PENDING_PAYMENT
    assert order.payment_status == PaymentStatus.PENDING
    assert order.attendee_id == attendee.id
    assert order.attendee.full_name == "Ada Attendee"
    assert order.shop_id == "shop-1"
    assert order.created_at == NOW


def test_create_generates_ids(ledger, draft, attendee) -> None:
    created = ledger.create(draft, attendee=attendee)
    assert created.id in ledger
    assert re.fullmatch(r"RCP-\d{6}", created.receipt_id)


def test_create_uses_ledger_default_minimum(draft, attendee) -> None:
    ledger = OrderLedger(minimum_payment_percentage=60)
    assert ledger.create(draft, attendee=attendee).minimum_payment_percentage == 60
    assert ledger.create({**draft, "minimumPaymentPercentage": 50}, attendee=attendee).minimum_payment_percentage == 50


def test_create_rejects_duplicate_id(ledger, order, draft, attendee) -> None:
    with pytest.raises(ValidationError):
        ledger.create(draft, attendee=attendee, order_id="o1")


def test_ledger_rejects_invalid_default_minimum() -> None:
    with pytest.raises(ValidationError):
        OrderLedger(minimum_payment_percentage=101)


@pytest.mark.parametrize(
    ("changes", "field"),
    [
        ({"customerName": "   "}, "customer_name"),
        ({"products": []}, "products"),
    ],
)
def test_create_validation(ledger, draft, attendee, changes, field) -> None:
    with pytest.raises(ValidationError) as excinfo:
        ledger.create({**draft, **changes}, attendee=attendee)
    assert excinfo.value.issues[0].field == field
    assert len(ledger) == 0


def test_get_unknown_order(ledger) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        ledger.get("missing")
    assert excinfo.value.order_id == "missing"
    assert excinfo.value.code == "ORDER_NOT_FOUND"


def test_apply_update_unknown_order(ledger) -> None:
    with pytest.raises(NotFoundError):
        ledger.apply_update("missing", OrderPatch(notes="x"))


def test_apply_update_recomputes_balance_and_bumps_updated_at(ledger, order) -> None:
    later = datetime(2024, 5, 3, tzinfo=timezone.utc)
    patch = record_payment(order, 5000, "cash", recorded_by="u-rec").to_patch(order)
    updated = ledger.apply_update("o1", patch.model_copy(update={"balance_amount": 1}), now=later)

    assert updated.paid_amount == 5000
    assert updated.balance_amount == 8000
    assert updated.updated_at == later
    assert ledger.get("o1") is updated
    assert order.paid_amount == 0


def test_apply_update_only_touches_set_fields(ledger, order) -> None:
    updated = ledger.apply_update("o1", OrderPatch(notes="fragile"))
    assert updated.notes == "fragile"
    assert updated.status == order.status
    assert updated.customer_phone == order.customer_phone


def test_payment_history_is_append_only(ledger, order) -> None:
    outcome = record_payment(order, 1000, "cash", recorded_by="u-rec")
    ledger.apply_update("o1", outcome.to_patch(order))

    with pytest.raises(ValidationError, match="append-only"):
        ledger.apply_update("o1", OrderPatch(payment_history=[]))
    assert len(ledger.get("o1").payment_history) == 1


def test_paid_amount_cannot_move_without_history(ledger, order) -> None:
    with pytest.raises(ValidationError, match="paid amount moved by 5000") as excinfo:
        ledger.apply_update("o1", OrderPatch(paid_amount=5000))

    assert excinfo.value.issues[0].field == "paid_amount"
    assert ledger.get("o1").paid_amount == 0
    assert ledger.get("o1").balance_amount == 13000


def test_history_entry_must_match_paid_amount(ledger, order) -> None:
    patch = record_payment(order, 1000, "cash", recorded_by="u-rec").to_patch(order)

    with pytest.raises(ValidationError, match="paid_amount"):
        ledger.apply_update("o1", patch.model_copy(update={"paid_amount": 1500}))
    with pytest.raises(ValidationError, match="paid_amount"):
        ledger.apply_update("o1", OrderPatch(payment_history=patch.payment_history))
    assert ledger.get("o1").payment_history == []

    updated = ledger.apply_update("o1", patch)
    assert updated.paid_amount == updated.history_total == 1000


def test_list_is_a_restartable_snapshot(ledger, order, draft, attendee) -> None:
    pending = ledger.list()
    ledger.create(draft, attendee=attendee, order_id="o2")

    assert [item.id for item in pending] == ["o1"]
    assert [item.id for item in ledger.list()] == ["o1", "o2"]
    assert [item.id for item in ledger.list()] == ["o1", "o2"]


def test_list_with_predicate(ledger, order, draft, attendee) -> None:
    ledger.create(draft, attendee=attendee, order_id="o2")
    ledger.apply_update("o2", OrderPatch(status=OrderStatus.CANCELLED))

    assert [item.id for item in ledger.list(by_status("cancelled"))] == ["o2"]


def test_upsert_and_replace_all(ledger, order) -> None:
    remote = order.model_copy(update={"id": "srv-1"})
    ledger.upsert(remote)
    assert len(ledger) == 2
    assert "srv-1" in ledger

    ledger.replace_all([remote])
    assert len(ledger) == 1
    assert "o1" not in ledger


def test_concurrent_updates_to_one_order(ledger, order) -> None:
    def worker(index: int) -> None:
        ledger.apply_update("o1", OrderPatch(notes=f"note-{index}"))

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = ledger.get("o1")
    assert final.notes.startswith("note-")
    assert final.balance_amount == final.total_amount - final.paid_amount
