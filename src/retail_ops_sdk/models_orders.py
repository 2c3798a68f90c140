from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, field_validator, model_validator

from .models import StaffSnapshot, WireModel


class _LenientEnum(str, Enum):
    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class OrderStatus(_LenientEnum):
    PENDING_PAYMENT = "pending_payment"
    PARTIAL_PAYMENT = "partial_payment"
    PAID = "paid"
    CONFIRMED = "confirmed"
    ASSIGNED_PACKAGER = "assigned_packager"
    PACKAGING = "packaging"
    PACKAGED = "packaged"
    READY_FOR_PICKUP = "ready_for_pickup"
    ASSIGNED_DELIVERY = "assigned_delivery"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})


class PaymentStatus(_LenientEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    CONFIRMED = "confirmed"
    OVERPAID = "overpaid"
    REFUNDED = "refunded"


class PaymentMethod(_LenientEnum):
    CASH = "cash"
    TRANSFER = "transfer"
    POS = "pos"
    CARD = "card"
    PAYSTACK = "paystack"
    BANK_TRANSFER = "bank_transfer"


class FulfillmentAction(_LenientEnum):
    CONFIRM_PAYMENT = "confirm_payment"
    ASSIGN_PACKAGER = "assign_packager"
    START_PACKAGING = "start_packaging"
    COMPLETE_PACKAGING = "complete_packaging"
    READY_FOR_PICKUP = "ready_for_pickup"
    ASSIGN_DELIVERY = "assign_delivery"
    MARK_PICKED_UP = "mark_picked_up"
    START_DELIVERY = "start_delivery"
    MARK_DELIVERED = "mark_delivered"
    COMPLETE_ORDER = "complete_order"
    CANCEL_ORDER = "cancel_order"
    REFUND_ORDER = "refund_order"

    @classmethod
    def _missing_(cls, value: object) -> Any:
        # Older dashboards sent "ready_pickup".
        if isinstance(value, str) and value.strip().lower() == "ready_pickup":
            return cls.READY_FOR_PICKUP
        return super()._missing_(value)


class LineItem(WireModel):
    product_id: str = Field(validation_alias=AliasChoices("productId", "product_id", "id"))
    name: str | None = None
    unit_price: int = Field(validation_alias=AliasChoices("unitPrice", "unit_price", "price"))
    quantity: int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class PaymentRecord(WireModel):
    model_config = ConfigDict(frozen=True)

    id: str
    amount: int
    method: PaymentMethod
    reference: str
    timestamp: datetime
    recorded_by: str
    notes: str | None = None


def _flatten_order_items(data: dict[str, Any]) -> dict[str, Any]:
    items = data.pop("OrderItem", None)
    if data.get("products") or not isinstance(items, list):
        return data
    products = []
    for item in items:
        if not isinstance(item, dict):
            continue
        product = dict(item.get("product") or {})
        product.setdefault("id", item.get("productId"))
        product["quantity"] = item.get("quantity", 1)
        if "price" not in product and "unitPrice" in item:
            product["price"] = item["unitPrice"]
        products.append(product)
    data["products"] = products
    return data


class Order(WireModel):
    model_config = ConfigDict(frozen=True)

    id: str
    receipt_id: str
    customer_name: str
    customer_phone: str | None = None
    products: list[LineItem] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod | None = None
    total_amount: int
    paid_amount: int = 0
    balance_amount: int
    payment_history: list[PaymentRecord] = Field(default_factory=list)
    minimum_payment_percentage: int = 70

    attendee_id: str
    attendee: StaffSnapshot | None = None
    receptionist_id: str | None = None
    receptionist: StaffSnapshot | None = None
    packager_id: str | None = None
    packager: StaffSnapshot | None = None
    storekeeper_id: str | None = None
    storekeeper: StaffSnapshot | None = None
    shop_id: str | None = None

    notes: str | None = None
    delivery_address: str | None = None

    created_at: datetime
    updated_at: datetime | None = None
    assigned_at: datetime | None = None
    payment_confirmed_at: datetime | None = None
    assigned_to_packager_at: datetime | None = None
    packaging_started_at: datetime | None = None
    packaged_at: datetime | None = None
    assigned_to_delivery_at: datetime | None = None
    out_for_delivery_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_wire(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = _flatten_order_items(dict(data))
        paid_key = "paid_amount" if "paid_amount" in data else "paidAmount"
        if data.get(paid_key) is None:
            data[paid_key] = 0
        for key in ("paymentHistory", "payment_history"):
            if key in data and data[key] is None:
                data[key] = []
        for key in ("minimumPaymentPercentage", "minimum_payment_percentage"):
            if key in data and data[key] is None:
                del data[key]
        total = data.get("totalAmount", data.get("total_amount"))
        if data.get("balanceAmount") is None and data.get("balance_amount") is None and total is not None:
            data.pop("balance_amount", None)
            data["balanceAmount"] = total - data[paid_key]
        return data

    @field_validator("attendee", "receptionist", "packager", "storekeeper", mode="before")
    @classmethod
    def _snapshot_from_label(cls, value: Any) -> Any:
        # Some endpoints store the assignee as a plain "Name - Role" label.
        if isinstance(value, str):
            return {"fullName": value}
        return value

    @property
    def history_total(self) -> int:
        return sum(record.amount for record in self.payment_history)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class OrderPatch(WireModel):
    """Partial update produced by the payment engine or the workflow.

    Only fields explicitly set are merged into the order.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    paid_amount: int | None = None
    balance_amount: int | None = None
    payment_history: list[PaymentRecord] | None = None
    minimum_payment_percentage: int | None = None
    receptionist_id: str | None = None
    receptionist: StaffSnapshot | None = None
    packager_id: str | None = None
    packager: StaffSnapshot | None = None
    storekeeper_id: str | None = None
    storekeeper: StaffSnapshot | None = None
    notes: str | None = None
    updated_at: datetime | None = None
    assigned_at: datetime | None = None
    payment_confirmed_at: datetime | None = None
    assigned_to_packager_at: datetime | None = None
    packaging_started_at: datetime | None = None
    packaged_at: datetime | None = None
    assigned_to_delivery_at: datetime | None = None
    out_for_delivery_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}

    def merged(self, other: "OrderPatch") -> "OrderPatch":
        return OrderPatch(**{**self.changes(), **other.changes()})


class OrderDraft(WireModel):
    customer_name: str
    customer_phone: str | None = None
    products: list[LineItem]
    minimum_payment_percentage: int | None = None
    notes: str | None = None
    delivery_address: str | None = None
    shop_id: str | None = None


class OrderLineRequest(WireModel):
    id: str
    quantity: int


class OrderCreateRequest(WireModel):
    customer_name: str
    customer_phone: str | None = None
    products: list[OrderLineRequest]
    status: OrderStatus
    attendee_id: str
    payment_status: PaymentStatus
    total_amount: int
    paid_amount: int
    balance_amount: int
    payment_history: list[PaymentRecord] = Field(default_factory=list)
    minimum_payment_percentage: int
    receipt_id: str
    notes: str | None = None
    delivery_address: str | None = None
    shop_id: str | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreateRequest":
        return cls(
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            products=[OrderLineRequest(id=item.product_id, quantity=item.quantity) for item in order.products],
            status=order.status,
            attendee_id=order.attendee_id,
            payment_status=order.payment_status,
            total_amount=order.total_amount,
            paid_amount=order.paid_amount,
            balance_amount=order.balance_amount,
            payment_history=list(order.payment_history),
            minimum_payment_percentage=order.minimum_payment_percentage,
            receipt_id=order.receipt_id,
            notes=order.notes,
            delivery_address=order.delivery_address,
            shop_id=order.shop_id,
        )


class PaymentRequest(WireModel):
    payment_amount: int
    payment_method: PaymentMethod
    payment_reference: str | None = None
    notes: str | None = None
    recorded_by: str | None = None


class PaymentSummary(WireModel):
    paid_amount: int
    balance_amount: int
    payment_status: PaymentStatus
    status: OrderStatus | None = None
    payment_history: list[PaymentRecord] | None = None


class PaymentStatusUpdate(WireModel):
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod | None = None
    receptionist_id: str


class StatusUpdate(WireModel):
    status: OrderStatus
    updated_by: str
    notes: str | None = None


class AssignPackagerRequest(WireModel):
    packager_id: str


class AssignDeliveryRequest(WireModel):
    storekeeper_id: str
    status: OrderStatus = OrderStatus.ASSIGNED_DELIVERY
    assigned_at: datetime
