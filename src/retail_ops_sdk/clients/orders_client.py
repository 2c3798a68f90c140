from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from ..idempotency import idempotency_headers, resolve_idempotency_keys
from ..models_orders import (
    AssignDeliveryRequest,
    AssignPackagerRequest,
    Order,
    OrderCreateRequest,
    OrderStatus,
    PaymentRequest,
    PaymentStatusUpdate,
    PaymentSummary,
    StatusUpdate,
)
from .base import BaseClient

_MODULE = "orders"


@dataclass
class OrdersClient(BaseClient):
    def list_orders(self, params: Mapping[str, Any] | None = None) -> list[Order]:
        data = self._request_data(
            "GET", "/orders", params=dict(params) if params else None, module=_MODULE, operation="list_orders"
        )
        return self._parse_list(Order, data, "orders", "orders", "items")

    def get_order(self, order_id: str) -> Order:
        data = self._request_data("GET", f"/orders/{order_id}", module=_MODULE, operation="get_order")
        return self._parse(Order, data, "order")

    def create_order(self, payload: OrderCreateRequest | Order, idempotency_key: str | None = None) -> Order:
        request = payload if isinstance(payload, OrderCreateRequest) else OrderCreateRequest.from_order(payload)
        data = self._mutate("POST", "/orders", request.to_wire(), "create_order", idempotency_key)
        return self._parse(Order, data, "create order")

    def record_payment(
        self,
        order_id: str,
        payment: PaymentRequest,
        idempotency_key: str | None = None,
    ) -> PaymentSummary:
        data = self._mutate(
            "PATCH", f"/orders/{order_id}/payment", payment.to_wire(), "record_payment", idempotency_key
        )
        return self._parse(PaymentSummary, data, "payment")

    def update_payment_status(
        self,
        order_id: str,
        update: PaymentStatusUpdate,
        idempotency_key: str | None = None,
    ) -> Order | None:
        data = self._mutate(
            "PATCH", f"/orders/payment/{order_id}", update.to_wire(), "update_payment_status", idempotency_key
        )
        return _order_or_none(data)

    def assign_packager(self, order_id: str, packager_id: str, idempotency_key: str | None = None) -> Order | None:
        body = AssignPackagerRequest(packager_id=packager_id).to_wire()
        data = self._mutate("PATCH", f"/orders/packager/{order_id}", body, "assign_packager", idempotency_key)
        return _order_or_none(data)

    def update_status(
        self,
        order_id: str,
        status: OrderStatus | str,
        updated_by: str,
        extra: Mapping[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> Order | None:
        body = StatusUpdate(status=OrderStatus(status), updated_by=updated_by).to_wire()
        if extra:
            body.update(extra)
        data = self._mutate("PATCH", f"/orders/{order_id}/status", body, "update_status", idempotency_key)
        return _order_or_none(data)

    def assign_delivery(
        self,
        order_id: str,
        storekeeper_id: str,
        assigned_at: datetime,
        idempotency_key: str | None = None,
    ) -> Order | None:
        body = AssignDeliveryRequest(storekeeper_id=storekeeper_id, assigned_at=assigned_at).to_wire()
        data = self._mutate("PATCH", f"/orders/{order_id}/assign-delivery", body, "assign_delivery", idempotency_key)
        return _order_or_none(data)

    def complete_order(self, order_id: str, updated_by: str, idempotency_key: str | None = None) -> Order | None:
        body = StatusUpdate(status=OrderStatus.COMPLETED, updated_by=updated_by).to_wire()
        data = self._mutate("PATCH", f"/orders/{order_id}", body, "complete_order", idempotency_key)
        return _order_or_none(data)

    def _mutate(
        self,
        method: str,
        path: str,
        body: dict[str, Any],
        operation: str,
        idempotency_key: str | None,
    ) -> Any:
        keys = resolve_idempotency_keys(idempotency_key)
        return self._request_data(
            method,
            path,
            json_body=body,
            headers=idempotency_headers(keys),
            module=_MODULE,
            operation=operation,
        )


def _order_or_none(data: Any) -> Order | None:
    # Some status endpoints answer with a partial order or just a message.
    if not isinstance(data, dict):
        return None
    try:
        return Order.model_validate(data)
    except PydanticValidationError:
        return None
