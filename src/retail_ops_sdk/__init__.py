from .clients import OrdersClient, UsersClient
from .config import ClientConfig, ConfigError, load_config
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
    RateLimitError,
    RemoteError,
    RemoteNotFoundError,
    RemoteValidationError,
    ServerError,
    StaleOrderError,
    TransportError,
    ValidationError,
    ValidationIssue,
)
from .http_client import HttpClient, LastOperation
from .idempotency import IdempotencyKeys
from .models import StaffSnapshot, User, UserRole
from .models_orders import (
    FulfillmentAction,
    LineItem,
    Order,
    OrderDraft,
    OrderPatch,
    OrderStatus,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
)
from .order_ledger import OrderLedger
from .order_queries import PaymentDeskSummary, partial_payment_orders, payment_desk_summary, search_orders
from .order_service import ActionResult, OrderService
from .order_workflow import NextAction, StatusDisplay, available_actions, next_actions, status_display
from .payment_engine import PaymentOutcome, can_proceed_with_partial, confirm_payment, record_payment
from .session import ActorContext, ApiSession
from .tracing import TraceContext
from .ui_errors import UserFacingError, to_user_facing_error

__version__ = "0.1.0"

__all__ = [
    "ActionResult",
    "ActorContext",
    "ApiSession",
    "AuthError",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "ForbiddenError",
    "FulfillmentAction",
    "HttpClient",
    "IdempotencyKeys",
    "IllegalTransitionError",
    "InvalidAmountError",
    "LastOperation",
    "LineItem",
    "MalformedResponseError",
    "MissingAssignmentError",
    "NextAction",
    "NotFoundError",
    "Order",
    "OrderDraft",
    "OrderFlowError",
    "OrderLedger",
    "OrderPatch",
    "OrderService",
    "OrderStatus",
    "OrdersClient",
    "PaymentDeskSummary",
    "PaymentMethod",
    "PaymentOutcome",
    "PaymentRecord",
    "PaymentStatus",
    "PaymentThresholdError",
    "PermissionDeniedError",
    "RateLimitError",
    "RemoteError",
    "RemoteNotFoundError",
    "RemoteValidationError",
    "ServerError",
    "StaffSnapshot",
    "StaleOrderError",
    "StatusDisplay",
    "TraceContext",
    "TransportError",
    "User",
    "UserFacingError",
    "UserRole",
    "UsersClient",
    "ValidationError",
    "ValidationIssue",
    "available_actions",
    "can_proceed_with_partial",
    "confirm_payment",
    "load_config",
    "next_actions",
    "partial_payment_orders",
    "payment_desk_summary",
    "record_payment",
    "search_orders",
    "status_display",
    "to_user_facing_error",
]
