from .base import BaseClient, unwrap_envelope
from .orders_client import OrdersClient
from .users_client import UsersClient

__all__ = [
    "BaseClient",
    "OrdersClient",
    "UsersClient",
    "unwrap_envelope",
]
