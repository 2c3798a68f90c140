from __future__ import annotations

from dataclasses import dataclass

from .clients.orders_client import OrdersClient
from .clients.users_client import UsersClient
from .config import ClientConfig
from .http_client import HttpClient
from .models import User, UserRole
from .tracing import TraceContext


@dataclass(frozen=True)
class ActorContext:
    """The staff member performing actions; passed explicitly, never global."""

    user: User

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return self.user.role

    @classmethod
    def from_identity(cls, actor_id: str, role: UserRole | str, full_name: str | None = None) -> "ActorContext":
        return cls(user=User(id=actor_id, role=UserRole(role), full_name=full_name))


@dataclass
class ApiSession:
    config: ClientConfig
    trace: TraceContext | None = None
    token: str | None = None
    shop_id: str | None = None

    def __post_init__(self) -> None:
        self.trace = self.trace or TraceContext()
        self._http_client = HttpClient(config=self.config, trace=self.trace)

    @property
    def http(self) -> HttpClient:
        return self._http_client

    def orders_client(self) -> OrdersClient:
        return OrdersClient(http=self._http_client, access_token=self.token, shop_id=self.shop_id)

    def users_client(self) -> UsersClient:
        return UsersClient(http=self._http_client, access_token=self.token, shop_id=self.shop_id)
