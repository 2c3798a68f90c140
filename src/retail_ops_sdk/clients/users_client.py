from __future__ import annotations

from dataclasses import dataclass

from ..models import User, UserRole
from .base import BaseClient


@dataclass
class UsersClient(BaseClient):
    def list_users(self, role: UserRole | str | None = None) -> list[User]:
        params = {"role": UserRole(role).value} if role else None
        data = self._request_data("GET", "/users", params=params, module="users", operation="list_users")
        users = self._parse_list(User, data, "users", "users", "items")
        if role:
            users = [user for user in users if user.role == UserRole(role)]
        return users
