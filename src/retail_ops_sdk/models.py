from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserRole(str, Enum):
    CEO = "CEO"
    ADMIN = "Admin"
    ATTENDEE = "Attendee"
    RECEPTIONIST = "Receptionist"
    CASHIER = "Cashier"
    PACKAGER = "Packager"
    STOREKEEPER = "Storekeeper"
    WAREHOUSEKEEPER = "Warehousekeeper"
    CUSTOMER = "Customer"

    @classmethod
    def _missing_(cls, value: object) -> "UserRole | None":
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered or member.name.lower() == lowered:
                    return member
        return None


class User(WireModel):
    id: str
    username: str | None = None
    email: str | None = None
    full_name: str | None = None
    role: UserRole
    is_active: bool = True
    shop_id: str | None = None
    warehouse_id: str | None = None
    created_at: datetime | None = None
    last_login: datetime | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or self.id


class StaffSnapshot(WireModel):
    """Denormalized copy of a user taken when they are assigned to an order."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    full_name: str | None = None
    username: str | None = None
    role: UserRole | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _lenient_role(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return UserRole(value)
            except ValueError:
                return None
        return value

    @classmethod
    def from_user(cls, user: User) -> "StaffSnapshot":
        return cls(id=user.id, full_name=user.full_name, username=user.username, role=user.role)
