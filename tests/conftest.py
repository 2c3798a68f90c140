from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SDK_SRC = BASE_DIR / "src"

sys.path.insert(0, str(SDK_SRC))

from retail_ops_sdk.config import ClientConfig  # noqa: E402
from retail_ops_sdk.models import User, UserRole  # noqa: E402
from retail_ops_sdk.order_ledger import OrderLedger  # noqa: E402

BASE_URL = "https://api.example.com"
NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(env_name="test", api_base_url=BASE_URL, retries=0, retry_backoff_seconds=0)


@pytest.fixture
def attendee() -> User:
    return User(id="u-att", full_name="Ada Attendee", role=UserRole.ATTENDEE, shop_id="shop-1")


@pytest.fixture
def receptionist() -> User:
    return User(id="u-rec", full_name="Rita Reception", role=UserRole.RECEPTIONIST)


@pytest.fixture
def packager() -> User:
    return User(id="u-pack", full_name="Pat Packer", role=UserRole.PACKAGER)


@pytest.fixture
def storekeeper() -> User:
    return User(id="u-store", full_name="Sam Store", role=UserRole.STOREKEEPER)


@pytest.fixture
def staff(receptionist: User, packager: User, storekeeper: User) -> list[User]:
    return [receptionist, packager, storekeeper]


@pytest.fixture
def draft() -> dict:
    return {
        "customerName": "Bola Customer",
        "customerPhone": "08030000000",
        "products": [
            {"productId": "p-shirt", "name": "Shirt", "unitPrice": 5000, "quantity": 2},
            {"productId": "p-cap", "name": "Cap", "unitPrice": 3000, "quantity": 1},
        ],
    }


@pytest.fixture
def ledger() -> OrderLedger:
    return OrderLedger()


@pytest.fixture
def order(ledger: OrderLedger, draft: dict, attendee: User):
    return ledger.create(draft, attendee=attendee, order_id="o1", receipt_id="RCP-000001", now=NOW)
