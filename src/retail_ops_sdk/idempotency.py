from __future__ import annotations

import uuid
from dataclasses import dataclass

IDEMPOTENCY_HEADER = "Idempotency-Key"


@dataclass(frozen=True)
class IdempotencyKeys:
    idempotency_key: str


def resolve_idempotency_keys(idempotency_key: str | None = None) -> IdempotencyKeys:
    return IdempotencyKeys(idempotency_key=idempotency_key or str(uuid.uuid4()))


def idempotency_headers(keys: IdempotencyKeys) -> dict[str, str]:
    return {IDEMPOTENCY_HEADER: keys.idempotency_key}
