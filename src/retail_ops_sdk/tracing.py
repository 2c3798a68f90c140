"""Trace id sent with every request and picked back up from the answer."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable, Mapping

TRACE_HEADER = "X-Trace-ID"
# requests exposes response headers case-insensitively.
_ECHO_HEADERS = (TRACE_HEADER, "X-Request-ID")
_ECHO_PAYLOAD_KEYS = ("trace_id", "traceId", "requestId")


def _first_text(source: Mapping[str, object], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value:
            return value
    return None


@dataclass
class TraceContext:
    trace_id: str | None = None

    def ensure(self) -> str:
        if not self.trace_id:
            self.trace_id = str(uuid.uuid4())
        return self.trace_id

    def adopt(self, headers: Mapping[str, str], payload: object = None) -> str | None:
        """Switch to the id the server answered with. An id in the body beats the headers."""
        echoed = _first_text(payload, _ECHO_PAYLOAD_KEYS) if isinstance(payload, Mapping) else None
        echoed = echoed or _first_text(headers, _ECHO_HEADERS)
        if echoed:
            self.trace_id = echoed
        return self.trace_id
