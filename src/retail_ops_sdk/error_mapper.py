from __future__ import annotations

from typing import Mapping

from .exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    RateLimitError,
    RemoteError,
    RemoteNotFoundError,
    RemoteValidationError,
    ServerError,
)

_DEFAULT_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}


def _default_code(status_code: int) -> str:
    if status_code in _DEFAULT_CODES:
        return _DEFAULT_CODES[status_code]
    if status_code in {400, 422}:
        return "VALIDATION_FAILED"
    if status_code >= 500:
        return "SERVER_ERROR"
    return "HTTP_ERROR"


def map_error(status_code: int, payload: Mapping[str, object] | None, trace_id: str | None) -> RemoteError:
    payload = payload or {}
    # The orders API reports failures as {"status": false, "message": ..., "error": ...}.
    code = str(payload.get("code") or _default_code(status_code))
    message = str(payload.get("message") or payload.get("error") or "Request failed")
    details = payload.get("details", payload.get("errors"))
    payload_trace_id = payload.get("trace_id") or payload.get("traceId")
    resolved_trace_id = str(payload_trace_id) if payload_trace_id is not None else trace_id
    mapped: type[RemoteError]
    if status_code == 401:
        mapped = AuthError
    elif status_code == 403:
        mapped = ForbiddenError
    elif status_code == 404:
        mapped = RemoteNotFoundError
    elif status_code in {400, 422}:
        mapped = RemoteValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = RemoteError
    return mapped(
        code=code,
        message=message,
        details=details,
        trace_id=resolved_trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
    )
