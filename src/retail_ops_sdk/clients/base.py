from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import MalformedResponseError, RemoteError
from ..http_client import HttpClient

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None
    shop_id: str | None = None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.shop_id:
            headers["X-Shop-ID"] = self.shop_id
        return headers

    def _request(self, method: str, path: str, **kwargs):
        headers = kwargs.pop("headers", {})
        merged = {**self._auth_headers(), **headers}
        return self.http.request(method, path, headers=merged, **kwargs)

    def _request_data(self, method: str, path: str, **kwargs) -> Any:
        return unwrap_envelope(self._request(method, path, **kwargs), self.http)

    def _parse(self, model: type[ModelT], data: Any, what: str) -> ModelT:
        if not isinstance(data, dict):
            raise self._malformed(f"Expected {what} response to be a JSON object", data)
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise self._malformed(f"Unexpected {what} response shape", data, _field_errors(exc)) from exc

    def _parse_list(self, model: type[ModelT], data: Any, what: str, *keys: str) -> list[ModelT]:
        if isinstance(data, dict):
            data = next((data[key] for key in keys if key in data), None)
        if not isinstance(data, list):
            raise self._malformed(f"Expected {what} response to be a JSON list", data)
        return [self._parse(model, item, what) for item in data]

    def _malformed(self, message: str, payload: Any, details: object | None = None) -> MalformedResponseError:
        last = self.http.last_operation
        return MalformedResponseError(
            code="MALFORMED_RESPONSE",
            message=message,
            details=details,
            trace_id=last.trace_id if last else None,
            status_code=200,
            raw_payload=payload,
        )


def _field_errors(exc: PydanticValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in error["loc"]), "reason": error["msg"]}
        for error in exc.errors()
    ]


def unwrap_envelope(payload: Any, http: HttpClient | None = None) -> Any:
    """Return ``data`` from a ``{status, message, data}`` envelope.

    Payloads that are not enveloped are returned unchanged. An envelope with
    ``status: false`` is a rejection even when the HTTP status was 2xx.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("status"), bool):
        return payload
    if not payload["status"]:
        trace_id = http.last_operation.trace_id if http and http.last_operation else None
        raise RemoteError(
            code=str(payload.get("code") or "REQUEST_REJECTED"),
            message=str(payload.get("message") or payload.get("error") or "Request rejected"),
            details=payload.get("details"),
            trace_id=trace_id,
            status_code=200,
            raw_payload=dict(payload),
        )
    return payload.get("data")
