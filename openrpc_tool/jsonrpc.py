"""JSON-RPC 2.0 request and response objects as seen on the wire."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Params = Union[List[Any], Dict[str, Any]]


@dataclass
class Request:
    method: str
    params: Optional[Params] = None
    id: Any = None
    # JSON-RPC notifications have no `id` member at all; `"id": null` is still a call.
    has_id: bool = False

    @property
    def is_notification(self) -> bool:
        return not self.has_id


@dataclass
class Response:
    id: Any
    result: Any = None
    error: Optional[Dict[str, Any]] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_request(body: Union[bytes, str]) -> Request:
    """Parse a single JSON-RPC request, raising ``ValueError`` otherwise."""
    payload = _load_object(body)
    method = payload.get("method")
    if not isinstance(method, str):
        raise ValueError("request `method` must be a string")
    params = payload.get("params")
    if params is not None and not isinstance(params, (list, dict)):
        raise ValueError("request `params` must be an array or an object")
    return Request(method=method, params=params, id=payload.get("id"), has_id="id" in payload)


def parse_response(body: Union[bytes, str]) -> Response:
    """Parse a single JSON-RPC response, raising ``ValueError`` otherwise."""
    payload = _load_object(body)
    if "id" not in payload:
        raise ValueError("response is missing `id`")
    has_result = "result" in payload
    has_error = "error" in payload
    if has_result == has_error:
        raise ValueError("response must carry exactly one of `result` and `error`")
    error = payload.get("error")
    if has_error and not isinstance(error, dict):
        raise ValueError("response `error` must be an object")
    return Response(id=payload["id"], result=payload.get("result"), error=error)


def _load_object(body: Union[bytes, str]) -> Dict[str, Any]:
    try:
        payload = json.loads(body)
    except RecursionError as exc:
        raise ValueError("JSON nested too deeply") from exc
    if not isinstance(payload, dict):
        raise ValueError("expected a single JSON-RPC object")
    if payload.get("jsonrpc") != "2.0":
        raise ValueError("missing `jsonrpc: \"2.0\"`")
    return payload
