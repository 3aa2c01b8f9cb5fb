"""JSON-RPC 2.0 frame models and line codec."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from instabridge.protocol.errors import RpcError, invalid_request

JSONRPC_VERSION = "2.0"
CONNECTION_ID = "connection"
PARSE_ERROR_ID = 0

RequestId = Union[int, str]


@dataclass(slots=True)
class RpcRequest:
    """Inbound call expecting exactly one response with the same id."""

    id: RequestId
    method: str
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method, "params": self.params}


@dataclass(slots=True)
class RpcNotification:
    """Fire-and-forget message; never answered."""

    method: str
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "method": self.method, "params": self.params}


@dataclass(slots=True)
class RpcResult:
    """Successful response frame."""

    id: RequestId | None
    result: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": JSONRPC_VERSION, "id": self.id, "result": self.result}


@dataclass(slots=True)
class RpcErrorResponse:
    """Error response frame."""

    id: RequestId | None
    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return {"jsonrpc": JSONRPC_VERSION, "id": self.id, "error": error}

    @classmethod
    def from_error(cls, request_id: RequestId | None, error: RpcError) -> "RpcErrorResponse":
        return cls(id=request_id, code=error.code, message=error.message, data=error.data)


Frame = Union[RpcRequest, RpcNotification, RpcResult, RpcErrorResponse]


def encode_frame(message: Frame | dict[str, Any]) -> str:
    """Encode a frame into one line of JSON (no embedded newlines)."""
    payload = message if isinstance(message, dict) else message.to_dict()
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def decode_message(payload: Any) -> RpcRequest | RpcNotification:
    """
    Turn a parsed JSON value into a request or notification.

    Raises INVALID_REQUEST when the value is not a call object. The protocol
    version is carried through untouched; the dispatcher checks it.
    """
    if not isinstance(payload, dict):
        raise invalid_request("Request must be a JSON object")
    method = payload.get("method")
    if not isinstance(method, str) or not method:
        raise invalid_request("Request method must be a non-empty string")
    jsonrpc = payload.get("jsonrpc")
    version = jsonrpc if isinstance(jsonrpc, str) else ""
    if "id" not in payload:
        return RpcNotification(method=method, params=payload.get("params"), jsonrpc=version)
    req_id = payload["id"]
    if isinstance(req_id, bool) or not isinstance(req_id, (int, str)):
        raise invalid_request("Request id must be a number or string")
    return RpcRequest(id=req_id, method=method, params=payload.get("params"), jsonrpc=version)


def payload_id(payload: Any) -> RequestId | None:
    """Best-effort id of a frame that failed validation."""
    if isinstance(payload, dict):
        req_id = payload.get("id")
        if isinstance(req_id, (int, str)) and not isinstance(req_id, bool):
            return req_id
    return PARSE_ERROR_ID


def connection_frame(status: str, server: str, version: str) -> RpcResult:
    """Connection status announcement using the fixed ``"connection"`` id."""
    return RpcResult(
        id=CONNECTION_ID,
        result={"status": status, "server": server, "version": version},
    )
