"""Protocol error kinds, JSON-RPC codes and translation of arbitrary exceptions."""

from __future__ import annotations

import functools
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from instabridge.utils.exceptions import InstabridgeError, NoContentError, ValidationError

T = TypeVar("T")


class ErrorKind(Enum):
    """Abstract error categories surfaced on the wire."""
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_PARAMS = "INVALID_PARAMS"
    METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


RPC_ERROR_CODES: dict[ErrorKind, int] = {
    ErrorKind.PARSE_ERROR: -32700,
    ErrorKind.INVALID_REQUEST: -32600,
    ErrorKind.METHOD_NOT_FOUND: -32601,
    ErrorKind.INVALID_PARAMS: -32602,
    ErrorKind.INTERNAL_ERROR: -32603,
}


class RpcError(Exception):
    """Error that knows its protocol kind; raised by handlers, rendered by the dispatcher."""

    def __init__(self, kind: ErrorKind, message: str, data: Any = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.data = data

    @property
    def code(self) -> int:
        return RPC_ERROR_CODES[self.kind]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


def parse_error(message: str = "Parse error") -> RpcError:
    return RpcError(ErrorKind.PARSE_ERROR, message)


def invalid_request(message: str) -> RpcError:
    return RpcError(ErrorKind.INVALID_REQUEST, message)


def invalid_params(message: str) -> RpcError:
    """Caller sent arguments the operation cannot accept."""
    return RpcError(ErrorKind.INVALID_PARAMS, message)


def method_not_found(name: str) -> RpcError:
    """No operation (or tool) is registered under ``name``."""
    return RpcError(ErrorKind.METHOD_NOT_FOUND, f"Unknown method: {name}")


def internal(message: str) -> RpcError:
    return RpcError(ErrorKind.INTERNAL_ERROR, message)


def to_rpc_error(exc: BaseException) -> RpcError:
    """
    Coerce any exception into an RpcError.

    A collaborator reporting that its target has nothing to return is the
    caller's problem (INVALID_REQUEST), not a server fault. Everything
    unrecognised becomes INTERNAL_ERROR with the original message.
    """
    if isinstance(exc, RpcError):
        return exc
    if isinstance(exc, NoContentError):
        return RpcError(ErrorKind.INVALID_REQUEST, exc.message)
    if isinstance(exc, ValidationError):
        return RpcError(ErrorKind.INVALID_PARAMS, exc.message)
    if isinstance(exc, InstabridgeError):
        return RpcError(ErrorKind.INTERNAL_ERROR, exc.message)
    message = str(exc) or exc.__class__.__name__
    return RpcError(ErrorKind.INTERNAL_ERROR, message)


def with_error_translation(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Wrap an async handler so everything it raises leaves as an RpcError."""

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except RpcError:
            raise
        except Exception as exc:
            raise to_rpc_error(exc) from exc

    return wrapper
