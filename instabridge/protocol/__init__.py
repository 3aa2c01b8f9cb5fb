"""Wire protocol: frames, error translation, handler registry, progress."""

from instabridge.protocol.errors import (
    ErrorKind,
    RpcError,
    RPC_ERROR_CODES,
    internal,
    invalid_params,
    invalid_request,
    method_not_found,
    to_rpc_error,
    with_error_translation,
)
from instabridge.protocol.messages import (
    JSONRPC_VERSION,
    RpcErrorResponse,
    RpcNotification,
    RpcRequest,
    RpcResult,
    decode_message,
    encode_frame,
)
from instabridge.protocol.progress import ProgressCallback, ProgressReporter, ProgressUpdate
from instabridge.protocol.registry import CapabilityId, DuplicateHandlerError, HandlerRegistry

__all__ = [
    "ErrorKind",
    "RpcError",
    "RPC_ERROR_CODES",
    "internal",
    "invalid_params",
    "invalid_request",
    "method_not_found",
    "to_rpc_error",
    "with_error_translation",
    "JSONRPC_VERSION",
    "RpcErrorResponse",
    "RpcNotification",
    "RpcRequest",
    "RpcResult",
    "decode_message",
    "encode_frame",
    "ProgressCallback",
    "ProgressReporter",
    "ProgressUpdate",
    "CapabilityId",
    "DuplicateHandlerError",
    "HandlerRegistry",
]
