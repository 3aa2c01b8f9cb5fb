"""Request dispatcher: owns the handler registry and the bound transport."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from loguru import logger

from instabridge.protocol.errors import (
    ErrorKind,
    RpcError,
    invalid_request,
    to_rpc_error,
    with_error_translation,
)
from instabridge.protocol.messages import (
    JSONRPC_VERSION,
    RpcErrorResponse,
    RpcNotification,
    RpcRequest,
    RpcResult,
)
from instabridge.protocol.progress import DEFAULT_INTERVAL_SECONDS, ProgressReporter, ProgressUpdate
from instabridge.protocol.registry import CapabilityId, Handler, HandlerRegistry
from instabridge.server.transport import StdioTransport, TransportError
from instabridge.utils.exceptions import classify_exception, sanitize_error_message


@dataclass(slots=True)
class ServerInfo:
    """Name and version announced on connect."""

    name: str
    version: str
    capabilities: dict[str, Any] = field(default_factory=dict)


class Server:
    """Resolves wire methods to handlers and turns outcomes into response frames."""

    def __init__(self, info: ServerInfo, *, progress_interval: float = DEFAULT_INTERVAL_SECONDS):
        self.info = info
        self.progress_interval = progress_interval
        self.registry = HandlerRegistry()
        self.transport: StdioTransport | None = None
        self._reporters: set[ProgressReporter] = set()

    @property
    def connected(self) -> bool:
        return self.transport is not None and self.transport.connected

    def set_handler(self, capability_id: CapabilityId, handler: Handler, alias: str | None = None) -> None:
        """Register ``handler`` wrapped with error translation. Raises DuplicateHandlerError."""
        self.registry.register(capability_id, with_error_translation(handler), alias)
        logger.debug("Registered handler {} (alias={})", capability_id.value, alias)

    def get_handler(self, key: CapabilityId | str) -> Handler | None:
        return self.registry.get(key)

    async def connect(self, transport: StdioTransport) -> None:
        """Bind ``transport`` and start it. Only one transport may be bound."""
        if self.transport is not None and self.transport is not transport:
            raise TransportError("A transport is already bound to this server")
        transport.set_server(self)
        self.transport = transport
        await transport.connect()

    async def close(self) -> None:
        """Stop running heartbeats and release the transport. Safe to call repeatedly."""
        for reporter in list(self._reporters):
            reporter.stop()
        self._reporters.clear()
        transport = self.transport
        if transport is None:
            return
        self.transport = None
        await transport.close()
        logger.info("Server {} closed", self.info.name)

    async def handle_request(
        self, message: RpcRequest | RpcNotification
    ) -> RpcResult | RpcErrorResponse | None:
        """Run the handler for one inbound message; notifications yield no response."""
        request_id = message.id if isinstance(message, RpcRequest) else None
        try:
            if message.jsonrpc != JSONRPC_VERSION:
                raise invalid_request("Invalid JSON-RPC version")
            handler = self.get_handler(message.method)
            if handler is None:
                raise RpcError(ErrorKind.METHOD_NOT_FOUND, f"Method not found: {message.method}")
            result = await handler(message.params)
        except Exception as exc:
            error = to_rpc_error(exc)
            self._log_failure(message.method, exc, error)
            if request_id is None:
                return None
            return RpcErrorResponse.from_error(request_id, error)
        if request_id is None:
            return None
        return RpcResult(id=request_id, result=result)

    def send_progress(self, update: ProgressUpdate) -> None:
        """Emit a progress notification; dropped silently when no transport is connected."""
        transport = self.transport
        if transport is None or not transport.connected:
            logger.debug("Progress dropped (not connected): {}", update.message)
            return
        transport.send({"jsonrpc": JSONRPC_VERSION, "method": "progress", "params": update.to_params()})

    @contextlib.asynccontextmanager
    async def track_progress(self) -> AsyncIterator[ProgressReporter]:
        """Run a heartbeat-backed ProgressReporter for the duration of one operation."""
        reporter = ProgressReporter(self.send_progress, self.progress_interval)
        self._reporters.add(reporter)
        reporter.start()
        try:
            yield reporter
        finally:
            reporter.stop()
            self._reporters.discard(reporter)

    @property
    def active_operations(self) -> int:
        return len(self._reporters)

    @staticmethod
    def _log_failure(method: str, exc: Exception, error: RpcError) -> None:
        cause = exc.__cause__ if isinstance(exc, RpcError) and exc.__cause__ else exc
        if error.kind is ErrorKind.INTERNAL_ERROR:
            code, category, _ = classify_exception(cause)  # type: ignore[arg-type]
            logger.error(
                "RPC method {} failed with [{}/{}]: {}",
                method,
                code,
                category.value,
                sanitize_error_message(error.message),
            )
        else:
            logger.warning("RPC method {} rejected: {}", method, sanitize_error_message(error.message))
