"""Line-delimited JSON-RPC transport over stdin/stdout."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import json
import sys
from typing import TYPE_CHECKING, Any, TextIO

from loguru import logger

from instabridge.protocol.errors import RpcError, internal, parse_error
from instabridge.protocol.messages import (
    PARSE_ERROR_ID,
    Frame,
    RpcErrorResponse,
    RpcNotification,
    RpcRequest,
    connection_frame,
    decode_message,
    encode_frame,
    payload_id,
)

if TYPE_CHECKING:
    from instabridge.server.dispatcher import Server

DEFAULT_READ_CHUNK = 64 * 1024


class TransportError(Exception):
    """Raised when the transport is used outside its connected state."""


async def open_stdin_reader() -> asyncio.StreamReader:
    """
    Attach a non-blocking StreamReader to the process stdin.

    Pipes, sockets and terminals are watched by the event loop. A regular
    file (``worker < requests.jsonl``) cannot be, so its contents are read on
    a worker thread and fed to the reader followed by end-of-input.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    except ValueError as e:
        stream = getattr(sys.stdin, "buffer", None)
        if stream is None:
            raise TransportError(f"Cannot read from stdin: {e}") from e
        logger.info(f"stdin is not a pipe ({e}); reading it to the end")
        data = await asyncio.to_thread(stream.read)
        reader.feed_data(data)
        reader.feed_eof()
    return reader


class StdioTransport:
    """
    Frames newline-delimited JSON documents between a controlling client and a Server.

    Every parsed request is handled in its own task, so a slow handler never
    blocks reading; responses go out in completion order and correlate by id.
    """

    def __init__(
        self,
        *,
        reader: asyncio.StreamReader | None = None,
        output: TextIO | None = None,
        read_chunk_size: int = DEFAULT_READ_CHUNK,
    ):
        self._reader = reader
        self._output = output
        self._read_chunk_size = read_chunk_size
        self._server: Server | None = None
        self._connected = False
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._read_task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._closed = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def pending_requests(self) -> int:
        return len(self._pending)

    def set_server(self, server: Server) -> None:
        self._server = server

    async def connect(self) -> None:
        """Start reading input and announce the connection. No-op when already connected."""
        if self._connected:
            logger.debug("Stdio transport already connected")
            return
        if self._server is None:
            raise TransportError("Server not initialized")

        if self._reader is None:
            self._reader = await open_stdin_reader()
        self._connected = True
        self._closed.clear()
        info = self._server.info
        self.send(connection_frame("connected", info.name, info.version))
        self._read_task = asyncio.create_task(self._read_loop(self._reader))
        logger.info("Stdio transport connected ({} {})", info.name, info.version)

    async def close(self) -> None:
        """Announce disconnection and stop reading. No-op when already closed."""
        if not self._connected:
            logger.debug("Stdio transport already closed")
            return
        if self._server is not None:
            info = self._server.info
            try:
                self.send(connection_frame("disconnected", info.name, info.version))
            except OSError as e:
                logger.warning(f"Could not send disconnect notification: {e}")
        self._connected = False
        self._buffer = ""
        self._decoder.reset()

        task = self._read_task
        self._read_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._closed.set()
        logger.info("Stdio transport closed")

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def receive(self, chunk: str | bytes) -> None:
        """Feed raw input; every complete line is parsed and dispatched."""
        if not self._connected:
            logger.debug("Ignoring input on closed transport")
            return
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline].strip()
            self._buffer = self._buffer[newline + 1:]
            if line:
                self._process_line(line)

    def send(self, message: Frame | dict[str, Any]) -> None:
        """Write one frame followed by a newline."""
        if not self._connected:
            raise TransportError("Transport not connected")
        out = self._output or sys.stdout
        out.write(encode_frame(message) + "\n")
        out.flush()

    def _process_line(self, line: str) -> None:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding malformed frame: {e}")
            self.send(RpcErrorResponse.from_error(PARSE_ERROR_ID, parse_error()))
            return
        try:
            message = decode_message(payload)
        except RpcError as e:
            logger.warning(f"Discarding invalid frame: {e.message}")
            self.send(RpcErrorResponse.from_error(payload_id(payload), e))
            return
        task = asyncio.create_task(self._dispatch(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _dispatch(self, message: RpcRequest | RpcNotification) -> None:
        server = self._server
        if server is None:
            if isinstance(message, RpcRequest):
                self._send_if_connected(RpcErrorResponse.from_error(message.id, internal("Server not initialized")))
            return
        try:
            response = await server.handle_request(message)
        except Exception as e:
            logger.exception("Dispatch of {} failed", message.method)
            if not isinstance(message, RpcRequest):
                return
            response = RpcErrorResponse.from_error(message.id, internal(str(e) or e.__class__.__name__))
        if response is not None:
            self._send_if_connected(response)

    def _send_if_connected(self, frame: Frame) -> None:
        if not self._connected:
            logger.warning("Dropping response for id {}: transport closed", getattr(frame, "id", None))
            return
        self.send(frame)

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        try:
            while True:
                chunk = await reader.read(self._read_chunk_size)
                if not chunk:
                    logger.info("Stdin ended")
                    break
                self.receive(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Stdin read error: {e}")
        if self._pending:
            # Requests read before end-of-input still get their responses.
            await asyncio.wait(set(self._pending))
        if self._connected:
            await self.close()
