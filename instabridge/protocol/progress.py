"""Progress throttling and heartbeat for long-running operations."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Union

from loguru import logger

HEARTBEAT_MESSAGE = "Processing..."
DEFAULT_INTERVAL_SECONDS = 45.0


@dataclass(slots=True)
class ProgressUpdate:
    """One progress event emitted by an operation."""

    message: str
    progress: int | None = None
    total: int | None = None
    keep_alive: bool = False

    def to_params(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "progress": self.progress,
            "total": self.total,
            "keepAlive": self.keep_alive,
        }


ProgressCallback = Callable[[Union[ProgressUpdate, str]], None]


class ProgressReporter:
    """
    Forwards progress for one running operation.

    keep_alive updates are throttled to one per interval; milestone updates
    (keep_alive=False) always go out and restart the window. While started, a
    heartbeat task sends a synthetic update whenever nothing has been
    forwarded for a whole interval.
    """

    def __init__(
        self,
        send: Callable[[ProgressUpdate], None],
        interval: float = DEFAULT_INTERVAL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError("progress interval must be positive")
        self._send = send
        self.interval = interval
        self._clock = clock
        self.current = 0
        self.total = 0
        self.last_sent_at: float | None = None
        self._heartbeat_task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._heartbeat_task is not None

    def report(self, update: ProgressUpdate | str) -> bool:
        """Record an update and forward it unless throttled. Returns True when forwarded."""
        if isinstance(update, str):
            update = ProgressUpdate(message=update)
        if update.progress is not None:
            self.current = update.progress
        if update.total is not None:
            self.total = update.total
        now = self._clock()
        if update.keep_alive and not self._window_elapsed(now):
            return False
        self._forward(
            ProgressUpdate(
                message=update.message,
                progress=self.current,
                total=self.total,
                keep_alive=update.keep_alive,
            ),
            now,
        )
        return True

    def start(self) -> None:
        """Start (or restart) the heartbeat task; requires a running event loop."""
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    def stop(self) -> None:
        """Cancel the heartbeat task. Safe to call repeatedly."""
        task = self._heartbeat_task
        if task is None:
            return
        self._heartbeat_task = None
        task.cancel()

    async def __aenter__(self) -> "ProgressReporter":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.stop()

    def _window_elapsed(self, now: float) -> bool:
        return self.last_sent_at is None or now - self.last_sent_at >= self.interval

    def _forward(self, update: ProgressUpdate, now: float) -> None:
        self.last_sent_at = now
        self._send(update)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            now = self._clock()
            if not self._window_elapsed(now):
                continue
            try:
                self._forward(
                    ProgressUpdate(
                        message=HEARTBEAT_MESSAGE,
                        progress=self.current,
                        total=self.total,
                        keep_alive=True,
                    ),
                    now,
                )
            except Exception as e:
                logger.warning(f"Progress heartbeat failed: {e}")
