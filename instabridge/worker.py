"""Worker host: wires config, collaborator, server and transport, and owns shutdown.

Lifecycle contract: once stdin ends (and requests already read are answered),
or on SIGINT or SIGTERM, the host calls ``transport.close()``, then
``server.close()``, then closes the collaborator.
Each step is idempotent, so overlapping shutdown signals are harmless.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal

from loguru import logger

from instabridge.config.schema import Config
from instabridge.instagram.service import InstagramService
from instabridge.instagram.types import PostFetcher
from instabridge.server.dispatcher import Server, ServerInfo
from instabridge.server.transport import StdioTransport
from instabridge.tools.catalog import build_tool_catalog, register_tool_handlers
from instabridge.tools.instagram_posts import TOOL_NAME

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_server(config: Config) -> Server:
    """Server announcing this worker's name, version and tool capabilities."""
    ig = config.instagram
    capabilities = {
        "tools": {
            TOOL_NAME: {
                "defaultSaveDir": ig.default_save_dir,
                "postsLogFile": ig.resolved_posts_log_file,
                "defaultDelay": ig.default_delay,
                "maxPostsPerBatch": ig.max_posts_per_batch,
                "batchBreakDelay": ig.batch_break_delay,
                "minDelay": ig.min_delay,
                "chromeUserDataDir": config.chrome_user_data_dir,
            }
        }
    }
    info = ServerInfo(name=config.name, version=config.version, capabilities=capabilities)
    return Server(info, progress_interval=config.progress.interval_seconds)


class WorkerHost:
    """Runs one stdio worker until input ends or a shutdown signal arrives."""

    def __init__(
        self,
        config: Config,
        *,
        fetcher: PostFetcher | None = None,
        transport: StdioTransport | None = None,
    ):
        self.config = config
        self.server = build_server(config)
        self.fetcher = fetcher or InstagramService(config)
        self.catalog = build_tool_catalog(self.server, self.fetcher, config)
        register_tool_handlers(self.server, self.catalog)
        self.transport = transport or StdioTransport()
        self._shutdown_started = False
        self._stop = asyncio.Event()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)
        try:
            await self.server.connect(self.transport)
            closed = asyncio.create_task(self.transport.wait_closed())
            stopped = asyncio.create_task(self._stop.wait())
            try:
                await asyncio.wait({closed, stopped}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closed.cancel()
                stopped.cancel()
        finally:
            await self.shutdown()
            for sig in installed:
                loop.remove_signal_handler(sig)

    async def shutdown(self) -> None:
        """Close transport, then server, then the collaborator."""
        if self._shutdown_started:
            return
        self._shutdown_started = True
        logger.info("Shutting down {}", self.config.name)
        try:
            await self.transport.close()
            await self.server.close()
        finally:
            await self.fetcher.close()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> list[signal.Signals]:
        installed: list[signal.Signals] = []
        for sig in SHUTDOWN_SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self._on_signal, sig)
                installed.append(sig)
        return installed

    def request_stop(self) -> None:
        """Ask a running host to shut down without waiting for pending requests."""
        self._stop.set()

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("Received {}, shutting down", sig.name)
        self.request_stop()
