"""Tool catalogue behind the list_tools / call_tool capabilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from instabridge.protocol.errors import invalid_params, method_not_found
from instabridge.protocol.progress import ProgressReporter
from instabridge.protocol.registry import CapabilityId, DuplicateHandlerError
from instabridge.tools.instagram_posts import run_get_instagram_posts, tool_descriptor

if TYPE_CHECKING:
    from instabridge.config.schema import Config
    from instabridge.instagram.types import PostFetcher
    from instabridge.server.dispatcher import Server

ToolRunner = Callable[[dict[str, Any], ProgressReporter], Awaitable[Any]]


@dataclass(slots=True)
class ToolEntry:
    descriptor: dict[str, Any]
    run: ToolRunner

    @property
    def name(self) -> str:
        return str(self.descriptor["name"])


class ToolCatalog:
    """
    Named tools with declared input shapes.

    Every call runs inside the server's progress tracking, so the heartbeat
    is active exactly while a tool is executing.
    """

    def __init__(self, server: Server):
        self._server = server
        self._tools: dict[str, ToolEntry] = {}

    def register(self, descriptor: dict[str, Any], run: ToolRunner) -> None:
        entry = ToolEntry(descriptor=descriptor, run=run)
        if entry.name in self._tools:
            raise DuplicateHandlerError(entry.name)
        self._tools[entry.name] = entry

    def get(self, name: str) -> ToolEntry | None:
        return self._tools.get(name)

    def definitions(self) -> list[dict[str, Any]]:
        return [entry.descriptor for entry in self._tools.values()]

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    async def list_tools(self, _params: Any = None) -> dict[str, Any]:
        return {"tools": self.definitions()}

    async def call_tool(self, params: Any) -> Any:
        if not isinstance(params, dict):
            raise invalid_params("call_tool params must be an object")
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise invalid_params("Tool name is required")
        entry = self.get(name)
        if entry is None:
            raise method_not_found(name)
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise invalid_params("Tool arguments must be an object")
        async with self._server.track_progress() as reporter:
            return await entry.run(arguments, reporter)


def build_tool_catalog(server: Server, fetcher: PostFetcher, config: Config) -> ToolCatalog:
    """Catalogue with the Instagram posts tool bound to ``fetcher``."""
    batch_size = config.instagram.max_posts_per_batch
    catalog = ToolCatalog(server)

    async def _run(arguments: dict[str, Any], reporter: ProgressReporter) -> dict[str, Any]:
        return await run_get_instagram_posts(arguments, fetcher=fetcher, reporter=reporter, batch_size=batch_size)

    catalog.register(tool_descriptor(batch_size), _run)
    return catalog


def register_tool_handlers(server: Server, catalog: ToolCatalog) -> None:
    """Expose the catalogue as the list_tools / call_tool capabilities."""
    server.set_handler(CapabilityId.LIST_TOOLS, catalog.list_tools, alias="list_tools")
    server.set_handler(CapabilityId.CALL_TOOL, catalog.call_tool, alias="call_tool")
