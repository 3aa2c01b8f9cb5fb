"""Handler registry: capability ids plus a separate alias table for wire method names."""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable

Handler = Callable[[Any], Awaitable[Any]]


class CapabilityId(Enum):
    """Stable internal tokens for the operations this worker exposes."""
    LIST_TOOLS = "capability.list_tools"
    CALL_TOOL = "capability.call_tool"


class DuplicateHandlerError(Exception):
    """Raised at setup time when a capability id or alias is registered twice."""

    def __init__(self, key: CapabilityId | str):
        label = key.value if isinstance(key, CapabilityId) else key
        super().__init__(f"Handler already registered: {label}")
        self.key = key


class HandlerRegistry:
    """
    Registry of operation handlers.

    Lookup by name tries a direct entry first, then resolves the name through
    the alias table to a capability id. Entries are never replaced.
    """

    def __init__(self) -> None:
        self._handlers: dict[CapabilityId | str, Handler] = {}
        self._aliases: dict[str, CapabilityId] = {}

    def register(self, capability_id: CapabilityId, handler: Handler, alias: str | None = None) -> None:
        """Register a handler; raises DuplicateHandlerError instead of overwriting."""
        if capability_id in self._handlers:
            raise DuplicateHandlerError(capability_id)
        if alias is not None and (alias in self._aliases or alias in self._handlers):
            raise DuplicateHandlerError(alias)
        self._handlers[capability_id] = handler
        if alias is not None:
            self._handlers[alias] = handler
            self._aliases[alias] = capability_id

    def get(self, key: CapabilityId | str) -> Handler | None:
        """Return the handler for a capability id or method name, or None."""
        handler = self._handlers.get(key)
        if handler is not None or not isinstance(key, str):
            return handler
        capability_id = self._aliases.get(key)
        if capability_id is None:
            return None
        return self._handlers.get(capability_id)

    def resolve_alias(self, alias: str) -> CapabilityId | None:
        return self._aliases.get(alias)

    @property
    def method_names(self) -> list[str]:
        """Wire method names (aliases) in registration order."""
        return list(self._aliases)

    def __len__(self) -> int:
        return sum(1 for key in self._handlers if isinstance(key, CapabilityId))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (CapabilityId, str)) and self.get(key) is not None
