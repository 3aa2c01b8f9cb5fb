"""Tests for the handler registry."""

import pytest

from instabridge.protocol.registry import CapabilityId, DuplicateHandlerError, HandlerRegistry


async def first(params):
    return "first"


async def second(params):
    return "second"


def test_alias_and_capability_id_resolve_to_same_handler():
    registry = HandlerRegistry()
    registry.register(CapabilityId.LIST_TOOLS, first, alias="list_tools")
    assert registry.get("list_tools") is first
    assert registry.get(CapabilityId.LIST_TOOLS) is first
    assert registry.resolve_alias("list_tools") is CapabilityId.LIST_TOOLS


def test_unknown_name_returns_none():
    registry = HandlerRegistry()
    registry.register(CapabilityId.LIST_TOOLS, first, alias="list_tools")
    assert registry.get("call_tool") is None
    assert registry.get(CapabilityId.CALL_TOOL) is None
    assert "call_tool" not in registry


def test_duplicate_capability_keeps_original():
    registry = HandlerRegistry()
    registry.register(CapabilityId.LIST_TOOLS, first, alias="list_tools")
    with pytest.raises(DuplicateHandlerError) as info:
        registry.register(CapabilityId.LIST_TOOLS, second)
    assert "capability.list_tools" in str(info.value)
    assert registry.get("list_tools") is first


def test_duplicate_alias_keeps_original():
    registry = HandlerRegistry()
    registry.register(CapabilityId.LIST_TOOLS, first, alias="tools")
    with pytest.raises(DuplicateHandlerError):
        registry.register(CapabilityId.CALL_TOOL, second, alias="tools")
    assert registry.get("tools") is first
    assert registry.get(CapabilityId.CALL_TOOL) is None


def test_len_and_method_names():
    registry = HandlerRegistry()
    registry.register(CapabilityId.LIST_TOOLS, first, alias="list_tools")
    registry.register(CapabilityId.CALL_TOOL, second, alias="call_tool")
    assert len(registry) == 2
    assert registry.method_names == ["list_tools", "call_tool"]
    assert CapabilityId.CALL_TOOL in registry
