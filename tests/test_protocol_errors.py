"""Tests for error kinds and exception translation."""

import pytest

from instabridge.protocol.errors import (
    ErrorKind,
    RpcError,
    internal,
    invalid_params,
    invalid_request,
    method_not_found,
    parse_error,
    to_rpc_error,
    with_error_translation,
)
from instabridge.utils.exceptions import BrowserError, NoContentError, StorageError, ValidationError


def test_error_kinds_map_to_json_rpc_codes():
    assert parse_error().code == -32700
    assert invalid_request("x").code == -32600
    assert method_not_found("x").code == -32601
    assert invalid_params("x").code == -32602
    assert internal("x").code == -32603


def test_method_not_found_names_the_method():
    err = method_not_found("nope")
    assert err.kind is ErrorKind.METHOD_NOT_FOUND
    assert err.message == "Unknown method: nope"


def test_rpc_error_to_dict_omits_missing_data():
    assert invalid_params("bad").to_dict() == {"code": -32602, "message": "bad"}
    err = RpcError(ErrorKind.INTERNAL_ERROR, "boom", data={"retry": True})
    assert err.to_dict() == {"code": -32603, "message": "boom", "data": {"retry": True}}


def test_to_rpc_error_passes_rpc_errors_through():
    err = invalid_params("bad")
    assert to_rpc_error(err) is err


def test_no_content_is_an_invalid_request():
    err = to_rpc_error(NoContentError("No posts found", target="someone"))
    assert err.kind is ErrorKind.INVALID_REQUEST
    assert err.message == "No posts found"


def test_validation_error_is_invalid_params():
    err = to_rpc_error(ValidationError("limit too big", field="limit"))
    assert err.kind is ErrorKind.INVALID_PARAMS
    assert err.message == "limit too big"


@pytest.mark.parametrize(
    "exc",
    [
        BrowserError("cdp down", is_retryable=True),
        StorageError("disk full", path="/tmp/x"),
    ],
)
def test_other_domain_errors_are_internal_without_code_prefix(exc):
    err = to_rpc_error(exc)
    assert err.kind is ErrorKind.INTERNAL_ERROR
    assert err.message == exc.message
    assert "[" not in err.message


def test_plain_exceptions_keep_their_message():
    err = to_rpc_error(RuntimeError("boom"))
    assert err.kind is ErrorKind.INTERNAL_ERROR
    assert err.message == "boom"


def test_exception_without_message_uses_class_name():
    assert to_rpc_error(KeyError()).message == "KeyError"


@pytest.mark.asyncio
async def test_with_error_translation_returns_result():
    @with_error_translation
    async def handler(params):
        return {"echo": params}

    assert await handler(1) == {"echo": 1}
    assert handler.__name__ == "handler"


@pytest.mark.asyncio
async def test_with_error_translation_chains_original_exception():
    @with_error_translation
    async def handler(params):
        raise ValueError("bad value")

    with pytest.raises(RpcError) as info:
        await handler(None)
    assert info.value.kind is ErrorKind.INTERNAL_ERROR
    assert info.value.message == "bad value"
    assert isinstance(info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_with_error_translation_keeps_rpc_errors():
    original = invalid_params("nope")

    @with_error_translation
    async def handler(params):
        raise original

    with pytest.raises(RpcError) as info:
        await handler(None)
    assert info.value is original
