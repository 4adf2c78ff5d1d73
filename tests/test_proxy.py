import logging

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from multidict import CIMultiDict

from openrpc_tool.check import Annotation, MethodChecker
from openrpc_tool.document import ContentDescriptor, Method, OpenRPC
from openrpc_tool.errors import ToolError
from openrpc_tool.proxy import (
    HOP_BY_HOP,
    RESPONSE_SKIP,
    ProxyConfig,
    create_app,
    default_concurrency,
    inspect_exchange,
    parse_address,
    relay_headers,
)


def make_checker():
    method = Method(
        name="add",
        params=[
            ContentDescriptor(name="a", schema={"type": "integer"}, required=True),
            ContentDescriptor(name="b", schema={"type": "integer"}, required=True),
        ],
        result=ContentDescriptor(name="sum", schema={"type": "integer"}),
    )
    document = OpenRPC(openrpc="1.2.6", info={"title": "t", "version": "1"}, methods=[method])
    return MethodChecker.from_document(document)


def test_parse_address():
    assert parse_address("127.0.0.1:8080") == ("127.0.0.1", 8080)
    assert parse_address("[::1]:9000") == ("::1", 9000)
    assert parse_address(":80") == ("0.0.0.0", 80)
    with pytest.raises(ToolError):
        parse_address("localhost")


def test_default_concurrency_is_positive():
    assert default_concurrency() >= 1


def test_inspect_exchange_passes_and_fails():
    checker = make_checker()
    request = b'{"jsonrpc": "2.0", "method": "add", "params": [1, 2], "id": 1}'
    assert inspect_exchange(checker, request, b'{"jsonrpc": "2.0", "id": 1, "result": 3}') == []
    assert inspect_exchange(checker, request, b'{"jsonrpc": "2.0", "id": 1, "result": "3"}') == [
        Annotation.INVALID_RESULT
    ]


def test_inspect_exchange_skips(caplog):
    checker = make_checker()
    with caplog.at_level(logging.DEBUG, logger="openrpc_tool.skip"):
        assert inspect_exchange(checker, b"<html>", b"<html>") is None
        unknown = b'{"jsonrpc": "2.0", "method": "sub", "id": 1}'
        assert inspect_exchange(checker, unknown, b'{"jsonrpc": "2.0", "id": 1, "result": 0}') is None
    assert "not a JSON-RPC exchange" in caplog.text
    assert "not a specified method: sub" in caplog.text


async def _origin(request):
    payload = await request.json()
    return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "result": sum(payload["params"])})


@pytest.mark.asyncio
async def test_proxy_relays_and_logs(caplog):
    origin_app = web.Application()
    origin_app.router.add_post("/rpc/v1", _origin)
    async with TestServer(origin_app) as origin:
        config = ProxyConfig(remote=str(origin.make_url("/rpc/v1")), concurrency=2)
        async with TestClient(TestServer(create_app(make_checker(), config))) as client:
            with caplog.at_level(logging.INFO, logger="openrpc_tool.validate"):
                resp = await client.post("/", json={"jsonrpc": "2.0", "method": "add", "params": [1, 2], "id": 7})
                assert resp.status == 200
                assert await resp.json() == {"jsonrpc": "2.0", "id": 7, "result": 3}

                resp = await client.post("/", json={"jsonrpc": "2.0", "method": "add", "params": [1], "id": 8})
                assert await resp.json() == {"jsonrpc": "2.0", "id": 8, "result": 1}
    assert "method=add passed" in caplog.text
    assert "method=add failed annotations=missing-required-param" in caplog.text


@pytest.mark.asyncio
async def test_proxy_reports_unreachable_origin():
    config = ProxyConfig(remote="http://127.0.0.1:1/rpc/v1", concurrency=1)
    async with TestClient(TestServer(create_app(make_checker(), config))) as client:
        resp = await client.post("/", json={"jsonrpc": "2.0", "method": "add", "params": [1, 2], "id": 1})
        assert resp.status == 502


async def _fixed_origin(request):
    await request.read()
    return web.json_response({"jsonrpc": "2.0", "id": 1, "result": 3})


async def _relay(checker, **kwargs):
    origin_app = web.Application()
    origin_app.router.add_post("/rpc/v1", _fixed_origin)
    async with TestServer(origin_app) as origin:
        config = ProxyConfig(remote=str(origin.make_url("/rpc/v1")), concurrency=1)
        async with TestClient(TestServer(create_app(checker, config))) as client:
            resp = await client.post("/", **kwargs)
            return resp.status, await resp.json()


@pytest.mark.asyncio
async def test_deeply_nested_request_is_still_relayed():
    depth = 100000
    body = b'{"jsonrpc": "2.0", "method": "add", "id": 1, "params": [' + b"[" * depth + b"]" * depth + b"]}"
    status, payload = await _relay(make_checker(), data=body, headers={"Content-Type": "application/json"})
    assert status == 200
    assert payload == {"jsonrpc": "2.0", "id": 1, "result": 3}


@pytest.mark.asyncio
async def test_check_failure_still_relays_origin_response(caplog):
    schema = {"type": "object", "dependencies": {"a": {"$ref": "#/components/schemas/Missing"}}}
    method = Method(name="add", params=[ContentDescriptor(name="a", schema=schema)])
    document = OpenRPC(openrpc="1.2.6", info={"title": "t", "version": "1"}, methods=[method])
    checker = MethodChecker.from_document(document)
    request = {"jsonrpc": "2.0", "method": "add", "params": [{"a": 1}], "id": 1}
    with caplog.at_level(logging.ERROR, logger="openrpc_tool.proxy"):
        status, payload = await _relay(checker, json=request)
    assert status == 200
    assert payload == {"jsonrpc": "2.0", "id": 1, "result": 3}
    assert "couldn't check exchange" in caplog.text


def test_relay_headers_drops_connection_headers_and_keeps_repeats():
    headers = CIMultiDict(
        [
            ("Connection", "keep-alive, X-Trace"),
            ("Keep-Alive", "timeout=5"),
            ("X-Trace", "abc"),
            ("Transfer-Encoding", "chunked"),
            ("Content-Encoding", "gzip"),
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
            ("Content-Type", "application/json"),
        ]
    )
    relayed = relay_headers(headers, RESPONSE_SKIP)
    assert list(relayed.items()) == [
        ("Set-Cookie", "a=1"),
        ("Set-Cookie", "b=2"),
        ("Content-Type", "application/json"),
    ]
    assert "Content-Encoding" in relay_headers(headers, HOP_BY_HOP)


async def _cookie_origin(request):
    await request.read()
    response = web.json_response({"jsonrpc": "2.0", "id": 1, "result": 3})
    response.headers.add("X-Served-By", "one")
    response.headers.add("X-Served-By", "two")
    return response


@pytest.mark.asyncio
async def test_proxy_keeps_repeated_response_headers():
    origin_app = web.Application()
    origin_app.router.add_post("/rpc/v1", _cookie_origin)
    async with TestServer(origin_app) as origin:
        config = ProxyConfig(remote=str(origin.make_url("/rpc/v1")), concurrency=1)
        async with TestClient(TestServer(create_app(make_checker(), config))) as client:
            resp = await client.post("/", json={"jsonrpc": "2.0", "method": "add", "params": [1, 2], "id": 1})
            assert resp.status == 200
            assert resp.headers.getall("X-Served-By") == ["one", "two"]
