"""HTTP proxy that checks JSON-RPC traffic against an OpenRPC document.

::

    client --request--> proxy --request--> origin
    client <-response-- proxy <-response-- origin
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

import psutil
from aiohttp import ClientError, ClientSession, web
from multidict import CIMultiDict, MultiMapping

from .check import Annotation, MethodChecker
from .errors import ToolError
from .jsonrpc import parse_request, parse_response

logger = logging.getLogger(__name__)
validate_logger = logging.getLogger("openrpc_tool.validate")
skip_logger = logging.getLogger("openrpc_tool.skip")

# Headers that describe a single connection and must not be relayed.
HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    }
)
# The origin body is relayed already decompressed.
RESPONSE_SKIP = HOP_BY_HOP | {"content-encoding"}


@dataclass
class ProxyConfig:
    remote: str
    concurrency: int


CHECKER_KEY = web.AppKey("checker", MethodChecker)
CONFIG_KEY = web.AppKey("config", ProxyConfig)
SESSION_KEY = web.AppKey("session", ClientSession)
LIMIT_KEY = web.AppKey("limit", asyncio.Semaphore)


def default_concurrency() -> int:
    return psutil.cpu_count() or 1


def relay_headers(headers: MultiMapping[str], skip: FrozenSet[str]) -> CIMultiDict:
    """Copy headers for the next hop, keeping repeats in order.

    Drops ``skip`` and any header named in ``Connection``.
    """
    dropped = set(skip)
    for value in headers.getall("Connection", ()):
        dropped.update(token.strip().lower() for token in value.split(",") if token.strip())
    return CIMultiDict((key, value) for key, value in headers.items() if key.lower() not in dropped)


def parse_address(local: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into its parts."""
    host, sep, port = local.rpartition(":")
    if not sep or not port.isdigit():
        raise ToolError(f"expected HOST:PORT, got {local!r}")
    return host.strip("[]") or "0.0.0.0", int(port)


def inspect_exchange(checker: MethodChecker, request_body: bytes, response_body: bytes) -> Optional[List[Annotation]]:
    """Check one exchange and log the outcome.

    Returns the annotations, or ``None`` when the exchange was skipped.
    """
    try:
        request = parse_request(request_body)
        response = parse_response(response_body)
    except ValueError:
        skip_logger.debug("not a JSON-RPC exchange")
        return None

    check = checker.get(request.method)
    if check is None:
        skip_logger.debug("not a specified method: %s", request.method)
        return None

    annotations = check.check(request, response)
    if annotations:
        validate_logger.info(
            "method=%s failed annotations=%s",
            request.method,
            ", ".join(annotation.value for annotation in annotations),
        )
    else:
        validate_logger.info("method=%s passed", request.method)
    return annotations


async def handle(request: web.Request) -> web.StreamResponse:
    app = request.app
    config = app[CONFIG_KEY]
    peer = request.remote

    async with app[LIMIT_KEY]:
        body = await request.read()
        headers = relay_headers(request.headers, HOP_BY_HOP)
        try:
            async with app[SESSION_KEY].request(
                request.method, config.remote, headers=headers, data=body
            ) as origin:
                origin_body = await origin.read()
                status = origin.status
                origin_headers = relay_headers(origin.headers, RESPONSE_SKIP)
        except (ClientError, asyncio.TimeoutError) as exc:
            logger.error("couldn't forward request from %s to origin: %s", peer, exc)
            return web.Response(status=502, text="couldn't forward to origin")

        try:
            inspect_exchange(app[CHECKER_KEY], body, origin_body)
        except Exception:
            logger.exception("couldn't check exchange from %s, relaying the response anyway", peer)
        logger.debug("finished serving client %s", peer)
        return web.Response(status=status, headers=origin_headers, body=origin_body)


async def _resources(app: web.Application):
    app[LIMIT_KEY] = asyncio.Semaphore(app[CONFIG_KEY].concurrency)
    async with ClientSession() as session:
        app[SESSION_KEY] = session
        yield


def create_app(checker: MethodChecker, config: ProxyConfig) -> web.Application:
    app = web.Application()
    app[CHECKER_KEY] = checker
    app[CONFIG_KEY] = config
    app.cleanup_ctx.append(_resources)
    app.router.add_route("*", "/{tail:.*}", handle)
    return app


def serve(checker: MethodChecker, local: str, config: ProxyConfig) -> None:
    """Run until interrupted; Ctrl-C drains outstanding requests before exiting."""
    host, port = parse_address(local)
    logger.info("listening on %s:%d, forwarding to %s", host, port, config.remote)
    web.run_app(
        create_app(checker, config),
        host=host,
        port=port,
        print=None,
        access_log=None,
        handle_signals=True,
    )
    logger.info("finished graceful shutdown")
