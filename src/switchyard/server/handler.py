"""ASGI handler — translates ASGI scope/messages to switchyard types.

The only component that touches raw ASGI directly. For each request it:

1. builds the Request and Response contexts from the scope
2. drains and decodes the body (POST/PUT/PATCH) before any handler runs
3. runs the chain over the registry snapshot
4. flushes the response through ``send()`` as soon as it is marked sent
"""

import logging
from collections.abc import Sequence
from functools import partial

import anyio

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard.chain.executor import run_chain
from switchyard.config import AppConfig
from switchyard.errors import PayloadTooLarge
from switchyard.http.body import BODY_METHODS, decode, read_body
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.routing.entry import RouteEntry
from switchyard.server.errors import send_error, send_timeout
from switchyard.server.sender import send_response

logger = logging.getLogger("switchyard.server")


async def prepare_body(request: Request, receive: Receive, config: AppConfig) -> None:
    """Read and decode the body into ``request.raw_body`` / ``request.body``.

    Methods without a body leave ``request.body`` as None and never touch
    the receive stream. Raises ``PayloadTooLarge``.
    """
    if request.method not in BODY_METHODS:
        return
    declared = request.content_length
    if declared is not None and declared > config.max_content_length:
        raise PayloadTooLarge(config.max_content_length)
    raw = await read_body(
        receive,
        timeout=config.body_timeout,
        max_length=config.max_content_length,
    )
    request.raw_body = raw
    request.body = decode(request.method, request.headers, raw)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    entries: Sequence[RouteEntry],
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    response = Response(json_content_type=config.json_content_type)

    try:
        await prepare_body(request, receive, config)
    except PayloadTooLarge as exc:
        send_error(exc, request, response, debug=config.debug)
        await send_response(response, send, method=request.method)
        return

    expired_after: float | None = None
    try:
        async with anyio.create_task_group() as tg:
            finished = anyio.Event()
            response.add_send_listener(finished.set)
            tg.start_soon(
                partial(run_chain, request, response, entries, debug=config.debug)
            )

            with anyio.move_on_after(config.handler_timeout) as scope_:
                await finished.wait()
            if scope_.cancelled_caught:
                expired_after = config.handler_timeout
                tg.cancel_scope.cancel()
            else:
                # Flush now; handler work still running after the response
                # (logging, cleanup) finishes before the task group exits.
                await send_response(response, send, method=request.method)
    except Exception as exc:
        # Handler exceptions never get here; this is a failure inside the
        # pipeline itself. Answer if we still can.
        logger.exception("Unhandled failure while serving %s %s", request.method, request.path)
        if not response.sent:
            send_error(exc, request, response, debug=config.debug)
            await send_response(response, send, method=request.method)
        return

    if expired_after is not None:
        send_timeout(request, response, expired_after)
        await send_response(response, send, method=request.method)
