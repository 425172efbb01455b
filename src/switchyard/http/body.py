"""Request body reading and decoding.

The pipeline drains the ASGI receive stream before the chain starts, so
every handler sees a populated ``req.body``:

    POST/PUT/PATCH + application/json                   -> parsed JSON
    POST/PUT/PATCH + application/x-www-form-urlencoded  -> flat dict
    POST/PUT/PATCH + anything else                      -> text
    any other method                                    -> None

Decoding never fails the request. Malformed JSON degrades to the raw
text, and a stalled client is cut off after ``body_timeout`` seconds
with whatever was buffered so far.
"""

import json as json_module
import logging
from collections.abc import Mapping
from typing import Any

import anyio

from switchyard._internal.asgi import Receive
from switchyard.errors import PayloadTooLarge
from switchyard.http.query import parse_flat

logger = logging.getLogger("switchyard.body")

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


def media_type(content_type: str | None) -> str:
    """``"application/json; charset=utf-8"`` -> ``"application/json"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_json_media_type(value: str) -> bool:
    return value == JSON_MEDIA_TYPE or (value.startswith("application/") and value.endswith("+json"))


async def read_body(
    receive: Receive,
    *,
    timeout: float = 30.0,
    max_length: int | None = None,
) -> bytes:
    """Drain the ASGI receive stream and return the body bytes.

    Returns early with the bytes buffered so far when *timeout* elapses
    or the client disconnects. Raises ``PayloadTooLarge`` as soon as the
    buffered size exceeds *max_length*.
    """
    chunks: list[bytes] = []
    size = 0
    with anyio.move_on_after(timeout) as scope:
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                logger.debug("Client disconnected after %d body bytes", size)
                break
            chunk = message.get("body", b"")
            if chunk:
                size += len(chunk)
                if max_length is not None and size > max_length:
                    raise PayloadTooLarge(max_length)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
    if scope.cancelled_caught:
        logger.warning(
            "Request body read timed out after %.1fs; continuing with %d buffered bytes",
            timeout,
            size,
        )
    return b"".join(chunks)


def decode(method: str, headers: Mapping[str, str], raw: bytes) -> Any:
    """Decode *raw* according to the declared Content-Type.

    *headers* is any mapping with case-insensitive ``get`` (``Headers``)
    or lower-case keys.
    """
    if method.upper() not in BODY_METHODS:
        return None

    kind = media_type(headers.get("content-type"))
    text = raw.decode("utf-8", errors="replace")

    if is_json_media_type(kind):
        try:
            return json_module.loads(text)
        except ValueError as exc:
            logger.debug("Malformed JSON body, falling back to raw text: %s", exc)
            return text
    if kind == FORM_MEDIA_TYPE:
        return parse_flat(text)
    return text
