"""ASGI response sending — flushes a finished Response through ``send()``.

Called exactly once per request, after the chain has marked the response
as sent.
"""

from switchyard._internal.asgi import Send
from switchyard.http.response import Response


def _body_allowed(status: int, method: str) -> bool:
    """Whether a response body may be sent for this status and method."""
    # RFC: 1xx, 204, and 304 responses, and HEAD responses, carry no body.
    if method == "HEAD":
        return False
    return not (100 <= status < 200 or status in {204, 304})


def encode_headers(response: Response, content_length: int) -> list[tuple[bytes, bytes]]:
    """Raw ASGI header pairs for *response*, including cookies and length."""
    raw_headers: list[tuple[bytes, bytes]] = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers
        if name.lower() != "content-length"
    ]
    raw_headers.extend(
        (b"set-cookie", cookie.to_header_value().encode("latin-1")) for cookie in response.cookies
    )
    raw_headers.append((b"content-length", str(content_length).encode("latin-1")))
    return raw_headers


async def send_response(response: Response, send: Send, *, method: str = "GET") -> None:
    """Translate a switchyard Response into ASGI send() calls."""
    body = response.body if _body_allowed(response.status_code, method) else b""
    length = len(response.body) if method == "HEAD" else len(body)

    await send(
        {
            "type": "http.response.start",
            "status": response.status_code,
            "headers": encode_headers(response, length),
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
