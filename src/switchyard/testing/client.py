"""Async test client for switchyard applications.

Drives the app through its ASGI interface in-process. No sockets,
no HTTP parsing: the client fabricates the scope and receive stream,
and records what the app passes to ``send()``.
"""

import json as json_module
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from switchyard.app import App
from switchyard.http.cookies import parse_cookies
from switchyard.http.headers import Headers


@dataclass(frozen=True, slots=True)
class TestResponse:
    """What the app sent back through ``send()``."""

    __test__ = False  # Tell pytest this is not a test class

    status: int
    headers: Headers
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def cookies(self) -> list[str]:
        """Raw ``Set-Cookie`` header values, in the order they were sent."""
        return self.headers.get_list("set-cookie")

    def json(self) -> Any:
        return json_module.loads(self.body)


@dataclass(slots=True)
class _Exchange:
    """One request's receive queue and the messages the app sent back."""

    chunks: list[bytes]
    status: int = 0
    raw_headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    body_parts: list[bytes] = field(default_factory=list)

    async def receive(self) -> dict[str, Any]:
        if not self.chunks:
            return {"type": "http.disconnect"}
        chunk = self.chunks.pop(0)
        return {"type": "http.request", "body": chunk, "more_body": bool(self.chunks)}

    async def send(self, message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.raw_headers = list(message.get("headers", []))
        elif message["type"] == "http.response.body":
            self.body_parts.append(message.get("body", b""))

    def result(self) -> TestResponse:
        return TestResponse(
            status=self.status,
            headers=Headers(self.raw_headers),
            body=b"".join(self.body_parts),
        )


def build_scope(method: str, target: str, headers: list[tuple[bytes, bytes]]) -> dict[str, Any]:
    """ASGI HTTP scope for *method* and *target* (path plus optional query)."""
    path, _, query_string = target.partition("?")
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": headers,
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


class TestClient:
    """Async test client for switchyard applications.

    Runs the app's startup hooks on enter and shutdown hooks on exit,
    and keeps a cookie jar across requests.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/users/42")
            assert response.status == 200
            assert response.json() == {"id": "42"}
    """

    __test__ = False  # Tell pytest this is not a test class

    __slots__ = ("app", "cookies")

    def __init__(self, app: App) -> None:
        self.app = app
        # Sent as a Cookie header on every request
        self.cookies: dict[str, str] = {}

    async def __aenter__(self) -> "TestClient":
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    # -- Methods without a body --

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("HEAD", path, headers=headers)

    async def options(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("OPTIONS", path, headers=headers)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        return await self.request("DELETE", path, headers=headers)

    # -- Methods with a body --

    async def post(self, path: str, **kwargs: Any) -> TestResponse:
        """Send a POST. Accepts ``headers``, ``body``, ``json`` and ``form``."""
        return await self._send_with_body("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> TestResponse:
        """Send a PUT. Same keyword arguments as ``post()``."""
        return await self._send_with_body("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> TestResponse:
        """Send a PATCH. Same keyword arguments as ``post()``."""
        return await self._send_with_body("PATCH", path, **kwargs)

    async def _send_with_body(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
        form: dict[str, str] | None = None,
    ) -> TestResponse:
        content_type: str | None = None
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            content_type = "application/json"
        elif form is not None:
            body = urlencode(form).encode("utf-8")
            content_type = "application/x-www-form-urlencoded"

        merged = dict(headers or {})
        if content_type is not None and not any(k.lower() == "content-type" for k in merged):
            merged["content-type"] = content_type
        return await self.request(method, path, headers=merged, body=body)

    # -- Core --

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        chunks: list[bytes] | None = None,
    ) -> TestResponse:
        """Send an arbitrary request through the ASGI app.

        ``chunks`` delivers the body as several ``http.request`` messages
        instead of one.
        """
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        if self.cookies and not any(name == b"cookie" for name, _ in raw_headers):
            jar = "; ".join(f"{name}={value}" for name, value in self.cookies.items())
            raw_headers.append((b"cookie", jar.encode("latin-1")))

        exchange = _Exchange(chunks=list(chunks) if chunks is not None else [body or b""])
        await self.app(build_scope(method, path, raw_headers), exchange.receive, exchange.send)

        response = exchange.result()
        self._store_cookies(response)
        return response

    def _store_cookies(self, response: TestResponse) -> None:
        for raw_cookie in response.cookies:
            pair, _, attributes = raw_cookie.partition(";")
            parsed = parse_cookies(pair)
            if "max-age=0" in attributes.lower():
                for name in parsed:
                    self.cookies.pop(name, None)
            else:
                self.cookies.update(parsed)
