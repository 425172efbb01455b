"""Per-request context handed to every handler.

Unlike the response, the request is a plain mutable object: the chain
fills ``params`` as it advances, the body decoder fills ``body``, and
middleware may attach arbitrary attributes for later handlers::

    def load_user(req, res, next):
        req.user = users.get(req.header("x-user-id"))
        next()

    def profile(req, res, next):
        res.json({"name": req.user.name})
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from switchyard._internal.asgi import Receive, Scope
from switchyard.http.cookies import parse_cookies
from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams


@dataclass(eq=False)
class Request:
    """The request side of one in-flight HTTP exchange.

    Lifetime is a single request: created by the ASGI pipeline, threaded
    through every matching entry, then discarded.

    ``params`` holds the bindings of the entry currently executing, plus
    those of the prefix a mounted router was matched on. It is replaced
    before each entry runs. ``body`` stays ``None`` for methods that
    carry no body.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    params: dict[str, str] = field(default_factory=dict)
    body: Any = None
    raw_body: bytes = b""
    cookies: Mapping[str, str] = field(default_factory=dict)
    http_version: str = "1.1"
    client: tuple[str, int] | None = None

    # Mount prefix while a mounted router is running its chain.
    base_path: str = ""

    # Private: ASGI receive callable, consumed once by the body decoder
    _receive: Receive | None = field(default=None, repr=False)

    # -- Accessors --

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name, default)

    def get(self, name: str, default: str | None = None) -> str | None:
        """Alias for ``header()``, matching the Express ``req.get``."""
        return self.headers.get(name, default)

    def param(self, name: str, default: str | None = None) -> str | None:
        """Look up *name* in path params first, then the query string."""
        if name in self.params:
            return self.params[name]
        return self.query.get(name, default)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int, or None if absent or malformed."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive | None = None) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(scope.get("headers", ()))
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope.get("path") or "/",
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            cookies=parse_cookies(headers.get("cookie", "")),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
            _receive=receive,
        )
