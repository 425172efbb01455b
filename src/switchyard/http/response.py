"""Mutable HTTP response with single-write semantics.

Every mutator returns the response so calls chain Express-style::

    res.status(201).set_header("Location", "/users/7").json({"id": 7})

Once the response has been sent (``send``, ``json``, ``redirect`` or
``end``), every further write is dropped. The guard lives here, in one
place, so handlers never have to check ``res.sent`` themselves.
"""

import json as json_module
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

from switchyard.http.cookies import SetCookie

logger = logging.getLogger("switchyard.server")

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
BINARY_CONTENT_TYPE = "application/octet-stream"
DEFAULT_JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Characters kept as-is when a redirect target is percent-encoded;
# "%" stays so already-encoded URLs pass through unchanged.
_URL_SAFE = "!#$%&'()*+,-./:;=?@[]_~"


def dump_json(value: Any) -> bytes:
    """Serialize *value* the way ``JSON.stringify`` would (compact, UTF-8)."""
    return json_module.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def check_header(name: str, value: str) -> None:
    """Raise ``ValueError`` unless *name* and *value* can go on the wire.

    ASGI header bytes are latin-1, and a line break would split the
    header block.
    """
    for part in (name, value):
        if "\r" in part or "\n" in part:
            msg = f"Header {name!r} contains a line break"
            raise ValueError(msg)
        try:
            part.encode("latin-1")
        except UnicodeEncodeError:
            msg = f"Header {name!r} is not latin-1 encodable: {value!r}"
            raise ValueError(msg) from None


class Response:
    """The response side of one in-flight HTTP exchange.

    Nothing reaches the wire from here: once ``sent`` flips to True the
    pipeline flushes ``status_code``, ``headers``, ``cookies`` and
    ``body`` through ASGI ``send()`` exactly once.
    """

    __slots__ = (
        "_headers",
        "_json_content_type",
        "_listeners",
        "body",
        "cookies",
        "locals",
        "sent",
        "status_code",
    )

    def __init__(self, *, json_content_type: str = DEFAULT_JSON_CONTENT_TYPE) -> None:
        self.status_code: int = 200
        self.body: bytes = b""
        self.sent: bool = False
        self.cookies: list[SetCookie] = []
        # Per-request scratch space for handlers, like Express res.locals
        self.locals: dict[str, Any] = {}
        self._headers: dict[str, tuple[str, str]] = {}
        self._json_content_type = json_content_type
        self._listeners: list[Callable[[], None]] = []

    # -- Guard --

    def _writable(self, operation: str) -> bool:
        if self.sent:
            logger.debug("Ignoring %s() on a response that was already sent", operation)
            return False
        return True

    def _finish(self, body: bytes) -> None:
        self.body = body
        self.sent = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()

    def add_send_listener(self, listener: Callable[[], None]) -> None:
        """Call *listener* once the response is sent (immediately if it already was)."""
        if self.sent:
            listener()
        else:
            self._listeners.append(listener)

    @property
    def headers_sent(self) -> bool:
        """Alias of ``sent``, matching the Node/Express name."""
        return self.sent

    # -- Status and headers --

    def status(self, code: int) -> "Response":
        """Set the status code."""
        if self._writable("status"):
            self.status_code = code
        return self

    def set_header(self, name: str, value: str) -> "Response":
        """Set a header, replacing any previous value (case-insensitive).

        Raises ``ValueError`` for a name or value that is not latin-1 or
        contains a line break.
        """
        if self._writable("set_header"):
            value = str(value)
            check_header(name, value)
            self._headers[name.lower()] = (name, value)
        return self

    def get_header(self, name: str) -> str | None:
        """Return the value previously set for *name*, if any."""
        entry = self._headers.get(name.lower())
        return entry[1] if entry is not None else None

    def remove_header(self, name: str) -> "Response":
        if self._writable("remove_header"):
            self._headers.pop(name.lower(), None)
        return self

    @property
    def headers(self) -> list[tuple[str, str]]:
        """Headers in the order they were first set, original casing."""
        return list(self._headers.values())

    def cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        http_only: bool = False,
        secure: bool = False,
        path: str | None = None,
        domain: str | None = None,
        same_site: str | None = None,
    ) -> "Response":
        """Append a ``Set-Cookie``. Several cookies may be set per response."""
        if self._writable("cookie"):
            set_cookie = SetCookie(
                name=name,
                value=value,
                max_age=max_age,
                path=path,
                domain=domain,
                secure=secure,
                http_only=http_only,
                same_site=same_site,
            )
            check_header("Set-Cookie", set_cookie.to_header_value())
            self.cookies.append(set_cookie)
        return self

    def clear_cookie(self, name: str, *, path: str = "/") -> "Response":
        """Expire a cookie on the client (``Max-Age=0``)."""
        return self.cookie(name, "", max_age=0, path=path)

    # -- Terminal writes --

    def send(self, body: Any = None) -> "Response":
        """Send *body* and finish the response.

        ``str`` is sent as HTML and ``bytes`` as an octet stream unless a
        Content-Type was already set; ``None`` sends an empty body; any
        other value is serialized as JSON.
        """
        if not self._writable("send"):
            return self
        if body is None:
            self._finish(b"")
        elif isinstance(body, str):
            self._default_content_type(HTML_CONTENT_TYPE)
            self._finish(body.encode("utf-8"))
        elif isinstance(body, (bytes, bytearray, memoryview)):
            self._default_content_type(BINARY_CONTENT_TYPE)
            self._finish(bytes(body))
        else:
            return self.json(body)
        return self

    def json(self, body: Any) -> "Response":
        """Serialize *body* as JSON, set the JSON content type and finish."""
        if not self._writable("json"):
            return self
        payload = dump_json(body)
        self._headers["content-type"] = ("Content-Type", self._json_content_type)
        self._finish(payload)
        return self

    def redirect(self, url_or_status: str | int, url: str | None = None) -> "Response":
        """Redirect to a URL: ``redirect("/login")`` or ``redirect(301, "/new")``.

        Characters that cannot appear in a URL are percent-encoded.
        """
        if not self._writable("redirect"):
            return self
        if isinstance(url_or_status, int):
            if url is None:
                msg = "redirect(status, url) requires a url"
                raise TypeError(msg)
            status, location = url_or_status, url
        else:
            status, location = 302, url_or_status
        self.status_code = status
        self._headers["location"] = ("Location", quote(location, safe=_URL_SAFE))
        self._finish(b"")
        return self

    def end(self, body: str | bytes | None = None) -> "Response":
        """Finish the response, optionally with a final raw payload.

        Unlike ``send()``, no Content-Type is inferred.
        """
        if not self._writable("end"):
            return self
        if body is None:
            self._finish(b"")
        elif isinstance(body, str):
            self._finish(body.encode("utf-8"))
        else:
            self._finish(bytes(body))
        return self

    # -- Helpers --

    def _default_content_type(self, content_type: str) -> None:
        if "content-type" not in self._headers:
            self._headers["content-type"] = ("Content-Type", content_type)

    @property
    def text(self) -> str:
        """Body as string."""
        return self.body.decode("utf-8")

    def __repr__(self) -> str:
        state = "sent" if self.sent else "pending"
        return f"<Response {self.status_code} {state}>"
