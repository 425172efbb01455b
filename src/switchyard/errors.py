"""Switchyard exception hierarchy.

Shared across the registry, the chain executor, the error dispatcher and
the ASGI pipeline so every module raises and catches the same types.
"""

from dataclasses import dataclass
from http import HTTPStatus


class SwitchyardError(Exception):
    """Base for all switchyard-specific errors."""


class ConfigurationError(SwitchyardError):
    """Raised when the application is wired up incorrectly.

    Surfaces at registration time, never while serving a request.
    """


class InvalidPattern(ConfigurationError):  # noqa: N818
    """A path template could not be compiled.

    Raised by ``register()`` so that a malformed pattern fails fast
    instead of silently never matching.
    """

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid path pattern {pattern!r}: {reason}")


@dataclass(frozen=True, slots=True)
class HTTPError(SwitchyardError):
    """An error that maps directly to an HTTP status code.

    Handlers may raise these (or pass them to ``next``). When no error
    entry handles them, the default error response uses ``status`` and
    ``detail`` instead of a generic 500.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return self.detail
        return reason_phrase(self.status)

    @property
    def reason(self) -> str:
        return reason_phrase(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no entry matched the request, or a handler gave up on it."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413 — the request body exceeded ``AppConfig.max_content_length``."""

    def __init__(self, limit: int) -> None:
        super().__init__(status=413, detail=f"Request body exceeds {limit} bytes")


class ServiceUnavailable(HTTPError):  # noqa: N818
    """503 — the supervisory handler timeout elapsed."""

    def __init__(self, detail: str = "Request timed out") -> None:
        super().__init__(status=503, detail=detail)


class HandlerError(SwitchyardError):
    """Wraps a non-exception value passed to ``next(value)``.

    Express-style code sometimes signals failure with a plain string;
    the dispatcher always works with exceptions, so the value is kept
    on ``.value`` and its text becomes the message.
    """

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(str(value))


def reason_phrase(status: int) -> str:
    """Standard reason phrase for *status* (``"Error"`` when unknown)."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"
