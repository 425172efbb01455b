"""RouteEntry and RouteInfo frozen dataclasses."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from switchyard.routing.pattern import NO_MATCH, MatchResult, PathTemplate

# Pseudo-methods. "ANY" entries come from all(), "USE" entries from use()
# and error(); both apply to every HTTP method.
ANY = "ANY"
USE = "USE"

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD")


class EntryKind(Enum):
    NORMAL = "normal"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """A registered handler. Immutable once the registry hands it out.

    ``sequence`` is the registration index: it is both the identity of
    the entry and the tie-break for overlapping matches. ``mount`` marks
    a router registered under a prefix.
    """

    method: str
    pattern: PathTemplate
    handler: Callable[..., Any]
    kind: EntryKind
    sequence: int
    mount: bool = False

    @property
    def is_middleware(self) -> bool:
        return self.method == USE

    @property
    def is_error(self) -> bool:
        return self.kind is EntryKind.ERROR

    def applies_to(self, method: str) -> bool:
        return self.method in (ANY, USE) or self.method == method

    def match(self, method: str, path: str) -> MatchResult:
        """Match this entry against a request.

        Routes and middleware match the whole path (``use("/api/*", mw)``
        covers everything below ``/api``). Only a mounted router matches
        by prefix, so it can route the rest of the path itself.
        """
        if not self.applies_to(method):
            return NO_MATCH
        if self.mount:
            return self.pattern.match_prefix(path)
        return self.pattern.match(path)


@dataclass(frozen=True, slots=True)
class RouteInfo:
    """Introspection view of an entry, as returned by ``Router.routes``."""

    method: str
    path: str
    kind: str
    sequence: int
    handler_name: str
