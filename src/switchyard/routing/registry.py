"""Append-only route registry.

Stores entries in registration order and hands out sequence numbers.
It has no matching logic of its own; the chain executor asks each
entry whether it applies.

Thread safety:
    Registration happens during setup, before the app starts serving.
    After that the entry list is only read, so concurrent requests share
    it without locks.
"""

from collections.abc import Callable, Iterator
from typing import Any

from switchyard.errors import ConfigurationError
from switchyard.routing.entry import ANY, HTTP_METHODS, USE, EntryKind, RouteEntry
from switchyard.routing.pattern import PathTemplate

_VALID_METHODS = frozenset((*HTTP_METHODS, ANY, USE))


class RouteRegistry:
    """Ordered, append-only store of ``RouteEntry`` objects.

    Usage::

        registry = RouteRegistry()
        registry.register("GET", "/users/:id", show_user)
        registry.register("USE", "*", log_requests)
        for entry in registry.all_entries():
            ...
    """

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[RouteEntry] = []

    def register(
        self,
        method: str,
        pattern: str | PathTemplate,
        handler: Callable[..., Any],
        kind: EntryKind = EntryKind.NORMAL,
        *,
        mount: bool = False,
    ) -> RouteEntry:
        """Append an entry and return it.

        Raises ``InvalidPattern`` for a malformed pattern and
        ``ConfigurationError`` for an unknown method or a handler that
        is not callable. Nothing is appended when validation fails.
        """
        method = method.upper()
        if method not in _VALID_METHODS:
            msg = f"Unsupported method {method!r}; expected one of {sorted(_VALID_METHODS)}"
            raise ConfigurationError(msg)
        if not callable(handler):
            msg = f"Handler for {method} {pattern} must be callable, got {type(handler).__name__}"
            raise ConfigurationError(msg)
        if kind is EntryKind.ERROR and method != USE:
            msg = "Error entries apply to every method and must be registered as 'USE'"
            raise ConfigurationError(msg)
        if mount and (method != USE or kind is EntryKind.ERROR):
            msg = "Only middleware entries can be mounted"
            raise ConfigurationError(msg)

        template = pattern if isinstance(pattern, PathTemplate) else PathTemplate.compile(pattern)
        entry = RouteEntry(
            method=method,
            pattern=template,
            handler=handler,
            kind=kind,
            sequence=len(self._entries),
            mount=mount,
        )
        self._entries.append(entry)
        return entry

    def all_entries(self) -> tuple[RouteEntry, ...]:
        """Snapshot of every entry, in registration order."""
        return tuple(self._entries)

    def normal_entries(self) -> tuple[RouteEntry, ...]:
        return tuple(e for e in self._entries if not e.is_error)

    def error_entries(self) -> tuple[RouteEntry, ...]:
        return tuple(e for e in self._entries if e.is_error)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RouteRegistry({len(self._entries)} entries)"
