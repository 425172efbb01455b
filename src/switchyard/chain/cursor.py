"""Chain building blocks: matched entries, the cursor, and continuations."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from switchyard.errors import HandlerError
from switchyard.routing.entry import RouteEntry

logger = logging.getLogger("switchyard.chain")


@dataclass(frozen=True, slots=True)
class MatchedEntry:
    """An entry that applies to the current request, with its bindings."""

    entry: RouteEntry
    params: dict[str, str]
    consumed: str = ""


def resolve(entries: Sequence[RouteEntry], method: str, path: str) -> tuple[MatchedEntry, ...]:
    """Entries that apply to *method* and *path*, in registration order."""
    matched: list[MatchedEntry] = []
    for entry in entries:
        result = entry.match(method, path)
        if result.matched:
            matched.append(MatchedEntry(entry, result.params, result.consumed))
    return tuple(matched)


@dataclass(slots=True)
class ChainCursor:
    """Position in an ordered run of matched entries.

    Only moves forward. ``advance()`` past the end keeps returning None.
    """

    entries: tuple[MatchedEntry, ...]
    position: int = field(default=0)

    def advance(self) -> MatchedEntry | None:
        if self.position >= len(self.entries):
            return None
        current = self.entries[self.position]
        self.position += 1
        return current

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def as_exception(error: object) -> BaseException:
    """Normalize a value passed to ``next(value)`` into an exception."""
    if isinstance(error, BaseException):
        return error
    return HandlerError(error)


class Continuation:
    """The ``next`` callable handed to one handler invocation.

    Fires at most once. A second call (a handler bug, or a late callback)
    is ignored and logged, so the cursor can never be advanced twice on
    behalf of the same entry.
    """

    __slots__ = ("_callback", "_label", "called")

    def __init__(self, callback: Callable[[object], None], label: str) -> None:
        self._callback = callback
        self._label = label
        self.called = False

    def __call__(self, error: object = None) -> None:
        if self.called:
            logger.debug("next() called more than once from %s; ignoring", self._label)
            return
        self.called = True
        self._callback(error)

    def __repr__(self) -> str:
        state = "called" if self.called else "pending"
        return f"<next for {self._label} ({state})>"
