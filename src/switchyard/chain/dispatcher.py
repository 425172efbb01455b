"""Error dispatch for a failed chain.

When a handler raises or calls ``next(error)``, the executor hands the
error here. Error entries that match the request path run in
registration order, each as ``handler(error, req, res, next)``:

- ``next(other_error)`` moves on to the next error entry with the new error
- ``next()`` moves on to the next error entry with the same error
- responding ends dispatch

When the error entries run out, the default JSON error response is sent
(or, inside a mounted router, the error is handed to the parent chain).
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from functools import partial
from typing import TypeAlias

from switchyard._internal.invoke import describe, invoke
from switchyard.chain.cursor import ChainCursor, Continuation, as_exception, resolve
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.routing.entry import RouteEntry
from switchyard.server.errors import send_error

logger = logging.getLogger("switchyard.chain")

Spawn: TypeAlias = Callable[..., None]


class ErrorDispatcher:
    """Runs the error entries for one request.

    Built lazily by the executor on the first failure; error entries are
    matched against the same path the normal chain used.
    """

    __slots__ = (
        "_base_params",
        "_base_path",
        "_cursor",
        "_debug",
        "_error",
        "_on_settled",
        "_on_unhandled",
        "_spawn",
        "done",
        "request",
        "response",
    )

    def __init__(
        self,
        request: Request,
        response: Response,
        entries: Sequence[RouteEntry],
        *,
        path: str,
        base_path: str,
        base_params: Mapping[str, str] | None = None,
        spawn: Spawn,
        on_settled: Callable[[], None],
        on_unhandled: Callable[[BaseException], None] | None = None,
        debug: bool = False,
    ) -> None:
        self.request = request
        self.response = response
        self._cursor = ChainCursor(resolve(entries, request.method, path))
        self._base_path = base_path
        self._base_params = dict(base_params or {})
        self._spawn = spawn
        self._on_settled = on_settled
        self._on_unhandled = on_unhandled
        self._debug = debug
        self._error: BaseException | None = None
        self.done = False

    @property
    def error(self) -> BaseException | None:
        """The error currently being dispatched."""
        return self._error

    def dispatch(self, error: BaseException) -> None:
        """Start (or re-enter) dispatch with *error*."""
        logger.debug(
            "Dispatching %s for %s %s",
            type(error).__name__,
            self.request.method,
            self.request.path,
        )
        self._error = error
        self._spawn(self._run_next, error)

    def _resume(self, current: BaseException, error: object) -> None:
        if self.done or self.response.sent:
            return
        if error is not None:
            current = as_exception(error)
        self._error = current
        self._spawn(self._run_next, current)

    async def _run_next(self, error: BaseException) -> None:
        matched = self._cursor.advance()
        if matched is None:
            self._unhandled(error)
            return

        handler = matched.entry.handler
        self.request.params = {**self._base_params, **matched.params}
        self.request.base_path = self._base_path
        next_ = Continuation(partial(self._resume, error), describe(handler))
        try:
            await invoke(handler, error, self.request, self.response, next_)
        except Exception as exc:
            if next_.called or self.done:
                logger.exception("Error handler %s raised after handing off", describe(handler))
            else:
                next_(exc)

    def _unhandled(self, error: BaseException) -> None:
        self.done = True
        if self._on_unhandled is not None:
            self._on_unhandled(error)
        else:
            send_error(error, self.request, self.response, debug=self._debug)
        self._on_settled()
