"""Middleware chain executor.

Drives one request through the entries that match it, one at a time::

    IDLE --start()--> RUNNING --response sent / chain exhausted--> COMPLETED
                         |
                         +--handler raised / next(error)--> FAILED

Control only moves forward when a handler calls its continuation. A
handler that neither calls ``next()`` nor responds leaves the chain
suspended; that is the contract of explicit hand-off, not a framework
fault. Configure ``AppConfig.handler_timeout`` to bound it.

Each step runs as a task in an ``anyio`` task group owned by
``run_chain``. ``next()`` only schedules the following step, so it
behaves the same whether it is called from a sync handler, an async
handler, or a callback the event loop fires later.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum

import anyio

from switchyard._internal.invoke import describe, invoke
from switchyard.chain.cursor import ChainCursor, Continuation, as_exception, resolve
from switchyard.chain.dispatcher import ErrorDispatcher, Spawn
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.routing.entry import RouteEntry
from switchyard.server.errors import send_not_found

logger = logging.getLogger("switchyard.chain")


class ChainState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ChainState.COMPLETED, ChainState.FAILED)


class ChainExecutor:
    """State machine for one request's pass through a set of entries.

    Args:
        request: The request context; ``params`` and ``base_path`` are
            updated before each handler runs.
        response: The shared response. Sending it completes the chain.
        entries: Registry snapshot (normal and error entries, in order).
        spawn: Schedules a zero-argument coroutine function, normally
            ``TaskGroup.start_soon``.
        base_params: Bindings of the mount prefix, visible to every entry
            of a mounted router alongside the entry's own.
        base_path: Mount prefix of the router that owns *entries*.
            Entries are matched against the request path with this
            prefix removed.
        on_exhausted: Called instead of sending a 404 when the chain runs
            out (a mounted router passes control back to its parent).
        on_unhandled: Called instead of sending the default error
            response when no error entry handles a failure.
        debug: Include tracebacks in default error responses.
    """

    __slots__ = (
        "_dispatcher",
        "_on_exhausted",
        "_on_unhandled",
        "_settled",
        "_spawn",
        "base_params",
        "base_path",
        "cursor",
        "debug",
        "entries",
        "path",
        "request",
        "response",
        "state",
    )

    def __init__(
        self,
        request: Request,
        response: Response,
        entries: Sequence[RouteEntry],
        *,
        spawn: Spawn,
        base_path: str = "",
        base_params: Mapping[str, str] | None = None,
        on_exhausted: Callable[[], None] | None = None,
        on_unhandled: Callable[[BaseException], None] | None = None,
        debug: bool = False,
    ) -> None:
        self.request = request
        self.response = response
        self.entries = tuple(entries)
        self.base_path = base_path
        self.base_params = dict(base_params or {})
        self.path = request.path[len(base_path) :] or "/"
        self.cursor = ChainCursor(
            resolve([e for e in self.entries if not e.is_error], request.method, self.path)
        )
        self.state = ChainState.IDLE
        self.debug = debug
        self._spawn = spawn
        self._on_exhausted = on_exhausted
        self._on_unhandled = on_unhandled
        self._dispatcher: ErrorDispatcher | None = None
        self._settled = anyio.Event()

    # -- Lifecycle --

    def start(self) -> None:
        """Begin executing. Only the first call has any effect."""
        if self.state is not ChainState.IDLE:
            return
        self.state = ChainState.RUNNING
        self.response.add_send_listener(self._on_sent)
        if self.state is not ChainState.RUNNING:
            # The response was already sent before we started
            return
        self._spawn(self._run_next)

    async def wait(self) -> None:
        """Block until the chain has settled.

        Settled means the response was sent, or control was handed off
        (to the parent router, or to the default 404/500 response).
        """
        await self._settled.wait()

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    @property
    def error(self) -> BaseException | None:
        """The error being (or last) dispatched, if the chain failed."""
        return self._dispatcher.error if self._dispatcher is not None else None

    # -- Transitions --

    def _settle(self) -> None:
        self._settled.set()

    def _on_sent(self) -> None:
        if self.state is ChainState.RUNNING:
            self.state = ChainState.COMPLETED
        self._settle()

    def _resume(self, error: object) -> None:
        """Continuation target for normal entries."""
        if self.state.terminal:
            logger.debug(
                "next() after the chain for %s %s finished; ignoring",
                self.request.method,
                self.request.path,
            )
            return
        if error is not None:
            self._fail(as_exception(error))
            return
        self._spawn(self._run_next)

    def _fail(self, error: BaseException) -> None:
        self.state = ChainState.FAILED
        if self._dispatcher is None:
            self._dispatcher = ErrorDispatcher(
                self.request,
                self.response,
                [e for e in self.entries if e.is_error],
                path=self.path,
                base_path=self.base_path,
                base_params=self.base_params,
                spawn=self._spawn,
                on_settled=self._settle,
                on_unhandled=self._on_unhandled,
                debug=self.debug,
            )
        self._dispatcher.dispatch(error)

    def _exhaust(self) -> None:
        self.state = ChainState.COMPLETED
        if self._on_exhausted is not None:
            self._on_exhausted()
        else:
            send_not_found(self.request, self.response)
        self._settle()

    # -- Steps --

    async def _run_next(self) -> None:
        if self.state.terminal:
            return
        matched = self.cursor.advance()
        if matched is None:
            self._exhaust()
            return

        entry = matched.entry
        # Each entry sees only its own bindings; nothing leaks from earlier ones.
        self.request.params = {**self.base_params, **matched.params}
        # A mounted router sees the prefix it matched, so it knows which
        # part of the path is its own.
        if entry.mount:
            self.request.base_path = self.base_path + matched.consumed
        else:
            self.request.base_path = self.base_path

        next_ = Continuation(self._resume, describe(entry.handler))
        try:
            await invoke(entry.handler, self.request, self.response, next_)
        except Exception as exc:
            if next_.called or self.state.terminal:
                logger.exception(
                    "Handler %s raised after handing off control", describe(entry.handler)
                )
            else:
                next_(exc)


async def run_chain(
    request: Request,
    response: Response,
    entries: Sequence[RouteEntry],
    *,
    base_path: str = "",
    base_params: Mapping[str, str] | None = None,
    on_exhausted: Callable[[], None] | None = None,
    on_unhandled: Callable[[BaseException], None] | None = None,
    debug: bool = False,
) -> ChainExecutor:
    """Run *entries* against *request* until the chain settles.

    Returns the executor so callers can inspect ``state`` and ``error``.
    Handler work still in flight after the chain settles (for example
    logging after ``res.send()``) is awaited before returning.
    """
    async with anyio.create_task_group() as tg:
        executor = ChainExecutor(
            request,
            response,
            entries,
            spawn=tg.start_soon,
            base_path=base_path,
            base_params=base_params,
            on_exhausted=on_exhausted,
            on_unhandled=on_unhandled,
            debug=debug,
        )
        executor.start()
        await executor.wait()
    return executor
