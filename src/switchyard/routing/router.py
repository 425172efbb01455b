"""Registration surface shared by the application and sub-routers.

Every registration method takes a path and one or more handlers and
returns the router, so calls chain::

    router = Router()
    router.use(authenticate).get("/users/:id", show_user).post("/users", create_user)

Called with a path only, the same methods return a decorator::

    @router.get("/users/:id")
    def show_user(req, res, next):
        res.json({"id": req.params["id"]})

A ``Router`` is itself a handler, so it can be mounted under a prefix
on an app or another router with ``use(prefix, router)``.
"""

from collections.abc import Callable
from typing import Any

from switchyard._internal.invoke import describe
from switchyard._internal.types import ErrorHandler, Handler, Next
from switchyard.chain.executor import run_chain
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.routing.entry import ANY, USE, EntryKind, RouteEntry, RouteInfo
from switchyard.routing.pattern import MATCH_ALL
from switchyard.routing.registry import RouteRegistry


def _join(prefix: str, path: str) -> str:
    if path in (MATCH_ALL, "", "/"):
        return prefix or "/"
    return prefix.rstrip("/") + path


class RoutingTable:
    """An ordered table of routes, middleware and error handlers.

    Registration order is execution order: for each request the chain
    runs every matching entry, first registered first. Base of both
    ``Router`` and ``App``.
    """

    __slots__ = ("_registry",)

    def __init__(self) -> None:
        self._registry = RouteRegistry()

    # -- Core registration --

    def _check_not_frozen(self) -> None:
        """Hook for subclasses that stop accepting entries at some point."""

    def _register(
        self,
        method: str,
        path: str,
        handlers: tuple[Handler, ...],
        kind: EntryKind = EntryKind.NORMAL,
    ) -> Any:
        if not handlers:

            def decorator(func: Handler) -> Handler:
                self._check_not_frozen()
                self._add_entry(method, path, func, kind)
                return func

            return decorator

        self._check_not_frozen()
        for handler in handlers:
            self._add_entry(method, path, handler, kind)
        return self

    def _add_entry(self, method: str, path: str, handler: Handler, kind: EntryKind) -> None:
        mount = method == USE and kind is EntryKind.NORMAL and isinstance(handler, Router)
        self._registry.register(method, path, handler, kind, mount=mount)

    # -- Per-method routes --

    def get(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``GET path``."""
        return self._register("GET", path, handlers)

    def post(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``POST path``."""
        return self._register("POST", path, handlers)

    def put(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``PUT path``."""
        return self._register("PUT", path, handlers)

    def delete(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``DELETE path``."""
        return self._register("DELETE", path, handlers)

    def patch(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``PATCH path``."""
        return self._register("PATCH", path, handlers)

    def options(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``OPTIONS path``."""
        return self._register("OPTIONS", path, handlers)

    def head(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for ``HEAD path``."""
        return self._register("HEAD", path, handlers)

    def all(self, path: str, *handlers: Handler) -> Any:
        """Register handlers for *path* under every HTTP method."""
        return self._register(ANY, path, handlers)

    # -- Middleware and error handlers --

    def use(self, path_or_handler: str | Handler = MATCH_ALL, *handlers: Handler) -> Any:
        """Register middleware.

        ``use(mw)`` runs *mw* for every request. With a path, *mw* runs
        for requests matching it like a route would, so ``use("/api", mw)``
        covers ``/api`` only and ``use("/api/*", mw)`` everything below
        it. A ``Router`` passed as the handler is mounted instead: it
        receives every path under the prefix.
        """
        if isinstance(path_or_handler, str):
            return self._register(USE, path_or_handler, handlers)
        return self._register(USE, MATCH_ALL, (path_or_handler, *handlers))

    def error(
        self,
        path_or_handler: str | ErrorHandler = MATCH_ALL,
        *handlers: ErrorHandler,
    ) -> Any:
        """Register error handlers, called as ``handler(error, req, res, next)``.

        They only run once the chain has failed, in registration order,
        for requests whose path matches *path* (default: all).
        """
        if isinstance(path_or_handler, str):
            return self._register(USE, path_or_handler, handlers, EntryKind.ERROR)
        return self._register(USE, MATCH_ALL, (path_or_handler, *handlers), EntryKind.ERROR)

    def mount(self, prefix: str, router: "Router") -> "RoutingTable":
        """Mount *router* under *prefix*. Same as ``use(prefix, router)``."""
        return self.use(prefix, router)

    def route(self, path: str) -> "RouteBuilder":
        """Start a builder that registers several methods on one path::

        app.route("/users").get(list_users).post(create_user)
        """
        return RouteBuilder(self, path)

    # -- Introspection --

    @property
    def entries(self) -> tuple[RouteEntry, ...]:
        """Registry snapshot, in registration order."""
        return self._registry.all_entries()

    @property
    def routes(self) -> tuple[RouteInfo, ...]:
        """Every registered entry, with mounted routers flattened in place."""
        return tuple(self._collect_routes(""))

    def _collect_routes(self, prefix: str) -> list[RouteInfo]:
        infos: list[RouteInfo] = []
        for entry in self._registry.all_entries():
            path = _join(prefix, entry.pattern.source) if prefix else entry.pattern.source
            if isinstance(entry.handler, Router):
                infos.extend(entry.handler._collect_routes(_join(prefix, entry.pattern.source)))
                continue
            infos.append(
                RouteInfo(
                    method=entry.method,
                    path=path,
                    kind=entry.kind.value,
                    sequence=entry.sequence,
                    handler_name=describe(entry.handler),
                )
            )
        return infos

    def format_routes(self) -> str:
        """Human-readable route table, one entry per line."""
        routes = self.routes
        if not routes:
            return "(no routes registered)"
        width = max(len(info.path) for info in routes)
        lines = []
        for info in routes:
            label = "ERROR" if info.kind == EntryKind.ERROR.value else info.method
            lines.append(f"{label:<8}{info.path:<{width + 2}}{info.handler_name}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {len(self._registry)} entries>"


class Router(RoutingTable):
    """A mountable routing table.

    Usage::

        api = Router()
        api.get("/users", list_users)
        app.use("/api", api)   # serves GET /api/users
    """

    __slots__ = ()

    async def __call__(self, request: Request, response: Response, next: Next) -> None:
        """Run this router's own chain for a request it was mounted on.

        Matching uses the path below the mount prefix, and parameters
        bound by the prefix stay visible to every entry. When this chain
        runs out, or fails without an error entry handling it, control
        goes back to the parent's ``next``.
        """
        await run_chain(
            request,
            response,
            self._registry.all_entries(),
            base_path=request.base_path,
            base_params=request.params,
            on_exhausted=next,
            on_unhandled=next,
        )


class RouteBuilder:
    """Chained registration for one path, returned by ``Router.route()``."""

    __slots__ = ("_router", "path")

    def __init__(self, router: RoutingTable, path: str) -> None:
        self._router = router
        self.path = path

    def _add(self, register: Callable[..., Any], handlers: tuple[Handler, ...]) -> "RouteBuilder":
        if not handlers:
            msg = f"route({self.path!r}) needs at least one handler per method"
            raise TypeError(msg)
        register(self.path, *handlers)
        return self

    def get(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.get, handlers)

    def post(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.post, handlers)

    def put(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.put, handlers)

    def delete(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.delete, handlers)

    def patch(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.patch, handlers)

    def options(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.options, handlers)

    def head(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.head, handlers)

    def all(self, *handlers: Handler) -> "RouteBuilder":
        return self._add(self._router.all, handlers)
