"""Switchyard application class.

Mutable during setup (routes, middleware, error handlers, mounts).
Frozen on the first ASGI call.
"""

import threading
from collections.abc import Callable
from typing import Any

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard._internal.invoke import invoke_all
from switchyard.config import AppConfig
from switchyard.routing.entry import RouteEntry
from switchyard.routing.router import RoutingTable
from switchyard.server.handler import handle_request


class App(RoutingTable):
    """The switchyard application.

    Registration works exactly like ``Router``::

        app = App()
        app.use(log_request)
        app.get("/users/:id", show_user)

    The app is an ASGI 3.0 callable; hand it to any ASGI server.

    Thread safety:
        The setup phase is single-threaded (registration at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread snapshots the registry, even when several ASGI workers
        call ``__call__()`` concurrently on the first request.
    """

    __slots__ = (
        "_entries",
        "_freeze_lock",
        "_frozen",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        super().__init__()
        self.config: AppConfig = config or AppConfig()
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._entries: tuple[RouteEntry, ...] = ()

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point: lifespan here, HTTP through the chain pipeline."""
        if scope["type"] == "lifespan":
            await self._serve_lifespan(receive, send)
            return

        self._ensure_frozen()
        await handle_request(scope, receive, send, entries=self._entries, config=self.config)

    async def startup(self) -> None:
        """Freeze the app and run the startup hooks, in registration order."""
        self._ensure_frozen()
        await invoke_all(self._startup_hooks)

    async def shutdown(self) -> None:
        """Run the shutdown hooks, in registration order."""
        await invoke_all(self._shutdown_hooks)

    async def _serve_lifespan(self, receive: Receive, send: Send) -> None:
        # A failing startup hook is reported to the server, which then
        # refuses to start; shutdown hook errors propagate.
        while True:
            message = await receive()
            kind = message["type"]
            if kind == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif kind == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Freeze --

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _ensure_frozen(self) -> None:
        """Snapshot the registry once, under a lock, before serving."""
        if self._frozen:
            return
        with self._freeze_lock:
            if not self._frozen:
                self._entries = self._registry.all_entries()
                self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                f"Cannot modify the app after it has started serving requests "
                f"({len(self._entries)} entries are live). Register routes, "
                "middleware, and error handlers before the first request."
            )
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "setup"
        return f"<App {len(self._registry)} entries, {state}>"
