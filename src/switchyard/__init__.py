"""Switchyard — Express-style routing and middleware chains for ASGI.

Requests run through the handlers that match them, in registration order,
with control handed on explicitly through ``next()``.

Basic usage::

    from switchyard import App

    app = App()

    def log_request(req, res, next):
        print(req.method, req.path)
        next()

    app.use(log_request)

    @app.get("/users/:id")
    async def show_user(req, res, next):
        res.json({"id": req.params["id"]})

Serve it with any ASGI server (``uvicorn module:app``).
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "HandlerError",
    "InvalidPattern",
    "NotFound",
    "PayloadTooLarge",
    "Request",
    "Response",
    "Router",
    "ServiceUnavailable",
    "SwitchyardError",
    "info",
]

_FEATURES = (
    "Express-style routing API",
    "Route pattern matching with :params and * wildcards",
    "Ordered middleware with explicit next()",
    "Centralized error handlers",
    "Mountable sub-routers",
    "JSON, form and text body decoding",
)


def info() -> dict[str, object]:
    """Describe this build: name, version, description, feature list."""
    return {
        "name": "switchyard",
        "version": __version__,
        "description": "Express-style routing and middleware chains for ASGI",
        "features": list(_FEATURES),
    }


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchyard`` fast while providing a clean top-level API.
    """
    if name == "App":
        from switchyard.app import App

        return App

    if name == "AppConfig":
        from switchyard.config import AppConfig

        return AppConfig

    if name == "Router":
        from switchyard.routing.router import Router

        return Router

    if name == "Request":
        from switchyard.http.request import Request

        return Request

    if name == "Response":
        from switchyard.http.response import Response

        return Response

    if name in (
        "ConfigurationError",
        "HTTPError",
        "HandlerError",
        "InvalidPattern",
        "NotFound",
        "PayloadTooLarge",
        "ServiceUnavailable",
        "SwitchyardError",
    ):
        from switchyard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
