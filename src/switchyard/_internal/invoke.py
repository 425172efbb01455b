"""Invoke helpers — call sync or async handlers uniformly.

Switchyard handlers can be ``def`` or ``async def``. The chain executor
and the error dispatcher both go through ``invoke`` so the sync/async
check lives in exactly one place.

Usage::

    from switchyard._internal.invoke import invoke

    await invoke(handler, request, response, next)
"""

import inspect
from collections.abc import Callable, Iterable
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately
        def log(req, res, next):
            logger.info("%s %s", req.method, req.path)
            next()

        # async: returns a coroutine, awaited here
        async def load_user(req, res, next):
            req.user = await users.get(req.params["id"])
            next()
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def describe(handler: Any) -> str:
    """Short human-readable name for a handler, used in route listings."""
    name = getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None)
    if name is None:
        name = type(handler).__name__
    return name


async def invoke_all(hooks: Iterable[Callable[[], Any]]) -> None:
    """Call zero-argument hooks in order, awaiting the async ones."""
    for hook in hooks:
        await invoke(hook)
