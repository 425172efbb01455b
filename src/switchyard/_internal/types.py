"""Shared type aliases used across switchyard modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route or middleware handler: (request, response, next) -> None | Awaitable
Handler: TypeAlias = Callable[..., Any]

# Error handler: (error, request, response, next) -> None | Awaitable
ErrorHandler: TypeAlias = Callable[..., Any]

# Continuation handed to every handler; call with no argument to advance,
# with an exception (or any value) to fail the chain.
Next: TypeAlias = Callable[..., None]
