"""Raw ASGI type aliases.

The server hands the app a ``scope`` mapping plus ``receive``/``send``
callables. Only ``switchyard.server`` and ``Request.from_asgi`` touch them.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
