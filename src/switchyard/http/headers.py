"""Case-insensitive HTTP request headers.

Implements ``Mapping[str, str]``. Built once from the raw ASGI byte pairs;
names are folded to lower case, values decoded as latin-1.
"""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive request headers.

    ``headers["Content-Type"]`` and ``headers["content-type"]`` are the
    same lookup. ``__getitem__`` returns the first value; ``get_list``
    returns every value sent under that name.
    """

    __slots__ = ("_data",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        data: dict[str, list[str]] = {}
        for name, value in raw:
            key = name.decode("latin-1").lower()
            data.setdefault(key, []).append(value.decode("latin-1"))
        self._data = data

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "Headers":
        """Build headers from a plain ``{name: value}`` dict."""
        return cls((k.encode("latin-1"), v.encode("latin-1")) for k, v in mapping.items())

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key.lower())
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key.lower(), []))
