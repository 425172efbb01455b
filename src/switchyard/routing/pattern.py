"""Express-style path templates.

A template is split on ``/`` into segments:

    ``users``   literal, compared exactly (case-sensitive)
    ``:id``     named parameter, matches one non-empty segment
    ``*``       trailing wildcard, matches the rest of the path

Matching walks both segment lists once, so it is linear in the path
length. There are no regex semantics and no optional segments.
"""

from dataclasses import dataclass, field

from switchyard.errors import InvalidPattern

WILDCARD = "*"
"""Pattern token for the trailing wildcard, and the params key it binds."""

MATCH_ALL = "*"
"""A pattern made of the wildcard alone matches every path and binds nothing."""


@dataclass(frozen=True, slots=True)
class Segment:
    """A parsed segment of a path template.

    Literal:   ``users``  (kind="literal", value="users")
    Param:     ``:id``    (kind="param", value="id")
    Wildcard:  ``*``      (kind="wildcard", value="*")
    """

    kind: str
    value: str

    @property
    def is_param(self) -> bool:
        return self.kind == "param"

    @property
    def is_wildcard(self) -> bool:
        return self.kind == "wildcard"


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of matching one template against one concrete path.

    ``consumed`` is only meaningful for prefix matches: the concrete path
    text covered by the template (``"/api"`` when ``/api`` matches
    ``/api/users``). Mounted routers strip it to get their own path.
    """

    matched: bool
    params: dict[str, str] = field(default_factory=dict)
    consumed: str = ""


NO_MATCH = MatchResult(matched=False)


def split_path(path: str) -> list[str]:
    """Split a concrete request path into segments.

    The leading slash and a single trailing slash are dropped, so
    ``/users/42/`` and ``/users/42`` both give ``["users", "42"]`` and
    the root path gives ``[]``. Empty inner segments are preserved
    (``/a//b`` has three segments) so they can never satisfy a param.
    """
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    if not path:
        return []
    return path.split("/")


@dataclass(frozen=True, slots=True)
class PathTemplate:
    """A compiled, validated path template.

    Build with ``PathTemplate.compile("/users/:id")``; invalid templates
    raise ``InvalidPattern``.
    """

    source: str
    segments: tuple[Segment, ...]

    @property
    def is_match_all(self) -> bool:
        return self.source == MATCH_ALL

    @property
    def has_wildcard(self) -> bool:
        return bool(self.segments) and self.segments[-1].is_wildcard

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(seg.value for seg in self.segments if seg.is_param)

    @classmethod
    def compile(cls, pattern: str) -> "PathTemplate":
        """Parse and validate *pattern*.

        Rules enforced here:

        - the pattern is ``*``, empty, or starts with ``/``
        - parameter names are non-empty and unique within the template
        - a wildcard, if present, is the final segment and stands alone
        - no empty inner segments (``/a//b``)
        """
        if pattern == MATCH_ALL:
            return cls(source=pattern, segments=())
        if pattern and not pattern.startswith("/"):
            raise InvalidPattern(pattern, "must start with '/' or be '*'")

        parts = split_path(pattern)
        segments: list[Segment] = []
        seen: set[str] = set()
        for index, part in enumerate(parts):
            if not part:
                raise InvalidPattern(pattern, "empty path segment")
            if part == WILDCARD:
                if index != len(parts) - 1:
                    raise InvalidPattern(pattern, "wildcard must be the final segment")
                segments.append(Segment("wildcard", WILDCARD))
            elif WILDCARD in part:
                raise InvalidPattern(pattern, f"wildcard must be a whole segment, got {part!r}")
            elif part.startswith(":"):
                name = part[1:]
                if not name:
                    raise InvalidPattern(pattern, "parameter name is empty")
                if ":" in name:
                    raise InvalidPattern(pattern, f"malformed parameter {part!r}")
                if name in seen:
                    raise InvalidPattern(pattern, f"duplicate parameter name {name!r}")
                seen.add(name)
                segments.append(Segment("param", name))
            else:
                segments.append(Segment("literal", part))
        return cls(source=pattern, segments=tuple(segments))

    def match(self, path: str) -> MatchResult:
        """Match the whole of *path* against this template."""
        if self.is_match_all:
            return MatchResult(matched=True)
        return _match_segments(self.segments, split_path(path), prefix=False)

    def match_prefix(self, path: str) -> MatchResult:
        """Match this template against the start of *path*.

        Used for mounted routers: ``/api`` matches
        ``/api``, ``/api/`` and ``/api/users`` (consumed ``/api``) but
        not ``/apiary``.
        """
        if self.is_match_all:
            return MatchResult(matched=True)
        return _match_segments(self.segments, split_path(path), prefix=True)

    def __str__(self) -> str:
        return self.source


def _match_segments(
    segments: tuple[Segment, ...],
    parts: list[str],
    *,
    prefix: bool,
) -> MatchResult:
    has_wildcard = bool(segments) and segments[-1].is_wildcard
    fixed = segments[:-1] if has_wildcard else segments

    if len(parts) < len(fixed):
        return NO_MATCH
    if not has_wildcard and not prefix and len(parts) != len(fixed):
        return NO_MATCH

    params: dict[str, str] = {}
    for seg, part in zip(fixed, parts, strict=False):
        if seg.is_param:
            if not part:
                return NO_MATCH
            params[seg.value] = part
        elif seg.value != part:
            return NO_MATCH

    consumed = "/" + "/".join(parts[: len(fixed)]) if fixed else ""
    if has_wildcard:
        params[WILDCARD] = "/".join(parts[len(fixed) :])
    return MatchResult(matched=True, params=params, consumed=consumed)


def match(pattern: str | PathTemplate, path: str) -> MatchResult:
    """Match *path* against *pattern* (compiled on the fly if a string).

    Convenience wrapper for one-off checks; the registry stores compiled
    templates so the hot path never re-parses.
    """
    template = pattern if isinstance(pattern, PathTemplate) else PathTemplate.compile(pattern)
    return template.match(path)
