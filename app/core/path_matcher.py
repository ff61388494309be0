"""Path selection for the admission middleware.

Patterns containing glob characters (``*``, ``?``, ``[``) are matched with
``fnmatch`` against the whole path; ``*`` also crosses ``/``. Any other
pattern is a prefix matched on segment boundaries, so ``/api/chat`` matches
``/api/chat`` and ``/api/chat/stream`` but not ``/api/chatter``.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable

_GLOB_CHARS = frozenset("*?[")


def _matches(pattern: str, path: str) -> bool:
    if _GLOB_CHARS.intersection(pattern):
        return fnmatchcase(path, pattern)
    prefix = pattern.rstrip("/")
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


class PathMatcher:
    """Selects which request paths are rate limited.

    A path is matched when it matches at least one include pattern and no
    exclude pattern.
    """

    def __init__(self, include: Iterable[str], exclude: Iterable[str] = ()) -> None:
        self.include = tuple(include)
        self.exclude = tuple(exclude)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"PathMatcher(include={self.include!r}, exclude={self.exclude!r})"

    def matches(self, path: str) -> bool:
        if not any(_matches(pattern, path) for pattern in self.include):
            return False
        return not any(_matches(pattern, path) for pattern in self.exclude)
