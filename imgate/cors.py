"""Origin allow-list matching.

Entries are exact origins (``https://app.example.com``), the wildcard ``*``,
or regular expressions wrapped in slashes (``/^https:\\/\\/.*\\.example\\.com$/``).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

logger = logging.getLogger(__name__)

WILDCARD = "*"


def _is_regex_entry(entry: str) -> bool:
    return len(entry) >= 2 and entry.startswith("/") and entry.endswith("/")


def _compile(entry: str) -> re.Pattern[str] | None:
    try:
        return re.compile(entry[1:-1])
    except re.error as exc:
        logger.warning("Ignoring malformed origin pattern %s: %s", entry, exc)
        return None


class OriginMatcher:
    """Immutable matcher built once from the configured allow-list."""

    def __init__(self, allowed: Sequence[str]) -> None:
        self._entries: tuple[str | re.Pattern[str] | None, ...] = tuple(
            _compile(entry) if _is_regex_entry(entry) else entry for entry in allowed
        )
        self.allow_all = not allowed or WILDCARD in allowed

    def is_allowed(self, origin: str | None) -> bool:
        if self.allow_all:
            return True
        if not origin:
            return False
        for entry in self._entries:
            if entry is None:
                continue
            if isinstance(entry, str):
                if origin == entry:
                    return True
            elif entry.search(origin):
                return True
        return False


def is_origin_allowed(origin: str | None, allowed: Sequence[str]) -> bool:
    return OriginMatcher(allowed).is_allowed(origin)
