from __future__ import annotations

import re
import secrets
import time
from collections.abc import Callable

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

DEFAULT_FILENAME = "file"


def _random_suffix() -> str:
    return secrets.token_hex(3)


def sanitize_filename(name: str | None) -> str:
    """Replace anything outside ``[A-Za-z0-9._-]`` with ``_``."""
    if not name:
        return DEFAULT_FILENAME
    safe = _UNSAFE_CHARS.sub("_", name)
    # A name made only of dots would read as a relative path segment.
    if not safe.strip("."):
        safe = f"_{safe}"
    return safe


def normalize_prefix(prefix: str | None) -> str:
    if not prefix:
        return ""
    segments = [sanitize_filename(s) for s in prefix.split("/") if s]
    return "/".join(segments)


def build_key(
    prefix: str | None,
    original_filename: str | None,
    entropy: Callable[[], str] = _random_suffix,
    now_ms: int | None = None,
) -> str:
    """Build a storage key: ``<prefix>/<epoch_ms>-<entropy>-<sanitized name>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    name = f"{now_ms}-{entropy()}-{sanitize_filename(original_filename)}"
    normalized = normalize_prefix(prefix)
    if normalized:
        return f"{normalized}/{name}"
    return name
