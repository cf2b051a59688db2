"""Invariant markers."""

from __future__ import annotations

from typing import NoReturn

from quantmap.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    Reaching it raises ``NeverThrown``; the keyword payload is attached to the
    exception for diagnostics and is not otherwise evaluated.
    """
    normalized_reason = str(reason or "never() invariant reached").strip()
    raise NeverThrown(
        normalized_reason,
        env={str(key): value for key, value in env.items()},
    )


def require_in_range(value: int, *, low: int, high: int, reason: str = "", **env: object) -> int:
    if not low <= value <= high:
        never(reason or "value out of range", value=value, low=low, high=high, **env)
    return value
