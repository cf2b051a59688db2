from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from quantmap.invariants import never


T = TypeVar("T")


def sort_once(
    values: Iterable[T],
    *,
    source: str,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
) -> list[T]:
    """Return ``values`` in canonical sorted order.

    ``source`` names the call site; it is reported when the values cannot be
    compared with each other.
    """
    items = list(values)
    try:
        return sorted(items, key=key, reverse=reverse)
    except TypeError as exc:
        never(
            "canonical sort requires comparable keys",
            source=source,
            error=str(exc),
        )
