"""Named buckets holding deduplicated member keys."""

from __future__ import annotations

from typing import Iterator

from quantmap.json_types import JSONObject
from quantmap.order_contract import sort_once


class MapBucket:
    """One named bucket of a quantile map.

    The live ``members`` set is the source of truth; ``exported`` is a sorted
    view rebuilt by :meth:`prepare_export` and never read back.
    """

    __slots__ = ("_name", "members", "exported")

    def __init__(self, name: str):
        self._name = name
        self.members: set[str] = set()
        self.exported: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def add(self, key: str) -> None:
        self.members.add(key)

    def discard(self, key: str) -> None:
        self.members.discard(key)

    def reset(self) -> None:
        self.members.clear()
        self.exported = []

    def prepare_export(self) -> list[str]:
        self.exported = sort_once(
            self.members,
            source=f"MapBucket.prepare_export[{self._name}]",
        )
        return self.exported

    def to_payload(self) -> JSONObject:
        return {"name": self._name, "members": list(self.exported)}

    def __contains__(self, key: object) -> bool:
        return key in self.members

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[str]:
        return iter(self.members)

    def __repr__(self) -> str:
        return f"MapBucket(name={self._name!r}, size={len(self.members)})"
