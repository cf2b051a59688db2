"""A "quantile map", sorting items into named range buckets.

The engine owns a fixed array of buckets covering the exponent range
``[lower_bucket_index, higher_bucket_index]`` plus one underflow and one
overflow slot. Everything item-specific (key extraction, bucket computation,
naming, extra scalar fields in the export) is delegated to a
``BucketingStrategy``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Generic, Iterable, Protocol, TypeVar

from quantmap.exceptions import BucketRangeError
from quantmap.invariants import require_in_range
from quantmap.json_types import JSONObject, JSONValue
from quantmap.quantile.bucket import MapBucket
from quantmap.runtime.stable_encode import stable_pretty_bytes

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)

DEFAULT_LOWER_BUCKET_INDEX = 0
DEFAULT_HIGHER_BUCKET_INDEX = 10


@dataclass(frozen=True)
class BucketRange:
    lower: int
    upper: int

    @property
    def bucket_count(self) -> int:
        # One extra slot each for "<= min" and ">= max".
        return self.upper - self.lower + 2


@dataclass(frozen=True)
class BucketMove:
    """Placement decision for one added item.

    ``previous`` is the slot currently holding ``key`` (``None`` for a key
    seen for the first time), ``target`` is the slot it must end up in.
    """

    key: str
    target: int
    previous: int | None = None

    @property
    def migrates(self) -> bool:
        return self.previous is not None and self.previous != self.target


class BucketingStrategy(Protocol[T_contra]):
    def bucket_name(self, index: int, bucket_range: BucketRange) -> str:
        ...

    def canonical_key(self, item: T_contra) -> str:
        ...

    def place(self, key: str, bucket_range: BucketRange) -> BucketMove:
        ...

    def reset(self) -> None:
        ...

    def export_fields(self) -> JSONObject:
        ...


class QuantileMap(Generic[T]):
    def __init__(
        self,
        strategy: BucketingStrategy[T],
        lower_bucket_index: int = DEFAULT_LOWER_BUCKET_INDEX,
        higher_bucket_index: int = DEFAULT_HIGHER_BUCKET_INDEX,
    ):
        if lower_bucket_index > higher_bucket_index:
            raise BucketRangeError(
                lower_bucket_index,
                higher_bucket_index,
                f"lower bucket index {lower_bucket_index} is greater than "
                f"higher bucket index {higher_bucket_index}",
            )
        if lower_bucket_index < 0:
            raise BucketRangeError(
                lower_bucket_index,
                higher_bucket_index,
                f"lower bucket index must be >= 0, got {lower_bucket_index}",
            )
        self._range = BucketRange(lower=lower_bucket_index, upper=higher_bucket_index)
        self._strategy = strategy
        self._buckets: tuple[MapBucket, ...] = tuple(
            MapBucket(strategy.bucket_name(idx, self._range))
            for idx in range(self._range.bucket_count)
        )

    @property
    def lower_bucket_index(self) -> int:
        return self._range.lower

    @property
    def higher_bucket_index(self) -> int:
        return self._range.upper

    @property
    def bucket_range(self) -> BucketRange:
        return self._range

    @property
    def bucket_count(self) -> int:
        return self._range.bucket_count

    @property
    def buckets(self) -> tuple[MapBucket, ...]:
        return self._buckets

    @property
    def strategy(self) -> BucketingStrategy[T]:
        return self._strategy

    def add_item(self, item: T) -> int:
        """Add one item and return the slot its key now lives in."""
        key = self._strategy.canonical_key(item)
        move = self._strategy.place(key, self._range)
        target = self._check_slot(move.target, key=key, role="target")
        if move.migrates:
            previous = self._check_slot(move.previous, key=key, role="previous")
            self._buckets[previous].discard(key)
            logger.debug(
                "moved %s from %r to %r",
                key,
                self._buckets[previous].name,
                self._buckets[target].name,
            )
        self._buckets[target].add(key)
        return target

    def add_items(self, items: Iterable[T]) -> None:
        for item in items:
            self.add_item(item)

    def reset(self) -> None:
        for bucket in self._buckets:
            bucket.reset()
        self._strategy.reset()

    def bucket_for(self, key: str) -> MapBucket | None:
        for bucket in self._buckets:
            if key in bucket:
                return bucket
        return None

    def to_payload(self) -> JSONObject:
        buckets: list[JSONValue] = []
        for bucket in self._buckets:
            bucket.prepare_export()
            buckets.append(bucket.to_payload())
        payload: JSONObject = {
            "lower_bucket_index": self._range.lower,
            "higher_bucket_index": self._range.upper,
        }
        payload.update(self._strategy.export_fields())
        payload["buckets"] = buckets
        return payload

    def serialize(self) -> bytes:
        return stable_pretty_bytes(self.to_payload())

    def _check_slot(self, index: int, *, key: str, role: str) -> int:
        return require_in_range(
            index,
            low=0,
            high=self._range.bucket_count - 1,
            reason="bucket index out of range",
            key=key,
            role=role,
            bucket_count=self._range.bucket_count,
        )
