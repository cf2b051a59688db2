"""Reference-count maps: how many times each item is used, in power-of-two buckets."""

from __future__ import annotations

from typing import Callable, Generic, Iterable, TypeVar

from quantmap.exceptions import UnknownItemError
from quantmap.invariants import never
from quantmap.json_types import JSONObject
from quantmap.paths import canonical_key
from quantmap.quantile.bucket import MapBucket
from quantmap.quantile.engine import (
    DEFAULT_HIGHER_BUCKET_INDEX,
    DEFAULT_LOWER_BUCKET_INDEX,
    BucketMove,
    BucketRange,
    QuantileMap,
)

T = TypeVar("T")


def raw_index(count: int) -> int:
    """floor(log2(count)), with a count of 0 mapped to exponent 0."""
    if count < 0:
        raise ValueError(f"reference count cannot be negative: {count}")
    if count == 0:
        return 0
    return count.bit_length() - 1


def clamped_index(count: int, bucket_range: BucketRange) -> int:
    return min(max(raw_index(count), bucket_range.lower), bucket_range.upper + 1)


def bucket_slot(count: int, bucket_range: BucketRange) -> int:
    """Array slot of the bucket holding a key whose count is ``count``."""
    return clamped_index(count, bucket_range) - bucket_range.lower


def count_bucket_name(index: int, bucket_range: BucketRange) -> str:
    """Display name of array slot ``index``.

    The first slot is labelled ``<= 2**lower``, yet counts are clamped by
    exponent, so it holds every count up to ``2**(lower + 1) - 1``. With
    ``lower=1`` a key counted 3 times sits in the ``"<= 2"`` slot. The labels
    are part of the report format and are kept as they are.
    """
    if index == 0:
        return f"<= {1 << bucket_range.lower}"
    if index == bucket_range.bucket_count - 1:
        return f">= {1 << (bucket_range.upper + 1)}"
    low = 1 << (index + bucket_range.lower)
    high = (1 << (index + bucket_range.lower + 1)) - 1
    return f"From {low} to {high}"


def _path_key(item: object) -> str:
    return canonical_key(str(item))


class RefCountStrategy(Generic[T]):
    """Bucketing strategy keeping a persistent ``key -> count`` table.

    The movement decision is taken from the count *before* the current add
    is tallied: a new key is seeded in the lowest bucket whatever the range,
    and a known key moves only when its pre-increment and post-increment
    counts fall in different buckets.
    """

    def __init__(self, key_fn: Callable[[T], str] | None = None):
        self._key_fn = key_fn
        self.count_by_key: dict[str, int] = {}
        self.total_items_count = 0

    def canonical_key(self, item: T) -> str:
        if self._key_fn is None:
            return _path_key(item)
        return canonical_key(self._key_fn(item))

    def bucket_name(self, index: int, bucket_range: BucketRange) -> str:
        return count_bucket_name(index, bucket_range)

    def place(self, key: str, bucket_range: BucketRange) -> BucketMove:
        count = self.count_by_key.get(key)
        if count is None:
            move = BucketMove(key=key, target=0)
            count = 0
        else:
            move = BucketMove(
                key=key,
                previous=bucket_slot(count, bucket_range),
                target=bucket_slot(count + 1, bucket_range),
            )
        self.count_by_key[key] = count + 1
        self.total_items_count += 1
        return move

    def reset(self) -> None:
        self.count_by_key.clear()
        self.total_items_count = 0

    def export_fields(self) -> JSONObject:
        return {"total_items_count": self.total_items_count}


class CountMapGeneric(Generic[T]):
    """A reference count map generic enough to handle typed items.

    ``key_fn`` extracts the path-like identity of an item; the result is
    normalised and lower-cased before it is counted.
    """

    def __init__(
        self,
        key_fn: Callable[[T], str] | None = None,
        lower_bucket_index: int = DEFAULT_LOWER_BUCKET_INDEX,
        higher_bucket_index: int = DEFAULT_HIGHER_BUCKET_INDEX,
    ):
        self._strategy: RefCountStrategy[T] = RefCountStrategy(key_fn)
        self._engine: QuantileMap[T] = QuantileMap(
            self._strategy,
            lower_bucket_index=lower_bucket_index,
            higher_bucket_index=higher_bucket_index,
        )

    @property
    def engine(self) -> QuantileMap[T]:
        return self._engine

    @property
    def buckets(self) -> tuple[MapBucket, ...]:
        return self._engine.buckets

    @property
    def lower_bucket_index(self) -> int:
        return self._engine.lower_bucket_index

    @property
    def higher_bucket_index(self) -> int:
        return self._engine.higher_bucket_index

    @property
    def total_items_count(self) -> int:
        return self._strategy.total_items_count

    @property
    def items(self) -> frozenset[str]:
        return frozenset(self._strategy.count_by_key)

    def usage(self, item: T) -> int:
        key = self._strategy.canonical_key(item)
        try:
            return self._strategy.count_by_key[key]
        except KeyError:
            raise UnknownItemError(key) from None

    def __contains__(self, item: object) -> bool:
        key = self._strategy.canonical_key(item)  # type: ignore[arg-type]
        return key in self._strategy.count_by_key

    def __len__(self) -> int:
        return len(self._strategy.count_by_key)

    def bucket_of(self, item: T) -> MapBucket:
        key = self._strategy.canonical_key(item)
        if key not in self._strategy.count_by_key:
            raise UnknownItemError(key)
        bucket = self._engine.bucket_for(key)
        if bucket is None:
            never("known key is missing from every bucket", key=key)
        return bucket

    def add_item(self, item: T) -> int:
        return self._engine.add_item(item)

    def add_items(self, items: Iterable[T]) -> None:
        self._engine.add_items(items)

    def reset(self) -> None:
        self._engine.reset()

    def to_payload(self) -> JSONObject:
        return self._engine.to_payload()

    def serialize(self) -> bytes:
        return self._engine.serialize()


class CountMap(CountMapGeneric[str]):
    """A ready-made reference count map over path-like strings."""

    def __init__(
        self,
        lower_bucket_index: int = DEFAULT_LOWER_BUCKET_INDEX,
        higher_bucket_index: int = DEFAULT_HIGHER_BUCKET_INDEX,
    ):
        super().__init__(
            None,
            lower_bucket_index=lower_bucket_index,
            higher_bucket_index=higher_bucket_index,
        )
