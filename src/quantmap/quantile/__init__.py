"""Quantile maps: buckets, the bucketing engine and reference-count maps."""

from .bucket import MapBucket
from .count_map import (
    CountMap,
    CountMapGeneric,
    RefCountStrategy,
    bucket_slot,
    clamped_index,
    count_bucket_name,
    raw_index,
)
from .engine import (
    DEFAULT_HIGHER_BUCKET_INDEX,
    DEFAULT_LOWER_BUCKET_INDEX,
    BucketingStrategy,
    BucketMove,
    BucketRange,
    QuantileMap,
)

__all__ = [
    "DEFAULT_HIGHER_BUCKET_INDEX",
    "DEFAULT_LOWER_BUCKET_INDEX",
    "BucketingStrategy",
    "BucketMove",
    "BucketRange",
    "CountMap",
    "CountMapGeneric",
    "MapBucket",
    "QuantileMap",
    "RefCountStrategy",
    "bucket_slot",
    "clamped_index",
    "count_bucket_name",
    "raw_index",
]
