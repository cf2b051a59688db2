from __future__ import annotations

from typing import List

from pydantic import BaseModel


class BucketDTO(BaseModel):
    name: str
    members: List[str] = []


class CountMapReportDTO(BaseModel):
    lower_bucket_index: int
    higher_bucket_index: int
    total_items_count: int = 0
    buckets: List[BucketDTO]

    @property
    def unique_items_count(self) -> int:
        return sum(len(bucket.members) for bucket in self.buckets)
