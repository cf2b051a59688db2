from __future__ import annotations

from dataclasses import dataclass
import json

import pytest

from quantmap.exceptions import UnknownItemError
from quantmap.quantile import (
    BucketRange,
    CountMap,
    CountMapGeneric,
    bucket_slot,
    clamped_index,
    count_bucket_name,
    raw_index,
)


def _slot_of(count_map: CountMap, key: str) -> int:
    holders = [idx for idx, bucket in enumerate(count_map.buckets) if key in bucket]
    assert len(holders) == 1, holders
    return holders[0]


def test_bucket_names_for_small_range() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    assert [bucket.name for bucket in count_map.buckets] == [
        "<= 1",
        "From 2 to 3",
        "From 4 to 7",
        "From 8 to 15",
        ">= 16",
    ]


def test_default_range_covers_up_to_2048() -> None:
    count_map = CountMap()
    assert count_map.lower_bucket_index == 0
    assert count_map.higher_bucket_index == 10
    assert len(count_map.buckets) == 12
    assert count_map.buckets[-1].name == ">= 2048"
    assert count_map.buckets[-2].name == "From 1024 to 2047"


def test_bucket_names_with_shifted_lower_bound() -> None:
    bucket_range = BucketRange(lower=2, upper=4)
    assert [count_bucket_name(idx, bucket_range) for idx in range(bucket_range.bucket_count)] == [
        "<= 4",
        "From 8 to 15",
        "From 16 to 31",
        ">= 32",
    ]


@pytest.mark.parametrize(
    ("count", "expected"),
    [(0, 0), (1, 0), (2, 1), (3, 1), (4, 2), (7, 2), (8, 3), (19, 4), (1024, 10), (1025, 10)],
)
def test_raw_index_is_floor_log2(count: int, expected: int) -> None:
    assert raw_index(count) == expected


def test_raw_index_rejects_negative_counts() -> None:
    with pytest.raises(ValueError):
        raw_index(-1)


@pytest.mark.parametrize(("lower", "upper"), [(0, 0), (0, 3), (1, 4), (3, 10)])
def test_clamped_index_partitions_the_range(lower: int, upper: int) -> None:
    bucket_range = BucketRange(lower=lower, upper=upper)
    previous = None
    for count in range(0, 5000):
        index = clamped_index(count, bucket_range)
        assert lower <= index <= upper + 1
        assert 0 <= bucket_slot(count, bucket_range) < bucket_range.bucket_count
        if previous is not None:
            assert index >= previous
        previous = index


def test_first_add_seeds_underflow_bucket() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_item("a")
    assert count_map.usage("a") == 1
    assert _slot_of(count_map, "a") == 0
    assert count_map.total_items_count == 1


def test_second_add_migrates_to_next_bucket() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_items(["a", "a"])
    assert count_map.usage("a") == 2
    assert _slot_of(count_map, "a") == 1
    assert count_map.buckets[1].name == "From 2 to 3"


def test_twenty_adds_clamp_into_overflow_bucket() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_items(["a"] * 20)
    assert count_map.usage("a") == 20
    assert _slot_of(count_map, "a") == 4
    assert count_map.buckets[4].name == ">= 16"
    assert count_map.total_items_count == 20


def test_placement_tracks_power_of_two_thresholds() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    expected_slots = {1: 0, 2: 1, 3: 1, 4: 2, 7: 2, 8: 3, 15: 3, 16: 4, 17: 4}
    for count in range(1, 18):
        count_map.add_item("x")
        assert _slot_of(count_map, "x") == bucket_slot(count, count_map.engine.bucket_range)
        if count in expected_slots:
            assert _slot_of(count_map, "x") == expected_slots[count], count


def test_new_key_is_seeded_in_lowest_slot_whatever_the_range() -> None:
    count_map = CountMap(lower_bucket_index=2, higher_bucket_index=4)
    count_map.add_item("x")
    assert _slot_of(count_map, "x") == 0
    assert count_map.buckets[0].name == "<= 4"


def test_placement_is_monotonic_and_exclusive() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=5)
    stream = ["a", "b", "a", "c", "a", "b"] * 30
    previous_slots: dict[str, int] = {}
    for item in stream:
        count_map.add_item(item)
        for key in count_map.items:
            slot = _slot_of(count_map, key)
            assert slot >= previous_slots.get(key, 0)
            previous_slots[key] = slot
    assert sum(len(bucket) for bucket in count_map.buckets) == len(count_map.items) == 3
    assert count_map.total_items_count == len(stream)


def test_canonicalization_collapses_case_and_separators() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_items(["X/Y.TXT", "x\\y.txt"])
    assert count_map.items == frozenset({"x/y.txt"})
    assert count_map.usage("x/y.txt") == 2
    assert count_map.usage("X\\Y.txt") == 2
    assert len(count_map) == 1


def test_canonicalization_of_asset_paths() -> None:
    count_map = CountMap()
    count_map.add_item("Foo/Bar.png")
    count_map.add_item("foo\\bar.PNG")
    assert count_map.usage("foo/bar.png") == 2
    assert "FOO/BAR.PNG" in count_map


def test_usage_of_unknown_key_fails() -> None:
    count_map = CountMap()
    with pytest.raises(UnknownItemError) as exc_info:
        count_map.usage("nothing/here.png")
    assert exc_info.value.key == "nothing/here.png"
    assert isinstance(exc_info.value, KeyError)
    assert "nothing/here.png" not in count_map


def test_reset_clears_everything() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_items(["a"] * 20 + ["b"])
    count_map.reset()
    assert all(len(bucket) == 0 for bucket in count_map.buckets)
    assert count_map.total_items_count == 0
    assert count_map.items == frozenset()
    with pytest.raises(UnknownItemError):
        count_map.usage("a")
    assert [bucket.name for bucket in count_map.buckets][-1] == ">= 16"

    count_map.add_item("a")
    assert count_map.usage("a") == 1
    assert _slot_of(count_map, "a") == 0


def test_bucket_of_returns_current_bucket() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_items(["a"] * 5)
    assert count_map.bucket_of("A").name == "From 4 to 7"
    with pytest.raises(UnknownItemError):
        count_map.bucket_of("b")


def test_serialize_is_deterministic_and_complete() -> None:
    count_map = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    count_map.add_items(["Zed.png", "alpha.png", "alpha.png", "Mid.png"])
    first = count_map.serialize()
    assert count_map.serialize() == first

    document = json.loads(first)
    assert document["lower_bucket_index"] == 0
    assert document["higher_bucket_index"] == 3
    assert document["total_items_count"] == 4
    assert document["buckets"][0] == {"name": "<= 1", "members": ["mid.png", "zed.png"]}
    assert document["buckets"][1] == {"name": "From 2 to 3", "members": ["alpha.png"]}
    assert [bucket["members"] for bucket in document["buckets"][2:]] == [[], [], []]


def test_serialize_does_not_depend_on_insertion_order() -> None:
    forward = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    backward = CountMap(lower_bucket_index=0, higher_bucket_index=3)
    items = ["c", "b", "a", "d"]
    forward.add_items(items)
    backward.add_items(reversed(items))
    assert forward.serialize() == backward.serialize()


def test_shifted_lower_bound_uses_offset_slots() -> None:
    count_map = CountMap(lower_bucket_index=1, higher_bucket_index=2)
    assert [bucket.name for bucket in count_map.buckets] == ["<= 2", "From 4 to 7", ">= 8"]
    count_map.add_items(["a"] * 5)
    # Count 5 -> exponent 2 -> slot 1.
    assert _slot_of(count_map, "a") == 1
    count_map.add_items(["a"] * 4)
    assert _slot_of(count_map, "a") == 2


def test_lowest_slot_holds_counts_below_next_power_when_lower_is_positive() -> None:
    count_map = CountMap(lower_bucket_index=1, higher_bucket_index=2)
    count_map.add_items(["a"] * 3)
    assert count_map.buckets[_slot_of(count_map, "a")].name == "<= 2"
    count_map.add_item("a")
    assert count_map.buckets[_slot_of(count_map, "a")].name == "From 4 to 7"


@dataclass(frozen=True)
class _Asset:
    path: str
    kind: str


def test_generic_count_map_extracts_keys_from_typed_items() -> None:
    count_map: CountMapGeneric[_Asset] = CountMapGeneric(
        key_fn=lambda asset: asset.path,
        lower_bucket_index=0,
        higher_bucket_index=2,
    )
    count_map.add_items(
        [
            _Asset("Textures\\Wall.PNG", "texture"),
            _Asset("textures/wall.png", "texture"),
            _Asset("Meshes/Door.fbx", "mesh"),
        ]
    )
    assert count_map.usage(_Asset("TEXTURES/WALL.png", "texture")) == 2
    assert count_map.items == frozenset({"textures/wall.png", "meshes/door.fbx"})


def test_membership_propagates_key_extraction_errors() -> None:
    def strict_key(asset: _Asset) -> str:
        if not asset.path:
            raise ValueError("asset has no path")
        return asset.path

    count_map: CountMapGeneric[_Asset] = CountMapGeneric(
        key_fn=strict_key,
        lower_bucket_index=0,
        higher_bucket_index=2,
    )
    count_map.add_item(_Asset("Meshes/Door.fbx", "mesh"))
    assert _Asset("meshes/door.FBX", "mesh") in count_map
    with pytest.raises(ValueError, match="asset has no path"):
        _Asset("", "mesh") in count_map
