"""Merging of partial record maps returned across paginated requests."""

from __future__ import annotations

from collections.abc import Iterable

from extranotion.types import RECORD_MAP_CATEGORIES, Block, RecordMap


def merge_record_maps(record_maps: Iterable[RecordMap]) -> RecordMap:
    """Combine partial record maps into one.

    Records are copied category by category in input order, so when the same
    id shows up more than once the record from the later map wins.

    Args:
        record_maps: Partial maps in fetch order.

    Returns:
        A new RecordMap. The inputs are not modified.
    """
    merged = RecordMap()
    for record_map in record_maps:
        for category in RECORD_MAP_CATEGORIES:
            getattr(merged, category).update(getattr(record_map, category))
    return merged


def block_arena(record_map: RecordMap) -> dict[str, Block]:
    """Map block ids to blocks, leaving out entries without a readable value."""
    return {
        block_id: entry.value
        for block_id, entry in record_map.blocks.items()
        if entry.value is not None
    }
