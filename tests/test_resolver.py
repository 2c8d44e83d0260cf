"""Tests for resolving block maps into trees."""

from __future__ import annotations

import pytest
from conftest import make_block

from extranotion.exceptions import (
    ConsistencyError,
    CycleError,
    DecodeError,
    MissingBlockError,
    MissingRecordError,
)
from extranotion.resolver import BlockResolver, resolve_block, resolve_record_map
from extranotion.types import Block, BlockType, FormatImage, FormatPage, RecordMap


def _arena(*blocks: Block) -> dict[str, Block]:
    return {block.id: block for block in blocks}


def test_children_resolved_in_order() -> None:
    blocks = _arena(
        make_block("r", content=["a", "b"]),
        make_block("a"),
        make_block("b"),
    )

    root = resolve_block("r", blocks)

    assert [child.id for child in root.content] == ["a", "b"]
    assert root.content[0] is blocks["a"]
    assert root.content[1] is blocks["b"]


def test_nested_children_resolved() -> None:
    blocks = _arena(
        make_block("r", content=["a"]),
        make_block("a", content=["a1", "a2"]),
        make_block("a1"),
        make_block("a2", content=["x"]),
        make_block("x"),
    )

    root = resolve_block("r", blocks)

    a = root.content[0]
    assert [child.id for child in a.content] == ["a1", "a2"]
    assert a.content[1].content[0].id == "x"


def test_missing_root_fails() -> None:
    with pytest.raises(MissingBlockError) as exc_info:
        resolve_block("nope", _arena(make_block("r")))
    assert exc_info.value.block_id == "nope"


def test_missing_child_fails_naming_child() -> None:
    blocks = _arena(make_block("r", content=["a", "b"]), make_block("a"))

    with pytest.raises(MissingBlockError) as exc_info:
        resolve_block("r", blocks)

    assert exc_info.value.block_id == "b"
    assert "b" in str(exc_info.value)
    assert isinstance(exc_info.value, ConsistencyError)


def test_deleted_children_are_skipped() -> None:
    blocks = _arena(
        make_block("r", content=["a", "gone", "b"]),
        make_block("a"),
        make_block("gone", alive=False),
        make_block("b"),
    )

    root = resolve_block("r", blocks)

    assert [child.id for child in root.content] == ["a", "b"]


def test_deleted_root_fails() -> None:
    with pytest.raises(MissingBlockError):
        resolve_block("r", _arena(make_block("r", alive=False)))


def test_shared_child_resolved_once() -> None:
    blocks = _arena(
        make_block("r", content=["a", "b"]),
        make_block("a", content=["shared"]),
        make_block("b", content=["shared"]),
        make_block("shared"),
    )

    root = resolve_block("r", blocks)

    assert root.content[0].content[0] is root.content[1].content[0]


def test_cycle_detected() -> None:
    blocks = _arena(
        make_block("r", content=["a"]),
        make_block("a", content=["b"]),
        make_block("b", content=["a"]),
    )

    with pytest.raises(CycleError) as exc_info:
        resolve_block("r", blocks)

    assert exc_info.value.block_id == "a"
    assert exc_info.value.path == ["r", "a", "b"]


def test_self_reference_detected() -> None:
    with pytest.raises(CycleError):
        resolve_block("r", _arena(make_block("r", content=["r"])))


def test_re_resolution_resets_children() -> None:
    blocks = _arena(make_block("r", content=["a", "b"]), make_block("a"), make_block("b"))
    resolve_block("r", blocks)

    blocks["r"].content_ids = ["b"]
    root = BlockResolver(blocks).resolve("r")

    assert [child.id for child in root.content] == ["b"]


def test_rich_text_parsed() -> None:
    blocks = _arena(
        make_block(
            "t",
            properties={"title": [["hello "], ["world", [["b"], ["a", "https://e.com"]]]]},
        )
    )

    block = resolve_block("t", blocks)

    assert [span.text for span in block.inline_content] == ["hello ", "world"]
    assert block.inline_content[1].bold
    assert block.inline_content[1].link == "https://e.com"


def test_block_without_title_has_no_inline_content() -> None:
    block = resolve_block("t", _arena(make_block("t")))
    assert block.inline_content == []


def test_malformed_title_fails_resolution() -> None:
    blocks = _arena(
        make_block("r", content=["bad"]),
        make_block("bad", properties={"title": [["x", [["z"]]]]}),
    )

    with pytest.raises(DecodeError) as exc_info:
        resolve_block("r", blocks)

    assert "bad" in str(exc_info.value)


def test_page_fields() -> None:
    page = make_block(
        "p",
        type="page",
        properties={"title": [["My "], ["Page", [["i"]]]]},
        format={"page_cover": "/images/page-cover/solid_red.png", "page_icon": "📓"},
    )

    resolved = resolve_block("p", _arena(page))

    assert resolved.title == "My Page"
    fmt = resolved.format_as(FormatPage)
    assert fmt is not None
    assert fmt.page_cover_url == "https://www.notion.so/images/page-cover/solid_red.png"


def test_todo_checked_state() -> None:
    blocks = _arena(
        make_block("done", type="to_do", properties={"title": [["x"]], "checked": [["Yes"]]}),
        make_block("open", type="to_do", properties={"title": [["y"]], "checked": [["No"]]}),
        make_block("bare", type="to_do", properties={"title": [["z"]]}),
    )

    assert resolve_block("done", blocks).is_checked
    assert not resolve_block("open", blocks).is_checked
    assert not resolve_block("bare", blocks).is_checked


def test_code_fields() -> None:
    block = make_block(
        "c",
        type="code",
        properties={"title": [["x = 1\n"], ["y = 2"]], "language": [["Python"]]},
    )

    resolved = resolve_block("c", _arena(block))

    assert resolved.code == "x = 1\ny = 2"
    assert resolved.code_language == "Python"


def test_bookmark_fields() -> None:
    block = make_block(
        "bm",
        type="bookmark",
        properties={
            "title": [["Example"]],
            "description": [["An example site"]],
            "link": [["https://example.com"]],
        },
        format={"bookmark_icon": "https://example.com/favicon.ico"},
    )

    resolved = resolve_block("bm", _arena(block))

    assert resolved.title == "Example"
    assert resolved.description == "An example site"
    assert resolved.link == "https://example.com"


def test_image_url_built_from_source() -> None:
    block = make_block(
        "img",
        type="image",
        properties={"source": [["https://s3.example.com/a b.png"]]},
        format={"block_width": 320},
    )

    resolved = resolve_block("img", _arena(block))

    expected = "https://www.notion.so/image/https%3A%2F%2Fs3.example.com%2Fa%20b.png"
    assert resolved.source == "https://s3.example.com/a b.png"
    assert resolved.image_url == expected
    fmt = resolved.format_as(FormatImage)
    assert fmt is not None
    assert fmt.image_url == expected


def test_file_fields() -> None:
    block = make_block(
        "f",
        type="file",
        properties={"source": [["https://files.example.com/report.pdf"]], "size": [["2.1MB"]]},
    )

    resolved = resolve_block("f", _arena(block))

    assert resolved.source == "https://files.example.com/report.pdf"
    assert resolved.file_size == "2.1MB"


def test_resolve_record_map_ignores_unreadable_entries() -> None:
    record_map = RecordMap.model_validate(
        {
            "block": {
                "r": {"role": "editor", "value": {"id": "r", "type": "page", "content": ["h"]}},
                "h": {"role": "none", "value": None},
            }
        }
    )

    with pytest.raises(MissingBlockError) as exc_info:
        resolve_record_map("r", record_map)

    assert exc_info.value.block_id == "h"


def test_deep_chain_resolved() -> None:
    depth = 1200
    blocks = _arena(
        *(make_block(f"b{i}", content=[f"b{i + 1}"]) for i in range(depth - 1)),
        make_block(f"b{depth - 1}"),
    )

    root = resolve_block("b0", blocks)

    node = root
    for _ in range(depth - 1):
        assert len(node.content) == 1
        node = node.content[0]
    assert node.id == f"b{depth - 1}"
    assert node.content == []


def test_resolver_reusable_after_cycle() -> None:
    blocks = _arena(
        make_block("loop", content=["loop"]),
        make_block("r", content=["a"]),
        make_block("a"),
    )
    resolver = BlockResolver(blocks)

    with pytest.raises(CycleError):
        resolver.resolve("loop")

    assert [child.id for child in resolver.resolve("r").content] == ["a"]


def _collection_record_map(view_ids: list[str], views: dict[str, object]) -> RecordMap:
    return RecordMap.model_validate(
        {
            "block": {
                "r": {
                    "role": "editor",
                    "value": {"id": "r", "type": "page", "content": ["cv"]},
                },
                "cv": {
                    "role": "editor",
                    "value": {
                        "id": "cv",
                        "type": "collection_view",
                        "collection_id": "coll-1",
                        "view_ids": view_ids,
                        "parent_id": "r",
                        "parent_table": "block",
                    },
                },
                "row-1": {
                    "role": "editor",
                    "value": {
                        "id": "row-1",
                        "type": "page",
                        "parent_id": "coll-1",
                        "parent_table": "collection",
                        "properties": {"title": [["First task"]]},
                    },
                },
                "row-2": {
                    "role": "editor",
                    "value": {
                        "id": "row-2",
                        "type": "page",
                        "alive": False,
                        "parent_id": "coll-1",
                        "parent_table": "collection",
                    },
                },
            },
            "collection": {
                "coll-1": {
                    "role": "editor",
                    "value": {"id": "coll-1", "name": [["Tasks"]], "schema": {}},
                }
            },
            "collection_view": views,
        }
    )


def test_collection_views_linked() -> None:
    record_map = _collection_record_map(
        ["view-1"],
        {
            "view-1": {
                "role": "editor",
                "value": {"id": "view-1", "type": "table", "name": "All tasks"},
            }
        },
    )

    root = resolve_record_map("r", record_map)

    cv = root.content[0]
    assert cv.type == BlockType.COLLECTION_VIEW
    assert len(cv.collection_views) == 1
    info = cv.collection_views[0]
    assert info.collection_view.name == "All tasks"
    assert info.collection.id == "coll-1"
    assert info.collection_row_ids == ["row-1"]
    assert info.collection_rows[0].title == "First task"


def test_collection_view_without_views_has_none() -> None:
    root = resolve_record_map("r", _collection_record_map([], {}))

    assert root.content[0].collection_views == []


def test_missing_collection_view_fails() -> None:
    record_map = _collection_record_map(["view-1"], {})

    with pytest.raises(MissingRecordError) as exc_info:
        resolve_record_map("r", record_map)

    assert exc_info.value.table == "collection_view"
    assert exc_info.value.record_id == "view-1"
    assert isinstance(exc_info.value, ConsistencyError)


def test_missing_collection_fails() -> None:
    record_map = _collection_record_map(
        ["view-1"],
        {"view-1": {"role": "editor", "value": {"id": "view-1", "type": "table"}}},
    )
    record_map.collections.clear()

    with pytest.raises(MissingRecordError) as exc_info:
        resolve_record_map("r", record_map)

    assert exc_info.value.record_id == "coll-1"
