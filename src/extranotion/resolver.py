"""Resolution of a flat block map into a tree.

Blocks reference their children by id only (``content_ids``). Resolution
walks the ids from a root, links each block's ``content`` to the child Block
objects in order, and fills the derived per-type fields (rich text, title,
checked state, code, sources, collection views...).

Deleted children (``alive`` False) are left out of ``content``. A child id
that is not in the map at all means the map is incomplete and is an error.
The walk keeps its own stack, so tree depth is not bounded by the
interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from extranotion.exceptions import (
    CycleError,
    DecodeError,
    MissingBlockError,
    MissingRecordError,
)
from extranotion.inline import InlineBlock, inline_text, parse_inline_blocks
from extranotion.record_map import block_arena
from extranotion.types import (
    Block,
    BlockType,
    Collection,
    CollectionView,
    CollectionViewInfo,
    FormatImage,
    FormatPage,
    RecordMap,
    Table,
)

logger = logging.getLogger(__name__)

NOTION_HOST = "https://www.notion.so"
IMAGE_PROXY_URL = f"{NOTION_HOST}/image/"

# Block types with a properties.source URL
_SOURCE_TYPES = frozenset(
    {
        BlockType.BOOKMARK,
        BlockType.IMAGE,
        BlockType.VIDEO,
        BlockType.AUDIO,
        BlockType.FILE,
        BlockType.PDF,
        BlockType.GIST,
        BlockType.EMBED,
    }
)

_COLLECTION_VIEW_TYPES = frozenset(
    {BlockType.COLLECTION_VIEW, BlockType.COLLECTION_VIEW_PAGE}
)


@dataclass
class _Frame:
    """A block whose children are being walked."""

    block_id: str
    block: Block
    next_index: int = 0
    children: list[Block] = field(default_factory=list)


class BlockResolver:
    """Resolves blocks from one block map.

    Each resolved block is cached by id, so a block reachable from several
    parents is processed once. Blocks still on the current resolution path
    are tracked to detect cycles.

    ``collections`` and ``collection_views`` are only needed when the tree
    contains collection_view blocks. Rows of a collection are the blocks whose
    parent is that collection.
    """

    def __init__(
        self,
        blocks: Mapping[str, Block],
        collections: Mapping[str, Collection] | None = None,
        collection_views: Mapping[str, CollectionView] | None = None,
    ) -> None:
        self._blocks = blocks
        self._collections = collections or {}
        self._collection_views = collection_views or {}
        self._rows: dict[str, list[Block]] | None = None
        self._resolved: dict[str, Block] = {}
        self._path: list[str] = []
        self._in_progress: set[str] = set()

    def resolve(self, block_id: str) -> Block:
        """Resolve the tree rooted at ``block_id``.

        Raises:
            MissingBlockError: If the root or any referenced child is absent,
                or if the root has been deleted.
            MissingRecordError: If a collection_view block references a
                collection or view that is absent.
            CycleError: If a block is its own descendant.
            DecodeError: If a text property is malformed.
        """
        root = self._blocks.get(block_id)
        if root is None:
            raise MissingBlockError(block_id)
        if not root.alive:
            raise MissingBlockError(block_id, f"block {block_id} has been deleted")
        cached = self._resolved.get(block_id)
        if cached is not None:
            return cached

        stack = [self._enter(block_id, root)]
        try:
            while stack:
                frame = stack[-1]
                if frame.next_index < len(frame.block.content_ids):
                    child_id = frame.block.content_ids[frame.next_index]
                    frame.next_index += 1
                    child = self._child(frame.block_id, child_id)
                    if child is None:
                        continue
                    cached = self._resolved.get(child_id)
                    if cached is not None:
                        frame.children.append(cached)
                    else:
                        stack.append(self._enter(child_id, child))
                    continue

                stack.pop()
                self._finish(frame)
                if stack:
                    stack[-1].children.append(frame.block)
        finally:
            self._path.clear()
            self._in_progress.clear()

        return self._resolved[block_id]

    def _child(self, parent_id: str, child_id: str) -> Block | None:
        child = self._blocks.get(child_id)
        if child is None:
            raise MissingBlockError(
                child_id,
                f"block {parent_id} references missing child {child_id}",
            )
        if not child.alive:
            logger.debug("Skipping deleted block %s under %s", child_id, parent_id)
            return None
        return child

    def _enter(self, block_id: str, block: Block) -> _Frame:
        if block_id in self._in_progress:
            raise CycleError(block_id, list(self._path))
        self._path.append(block_id)
        self._in_progress.add(block_id)
        return _Frame(block_id, block)

    def _finish(self, frame: _Frame) -> None:
        block = frame.block
        block.content = frame.children
        resolve_fields(block)
        if block.type in _COLLECTION_VIEW_TYPES:
            block.collection_views = self._collection_view_infos(block)
        self._path.pop()
        self._in_progress.discard(frame.block_id)
        self._resolved[frame.block_id] = block

    # --- Collections ---

    def _collection_rows(self, collection_id: str) -> list[Block]:
        if self._rows is None:
            self._rows = defaultdict(list)
            for block in self._blocks.values():
                if block.alive and block.parent_table == Table.COLLECTION:
                    self._rows[block.parent_id].append(block)
        return self._rows.get(collection_id, [])

    def _collection_view_infos(self, block: Block) -> list[CollectionViewInfo]:
        if not block.view_ids:
            return []
        collection_id = block.collection_id or ""
        collection = self._collections.get(collection_id)
        if collection is None:
            raise MissingRecordError(
                Table.COLLECTION,
                collection_id,
                f"block {block.id} references missing collection {collection_id!r}",
            )

        rows = self._collection_rows(collection_id)
        for row in rows:
            if row.id not in self._resolved:
                resolve_fields(row)

        infos: list[CollectionViewInfo] = []
        for view_id in block.view_ids:
            view = self._collection_views.get(view_id)
            if view is None:
                raise MissingRecordError(
                    Table.COLLECTION_VIEW,
                    view_id,
                    f"block {block.id} references missing collection view {view_id}",
                )
            infos.append(
                CollectionViewInfo(
                    collection_view=view,
                    collection=collection,
                    collection_row_ids=[row.id for row in rows],
                    collection_rows=list(rows),
                )
            )
        return infos


def resolve_block(block_id: str, blocks: Mapping[str, Block]) -> Block:
    """Resolve the tree rooted at ``block_id`` from an id -> Block map."""
    return BlockResolver(blocks).resolve(block_id)


def resolve_record_map(block_id: str, record_map: RecordMap) -> Block:
    """Resolve the tree rooted at ``block_id`` from a consolidated record map."""
    resolver = BlockResolver(
        block_arena(record_map),
        collections={
            key: entry.value
            for key, entry in record_map.collections.items()
            if entry.value is not None
        },
        collection_views={
            key: entry.value
            for key, entry in record_map.collection_views.items()
            if entry.value is not None
        },
    )
    return resolver.resolve(block_id)


# --- Derived fields ---


def _parse_property(block: Block, name: str) -> list[InlineBlock] | None:
    value: Any = block.properties.get(name)
    if value is None:
        return None
    try:
        return parse_inline_blocks(value)
    except DecodeError as e:
        raise DecodeError(
            f"invalid '{name}' property on block {block.id} ({e})", value
        ) from e


def _property_text(block: Block, name: str) -> str | None:
    spans = _parse_property(block, name)
    if spans is None:
        return None
    return inline_text(spans)


def _cover_url(cover: str | None) -> str | None:
    if not cover:
        return None
    if cover.startswith("/"):
        return NOTION_HOST + cover
    return cover


def resolve_fields(block: Block) -> None:
    """Fill in the derived fields of a single block from its properties."""
    block.inline_content = []
    block.title = None
    block.is_checked = False
    block.code = block.code_language = None
    block.description = block.link = None
    block.source = block.file_size = block.image_url = None
    block.collection_views = []

    if block.is_rich_text:
        block.inline_content = _parse_property(block, "title") or []

    if block.type in (BlockType.PAGE, BlockType.BOOKMARK):
        block.title = inline_text(block.inline_content)

    if block.type == BlockType.TODO:
        block.is_checked = _property_text(block, "checked") == "Yes"

    if block.type == BlockType.CODE:
        block.code = inline_text(block.inline_content)
        block.code_language = _property_text(block, "language")

    if block.type == BlockType.BOOKMARK:
        block.description = _property_text(block, "description")
        block.link = _property_text(block, "link")

    if block.type in _SOURCE_TYPES:
        block.source = _property_text(block, "source")

    if block.type == BlockType.FILE:
        block.file_size = _property_text(block, "size")

    if block.type == BlockType.IMAGE and block.source:
        block.image_url = IMAGE_PROXY_URL + quote(block.source, safe="")
        if isinstance(block.format, FormatImage):
            block.format.image_url = block.image_url

    if isinstance(block.format, FormatPage):
        block.format.page_cover_url = _cover_url(block.format.page_cover)
