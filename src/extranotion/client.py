"""NotionClient - Main API for extranotion.

Fetches block trees (paged loading, merging and resolution), looks up
individual records and sets block properties. All network access goes
through a Transport; every fetch issues its requests one after another and
keeps its own working state.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from extranotion.exceptions import DecodeError
from extranotion.record_map import merge_record_maps
from extranotion.resolver import resolve_record_map
from extranotion.transport import API_BASE, DEFAULT_TIMEOUT, NotionTransport
from extranotion.types import Block, Cursor, RecordDescriptor, RecordMap, RecordRef, Table

if TYPE_CHECKING:
    from extranotion.config import Settings
    from extranotion.transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_PAGE_CHUNK_LIMIT = 50

_BLOCK_ID_PATTERNS = [
    re.compile(r"([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})"),
    re.compile(r"([0-9a-f]{32})(?:[?#].*)?$"),
]


def parse_block_id(id_or_url: str) -> str:
    """Extract a block ID from a page URL or return it as-is.

    Supports URLs like:
      https://www.notion.so/workspace/Page-Title-0123456789abcdef0123456789abcdef
      https://www.notion.so/0123456789abcdef0123456789abcdef?v=...
    Undashed ids are returned in the dashed form used by the record maps.
    """
    value = id_or_url.strip()
    for pattern in _BLOCK_ID_PATTERNS:
        match = pattern.search(value.lower())
        if match:
            raw = match.group(1).replace("-", "")
            return f"{raw[:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:]}"
    return value


def build_set_operation(block_id: str, path: str, value: str) -> dict[str, Any]:
    """Build a ``set`` operation writing ``value`` at a dotted property path."""
    return {
        "id": block_id,
        "table": Table.BLOCK.value,
        "path": path.split("."),
        "command": "set",
        "args": [[value]],
    }


class NotionClient:
    """Client for reading block trees and updating blocks.

    Example:
        >>> client = NotionClient(NotionTransport(token="..."))
        >>> page = await client.fetch_block_tree("0123...")
        >>> await client.set_property(page.id, "properties.title", "New title")
    """

    def __init__(
        self,
        transport: Transport,
        page_chunk_limit: int = DEFAULT_PAGE_CHUNK_LIMIT,
    ) -> None:
        self._transport = transport
        self._page_chunk_limit = page_chunk_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> NotionClient:
        """Create a client with a production transport configured from settings."""
        transport = NotionTransport(
            token=settings.token,
            base_url=settings.base_url or API_BASE,
            timeout=settings.timeout or DEFAULT_TIMEOUT,
        )
        return cls(transport, page_chunk_limit=settings.page_chunk_limit)

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    # --- Reading ---

    async def load_page_chunks(self, block_id: str) -> list[RecordMap]:
        """Load every chunk below ``block_id``.

        Each request carries the cursor returned by the previous one, starting
        from an empty cursor, until the server returns an empty cursor stack.

        Returns:
            The partial record maps in fetch order.

        Raises:
            TransportError: If a request fails.
            DecodeError: If the server hands back the cursor it was sent, which
                would never finish.
        """
        cursor = Cursor()
        record_maps: list[RecordMap] = []
        while True:
            chunk = await self._transport.load_page_chunk(
                block_id, cursor, self._page_chunk_limit
            )
            record_maps.append(chunk.record_map)
            logger.debug(
                "Loaded chunk %d for %s (%d blocks)",
                len(record_maps),
                block_id,
                len(chunk.record_map.blocks),
            )
            if chunk.cursor.is_last:
                break
            if chunk.cursor.stack == cursor.stack:
                raise DecodeError(
                    f"loadPageChunk for {block_id} returned the cursor it was sent",
                    chunk.cursor.to_wire(),
                )
            cursor = chunk.cursor
        return record_maps

    async def fetch_block_tree(self, block_id: str) -> Block:
        """Fetch a block and everything below it as a resolved tree.

        Raises:
            TransportError: If any request fails.
            DecodeError: If a response or text property is malformed.
            ConsistencyError: If the fetched records do not form a complete tree.
        """
        record_maps = await self.load_page_chunks(block_id)
        record_map = merge_record_maps(record_maps)
        return resolve_record_map(block_id, record_map)

    async def fetch_record_descriptors(
        self, refs: list[RecordRef]
    ) -> list[RecordDescriptor]:
        """Look up records by table and id, without resolving anything."""
        return await self._transport.get_record_values(refs)

    # --- Writing ---

    async def set_property(self, block_id: str, path: str, value: str) -> None:
        """Overwrite the property at dotted ``path`` of a block with ``value``.

        The write is unconditional; the block's version is not checked.
        """
        operation = build_set_operation(block_id, path, value)
        response = await self._transport.submit_transaction([operation])
        logger.debug("Set %s on %s: %s", path, block_id, response)
