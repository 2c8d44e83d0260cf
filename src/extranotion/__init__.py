"""extranotion - client for the workspace internal API.

Fetch pages as resolved block trees, look up records, and update block
properties.
"""

__version__ = "0.1.0"

from extranotion.client import NotionClient, build_set_operation, parse_block_id
from extranotion.exceptions import (
    AuthenticationError,
    ConsistencyError,
    CycleError,
    DecodeError,
    ExtraNotionError,
    MissingBlockError,
    MissingRecordError,
    NotFoundError,
    TransportError,
)
from extranotion.inline import (
    AttrFlag,
    Date,
    InlineBlock,
    encode_inline_blocks,
    parse_inline_blocks,
)
from extranotion.record_map import merge_record_maps
from extranotion.resolver import BlockResolver, resolve_block, resolve_record_map
from extranotion.transport import LocalFileTransport, NotionTransport, Transport
from extranotion.types import (
    Block,
    BlockType,
    CollectionViewInfo,
    Cursor,
    RecordDescriptor,
    RecordMap,
    RecordRef,
    Table,
)

__all__ = [
    "AttrFlag",
    "AuthenticationError",
    "Block",
    "BlockResolver",
    "BlockType",
    "CollectionViewInfo",
    "ConsistencyError",
    "Cursor",
    "CycleError",
    "Date",
    "DecodeError",
    "ExtraNotionError",
    "InlineBlock",
    "LocalFileTransport",
    "MissingBlockError",
    "MissingRecordError",
    "NotFoundError",
    "NotionClient",
    "NotionTransport",
    "RecordDescriptor",
    "RecordMap",
    "RecordRef",
    "Table",
    "Transport",
    "TransportError",
    "__version__",
    "build_set_operation",
    "encode_inline_blocks",
    "merge_record_maps",
    "parse_block_id",
    "parse_inline_blocks",
    "resolve_block",
    "resolve_record_map",
]
