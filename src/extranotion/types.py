"""Record types for the workspace API.

Defines the wire models (pydantic) for blocks and the other record tables,
the per-type ``format`` payloads, record maps and pagination cursors.
Derived fields on ``Block`` are filled in by ``extranotion.resolver``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from extranotion.inline import InlineBlock


class BlockType(StrEnum):
    """Values of ``Block.type`` known to this package."""

    PAGE = "page"
    TEXT = "text"
    BOOKMARK = "bookmark"
    BULLETED_LIST = "bulleted_list"
    NUMBERED_LIST = "numbered_list"
    TOGGLE = "toggle"
    TODO = "to_do"
    DIVIDER = "divider"
    IMAGE = "image"
    HEADER = "header"
    SUB_HEADER = "sub_header"
    SUB_SUB_HEADER = "sub_sub_header"
    QUOTE = "quote"
    CALLOUT = "callout"
    COMMENT = "comment"
    CODE = "code"
    COLUMN_LIST = "column_list"
    COLUMN = "column"
    TABLE = "table"
    COLLECTION_VIEW = "collection_view"
    COLLECTION_VIEW_PAGE = "collection_view_page"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    PDF = "pdf"
    GIST = "gist"
    EMBED = "embed"
    EQUATION = "equation"
    BREADCRUMB = "breadcrumb"


class Table(StrEnum):
    """Record tables, as named on the wire."""

    BLOCK = "block"
    SPACE = "space"
    USER = "notion_user"
    COLLECTION = "collection"
    COLLECTION_VIEW = "collection_view"


# Block types whose properties.title holds rich text
RICH_TEXT_TYPES = frozenset(
    {
        BlockType.PAGE,
        BlockType.TEXT,
        BlockType.HEADER,
        BlockType.SUB_HEADER,
        BlockType.SUB_SUB_HEADER,
        BlockType.BULLETED_LIST,
        BlockType.NUMBERED_LIST,
        BlockType.TOGGLE,
        BlockType.TODO,
        BlockType.QUOTE,
        BlockType.CALLOUT,
        BlockType.BOOKMARK,
        BlockType.CODE,
    }
)


# --- Format payloads ---


class FormatPage(BaseModel):
    """Format for page blocks."""

    page_cover: str | None = None
    page_cover_position: float | None = None
    page_font: str | None = None
    page_full_width: bool = False
    # URL of an uploaded icon or an emoji
    page_icon: str | None = None
    page_small_text: bool = False

    page_cover_url: str | None = None


class FormatBookmark(BaseModel):
    """Format for bookmark blocks."""

    bookmark_icon: str | None = None


class FormatImage(BaseModel):
    """Format for image blocks."""

    block_aspect_ratio: float | None = None
    block_full_width: bool = False
    block_page_width: bool = False
    block_preserve_scale: bool = False
    block_width: float | None = None
    display_source: str | None = None

    image_url: str | None = None


class FormatVideo(BaseModel):
    """Format for video blocks."""

    block_width: float | None = None
    block_height: float | None = None
    display_source: str | None = None
    block_full_width: bool = False
    block_page_width: bool = False
    block_aspect_ratio: float | None = None
    block_preserve_scale: bool = False


class FormatText(BaseModel):
    """Format for text blocks."""

    block_color: str | None = None


class TableProperty(BaseModel):
    width: int = 0
    visible: bool = True
    property: str = ""


class FormatTable(BaseModel):
    """Format for table blocks."""

    table_wrap: bool = False
    table_properties: list[TableProperty] = Field(default_factory=list)


class FormatColumn(BaseModel):
    """Format for column blocks."""

    # e.g. 0.5 for a half-width column
    column_ratio: float | None = None


BlockFormat = Union[
    FormatPage,
    FormatBookmark,
    FormatImage,
    FormatVideo,
    FormatText,
    FormatTable,
    FormatColumn,
]

FORMAT_MODELS: dict[str, type[BaseModel]] = {
    BlockType.PAGE: FormatPage,
    BlockType.BOOKMARK: FormatBookmark,
    BlockType.IMAGE: FormatImage,
    BlockType.VIDEO: FormatVideo,
    BlockType.TEXT: FormatText,
    BlockType.TABLE: FormatTable,
    BlockType.COLUMN: FormatColumn,
}

FormatT = TypeVar("FormatT", bound=BaseModel)


class Permission(BaseModel):
    role: str = ""
    type: str = ""
    user_id: str | None = None


# --- Blocks ---


class Block(BaseModel):
    """A node of the content tree.

    Wire fields are decoded as-is. ``content`` (the resolved children),
    ``inline_content`` and the per-type convenience fields are set by
    ``resolve_block``. The typed ``format`` is decoded from the raw wire value
    according to ``type``; blocks of other types have no format.
    """

    id: str
    version: int = 0
    type: str = ""
    # False once the block has been deleted
    alive: bool = True
    content_ids: list[str] = Field(default_factory=list, alias="content")
    parent_id: str = ""
    parent_table: str = ""
    created_by: str = ""
    created_time: int = 0
    last_edited_by: str = ""
    last_edited_time: int = 0
    copied_from: str | None = None
    collection_id: str | None = None
    discussion_ids: list[str] = Field(default_factory=list, alias="discussion")
    file_ids: list[str] = Field(default_factory=list)
    format: BlockFormat | None = None
    format_raw: dict[str, Any] | None = Field(default=None, exclude=True)
    ignore_block_count: bool = False
    permissions: list[Permission] | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    view_ids: list[str] = Field(default_factory=list)

    # Derived
    content: list[Block] = Field(default_factory=list, alias="content_resolved")
    inline_content: list[InlineBlock] = Field(default_factory=list)
    title: str | None = None
    is_checked: bool = False
    description: str | None = None
    link: str | None = None
    source: str | None = None
    file_size: str | None = None
    image_url: str | None = None
    code: str | None = None
    code_language: str | None = None
    collection_views: list[CollectionViewInfo] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _decode_format(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "format" not in data:
            return data
        raw = data["format"]
        if isinstance(raw, BaseModel):
            return data
        model = FORMAT_MODELS.get(data.get("type", ""))
        return {
            **data,
            "format_raw": raw,
            "format": model.model_validate(raw) if model and raw is not None else None,
        }

    def format_as(self, model: type[FormatT]) -> FormatT | None:
        """Return the format as ``model``.

        Raises:
            TypeError: If ``model`` is not the format model for this block type.
        """
        if FORMAT_MODELS.get(self.type) is not model:
            raise TypeError(
                f"block {self.id} of type {self.type!r} has no {model.__name__}"
            )
        return self.format  # type: ignore[return-value]

    @property
    def created_on(self) -> datetime:
        return datetime.fromtimestamp(self.created_time / 1000, tz=timezone.utc)

    @property
    def updated_on(self) -> datetime:
        return datetime.fromtimestamp(self.last_edited_time / 1000, tz=timezone.utc)

    @property
    def is_page(self) -> bool:
        """True for sub-pages and links to pages."""
        return self.type == BlockType.PAGE

    @property
    def is_link_to_page(self) -> bool:
        """True for a page block whose parent is a space rather than a block."""
        return self.type == BlockType.PAGE and self.parent_table == Table.SPACE

    @property
    def is_image(self) -> bool:
        return self.type == BlockType.IMAGE

    @property
    def is_code(self) -> bool:
        return self.type == BlockType.CODE

    @property
    def is_todo(self) -> bool:
        return self.type == BlockType.TODO

    @property
    def is_rich_text(self) -> bool:
        return self.type in RICH_TEXT_TYPES


# --- Other record tables (read-only passthrough) ---


class Space(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    domain: str | None = None
    version: int = 0


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    email: str = ""
    given_name: str = ""
    family_name: str = ""
    profile_photo: str | None = None
    version: int = 0


class Collection(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    alive: bool = True
    parent_id: str = ""
    parent_table: str = ""
    name: Any = None
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")
    version: int = 0


class CollectionView(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str = ""
    name: str = ""
    alive: bool = True
    parent_id: str = ""
    parent_table: str = ""
    format: dict[str, Any] | None = None
    version: int = 0



class CollectionViewInfo(BaseModel):
    """One view of the collection shown by a collection_view block."""

    collection_view: CollectionView
    collection: Collection
    collection_row_ids: list[str] = Field(default_factory=list)
    # Left out of dumps: a row page may contain the block that shows it
    collection_rows: list[Block] = Field(default_factory=list, exclude=True)

RECORD_MODELS: dict[str, type[BaseModel]] = {
    Table.BLOCK: Block,
    Table.SPACE: Space,
    Table.USER: User,
    Table.COLLECTION: Collection,
    Table.COLLECTION_VIEW: CollectionView,
}


class BlockWithRole(BaseModel):
    """A block plus the caller's role on it; ``value`` is None when not readable."""

    role: str = ""
    value: Block | None = None


class SpaceWithRole(BaseModel):
    role: str = ""
    value: Space | None = None


class UserWithRole(BaseModel):
    role: str = ""
    value: User | None = None


class CollectionWithRole(BaseModel):
    role: str = ""
    value: Collection | None = None


class CollectionViewWithRole(BaseModel):
    role: str = ""
    value: CollectionView | None = None


class RecordMap(BaseModel):
    """Records keyed by table, then by id."""

    model_config = ConfigDict(populate_by_name=True)

    blocks: dict[str, BlockWithRole] = Field(default_factory=dict, alias="block")
    spaces: dict[str, SpaceWithRole] = Field(default_factory=dict, alias="space")
    users: dict[str, UserWithRole] = Field(default_factory=dict, alias="notion_user")
    collections: dict[str, CollectionWithRole] = Field(
        default_factory=dict, alias="collection"
    )
    collection_views: dict[str, CollectionViewWithRole] = Field(
        default_factory=dict, alias="collection_view"
    )


# Attribute names of the RecordMap categories
RECORD_MAP_CATEGORIES = ("blocks", "spaces", "users", "collections", "collection_views")


# --- Requests and pagination ---


class RecordRef(BaseModel):
    """Lookup key for a record: table name plus id."""

    id: str
    table: str = Table.BLOCK

    @classmethod
    def parse(cls, value: str) -> RecordRef:
        """Parse ``table:id`` (or a bare id, meaning a block)."""
        table, sep, record_id = value.partition(":")
        if not sep:
            return cls(id=value)
        return cls(id=record_id, table=table)


class RecordDescriptor(BaseModel):
    """One entry of a getRecordValues response.

    ``value`` holds the decoded record for known tables, the raw object for
    other tables, and None when the record is missing or not readable.
    """

    table: str
    role: str = ""
    value: Any = None


# Position marker inside a cursor, kept exactly as received
StackPosition = dict[str, Any]


class Cursor(BaseModel):
    """Opaque pagination cursor. An empty stack marks the last page."""

    stack: list[list[StackPosition]] = Field(default_factory=list)

    @property
    def is_last(self) -> bool:
        return not self.stack

    def to_wire(self) -> dict[str, Any]:
        return {"stack": [[dict(position) for position in level] for level in self.stack]}


class PageChunk(BaseModel):
    """Decoded loadPageChunk response."""

    model_config = ConfigDict(populate_by_name=True)

    record_map: RecordMap = Field(default_factory=RecordMap, alias="recordMap")
    cursor: Cursor = Field(default_factory=Cursor)


Block.model_rebuild()
CollectionViewInfo.model_rebuild()
