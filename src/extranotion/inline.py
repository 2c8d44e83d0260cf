"""Inline rich-text spans.

Text properties (``properties.title`` and friends) arrive as a compact
array-of-arrays encoding::

    [["plain"], ["styled", [["b"], ["a", "https://example.com"]]]]

Each span entry is ``[text]`` or ``[text, attributes]``. Each attribute is
either a one-element flag (``b``, ``i``, ``s``, ``c``) or a two-element pair
whose value type depends on the code (``a`` link, ``u`` user id, ``d`` date).
The first malformed entry aborts the whole parse.
"""

from __future__ import annotations

from enum import IntFlag
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from extranotion.exceptions import DecodeError

# Text used by the service for @user and @date mentions
INLINE_AT = "‣"


class AttrFlag(IntFlag):
    """Style flags that can be combined on a single span."""

    BOLD = 1
    CODE = 2
    ITALIC = 4
    STRIKETHROUGH = 8


_FLAG_CODES: dict[str, AttrFlag] = {
    "b": AttrFlag.BOLD,
    "i": AttrFlag.ITALIC,
    "s": AttrFlag.STRIKETHROUGH,
    "c": AttrFlag.CODE,
}


class Date(BaseModel):
    """Date payload of an ``["d", {...}]`` attribute."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    start_date: str | None = None
    start_time: str | None = None
    end_date: str | None = None
    end_time: str | None = None
    date_format: str | None = None
    time_zone: str | None = None


class InlineBlock(BaseModel):
    """One run of text with its style flags and at most one of link/user/date."""

    text: str
    attr_flags: int = 0
    link: str | None = None
    user_id: str | None = None
    date: Date | None = None

    @property
    def bold(self) -> bool:
        return bool(self.attr_flags & AttrFlag.BOLD)

    @property
    def italic(self) -> bool:
        return bool(self.attr_flags & AttrFlag.ITALIC)

    @property
    def strikethrough(self) -> bool:
        return bool(self.attr_flags & AttrFlag.STRIKETHROUGH)

    @property
    def code(self) -> bool:
        return bool(self.attr_flags & AttrFlag.CODE)

    @property
    def is_plain(self) -> bool:
        """True when the span carries no flags and no link/user/date."""
        return (
            not self.attr_flags
            and self.link is None
            and self.user_id is None
            and self.date is None
        )


def _has_exclusive(span: InlineBlock) -> bool:
    return span.link is not None or span.user_id is not None or span.date is not None


def _parse_attribute(span: InlineBlock, attr: Any) -> None:
    if not isinstance(attr, list):
        raise DecodeError("attribute is not an array", attr)
    if not attr:
        raise DecodeError("attribute array is empty", attr)
    code = attr[0]
    if not isinstance(code, str):
        raise DecodeError("attribute code is not a string", attr)

    if len(attr) == 1:
        flag = _FLAG_CODES.get(code)
        if flag is None:
            raise DecodeError(f"unexpected attribute '{code}'", attr)
        span.attr_flags |= flag
        return

    if len(attr) != 2:
        raise DecodeError(f"attribute has {len(attr)} elements, expected 1 or 2", attr)

    value = attr[1]
    if code not in ("a", "u", "d"):
        raise DecodeError(f"unexpected attribute '{code}'", attr)
    if _has_exclusive(span):
        raise DecodeError("span has more than one link/user/date attribute", attr)

    if code == "d":
        if not isinstance(value, dict):
            raise DecodeError("date attribute value is not an object", attr)
        try:
            span.date = Date.model_validate(value)
        except ValidationError as e:
            raise DecodeError(f"invalid date attribute ({e.error_count()} errors)", value) from e
        return

    if not isinstance(value, str):
        raise DecodeError(f"value for '{code}' attribute is not a string", attr)
    if code == "a":
        span.link = value
    else:
        span.user_id = value


def _parse_span(entry: Any) -> InlineBlock:
    if not isinstance(entry, list):
        raise DecodeError("span entry is not an array", entry)
    if len(entry) not in (1, 2):
        raise DecodeError(f"span entry has {len(entry)} elements, expected 1 or 2", entry)
    text = entry[0]
    if not isinstance(text, str):
        raise DecodeError("span text is not a string", entry)

    span = InlineBlock(text=text)
    if len(entry) == 1:
        return span

    attrs = entry[1]
    if not isinstance(attrs, list):
        raise DecodeError("span attributes are not an array", entry)
    for attr in attrs:
        _parse_attribute(span, attr)
    return span


def parse_inline_blocks(raw: Any) -> list[InlineBlock]:
    """Parse a compact rich-text array into spans.

    Args:
        raw: The decoded JSON value of one text property.

    Returns:
        The spans in order.

    Raises:
        DecodeError: If any level has the wrong shape, arity or attribute code.
    """
    if not isinstance(raw, list):
        raise DecodeError("rich text is not an array", raw)
    if not raw:
        raise DecodeError("rich text array is empty", raw)
    return [_parse_span(entry) for entry in raw]


def encode_inline_blocks(spans: list[InlineBlock]) -> list[list[Any]]:
    """Encode spans back into the compact array form accepted by the service."""
    encoded: list[list[Any]] = []
    for span in spans:
        attrs: list[list[Any]] = [
            [code] for code, flag in _FLAG_CODES.items() if flag & span.attr_flags
        ]
        if span.link is not None:
            attrs.append(["a", span.link])
        elif span.user_id is not None:
            attrs.append(["u", span.user_id])
        elif span.date is not None:
            attrs.append(["d", span.date.model_dump(exclude_none=True)])
        encoded.append([span.text, attrs] if attrs else [span.text])
    return encoded


def inline_text(spans: list[InlineBlock]) -> str:
    """Concatenate the text of all spans."""
    return "".join(span.text for span in spans)
