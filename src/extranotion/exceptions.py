"""Custom exceptions for extranotion."""

from __future__ import annotations

from typing import Any


class ExtraNotionError(Exception):
    """Base exception for all extranotion errors."""

    pass


class TransportError(ExtraNotionError):
    """Raised when a request fails or the server answers with a non-200 status.

    ``status_code`` is ``None`` when no response was received at all.
    """

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        body: str = "",
        message: str | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.body = body
        if message is None:
            message = f"request to {url} failed with status {status_code}: {body}"
        super().__init__(message)


class AuthenticationError(TransportError):
    """Raised when authentication fails (401/403)."""

    pass


class NotFoundError(TransportError):
    """Raised when the endpoint or record is not found (404)."""

    pass


class DecodeError(ExtraNotionError):
    """Raised when a payload does not have the expected shape."""

    def __init__(self, message: str, value: Any = None) -> None:
        self.value = value
        super().__init__(f"{message}: {value!r}")


class ConsistencyError(ExtraNotionError):
    """Raised when a record map references records it does not contain."""

    pass


class MissingBlockError(ConsistencyError):
    """Raised when a block id cannot be found in the record map."""

    def __init__(self, block_id: str, message: str | None = None) -> None:
        self.block_id = block_id
        super().__init__(message or f"missing block id in record map: {block_id}")


class MissingRecordError(ConsistencyError):
    """Raised when a block references a collection or view the map lacks."""

    def __init__(self, table: str, record_id: str, message: str | None = None) -> None:
        self.table = table
        self.record_id = record_id
        super().__init__(message or f"missing {table} id in record map: {record_id}")


class CycleError(ConsistencyError):
    """Raised when a block is reached again while it is still being resolved."""

    def __init__(self, block_id: str, path: list[str]) -> None:
        self.block_id = block_id
        self.path = path
        chain = " -> ".join([*path, block_id])
        super().__init__(f"cycle detected while resolving block {block_id}: {chain}")
