"""Transport layer for the workspace API.

Defines the Transport protocol and implementations:
- NotionTransport: Production transport using the internal v3 API over httpx
- LocalFileTransport: Test transport reading from local golden files
"""

from __future__ import annotations

import json
import logging
import ssl
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import TYPE_CHECKING, Any

import certifi
import httpx
from pydantic import ValidationError

from extranotion.exceptions import (
    AuthenticationError,
    DecodeError,
    NotFoundError,
    TransportError,
)
from extranotion.types import (
    RECORD_MODELS,
    Cursor,
    PageChunk,
    RecordDescriptor,
    RecordRef,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# API constants
API_BASE = "https://www.notion.so/api/v3/"
DEFAULT_TIMEOUT = 60


# --- Parsing helpers ---


def _parse_page_chunk(data: dict[str, Any]) -> PageChunk:
    try:
        return PageChunk.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"invalid loadPageChunk response ({e})", data) from e


def _parse_record_values(
    refs: list[RecordRef], data: dict[str, Any]
) -> list[RecordDescriptor]:
    results = data.get("results")
    if not isinstance(results, list):
        raise DecodeError("getRecordValues response has no results array", data)
    if len(results) != len(refs):
        raise DecodeError(
            f"getRecordValues returned {len(results)} results for {len(refs)} requests",
            data,
        )

    descriptors: list[RecordDescriptor] = []
    for ref, result in zip(refs, results):
        if not isinstance(result, dict):
            raise DecodeError("record result is not an object", result)
        value = result.get("value")
        model = RECORD_MODELS.get(ref.table)
        try:
            if value is not None and model is not None:
                value = model.model_validate(value)
            descriptors.append(
                RecordDescriptor(table=ref.table, role=result.get("role", ""), value=value)
            )
        except ValidationError as e:
            raise DecodeError(f"invalid {ref.table} record {ref.id} ({e})", result) from e
    return descriptors


# --- Abstract Transport ---


class Transport(ABC):
    """Abstract base class for workspace API transport.

    Implementations must provide the three endpoints used by the client:
    paged block loading, record lookup and transaction submission.
    """

    @abstractmethod
    async def load_page_chunk(
        self, page_id: str, cursor: Cursor, limit: int
    ) -> PageChunk:
        """Fetch one page of records below a block.

        Args:
            page_id: The block the chunk is loaded for.
            cursor: Cursor returned by the previous chunk (empty for the first).
            limit: Maximum number of records in this chunk.

        Returns:
            PageChunk with the partial record map and the next cursor.
        """
        ...

    @abstractmethod
    async def get_record_values(self, refs: list[RecordRef]) -> list[RecordDescriptor]:
        """Fetch specific records by table and id.

        Args:
            refs: The records to look up.

        Returns:
            One descriptor per ref, in the same order.
        """
        ...

    @abstractmethod
    async def submit_transaction(
        self, operations: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Submit a list of operations as one transaction.

        Args:
            operations: Operation objects in wire format.

        Returns:
            Raw API response dict.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        ...


# --- Production transport ---


class NotionTransport(Transport):
    """Production transport that talks to the internal v3 API.

    Handles the session cookie, SSL, and HTTP communication.
    """

    def __init__(
        self,
        token: str,
        base_url: str = API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            token: Value of the session ``token`` cookie.
            base_url: API base URL, ending with a slash.
            timeout: Request timeout in seconds.
            http_transport: Optional httpx transport (used by tests).
        """
        self._base_url = base_url
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=ssl_context,
            transport=http_transport,
            headers={
                "cookie": f"token={token}",
                "Accept": "application/json",
            },
        )

    async def load_page_chunk(
        self, page_id: str, cursor: Cursor, limit: int
    ) -> PageChunk:
        """POST loadPageChunk"""
        body = {
            "pageId": page_id,
            "limit": limit,
            "cursor": cursor.to_wire(),
            "verticalColumns": False,
        }
        data = await self._post("loadPageChunk", body)
        return _parse_page_chunk(data)

    async def get_record_values(self, refs: list[RecordRef]) -> list[RecordDescriptor]:
        """POST getRecordValues"""
        body = {"requests": [{"id": ref.id, "table": ref.table} for ref in refs]}
        data = await self._post("getRecordValues", body)
        return _parse_record_values(refs, data)

    async def submit_transaction(
        self, operations: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """POST submitTransaction"""
        return await self._post("submitTransaction", {"operations": operations})

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    # --- HTTP helpers ---

    async def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{endpoint}"
        logger.debug("POST %s %s", url, json.dumps(body))
        try:
            resp = await self._client.post(url, json=body)
        except httpx.RequestError as e:
            raise TransportError(url, message=f"Network error for {url}: {e}") from e

        logger.debug("POST %s finished with %d: %s", url, resp.status_code, resp.text)
        if resp.status_code != 200:
            raise self._handle_http_error(url, resp)

        try:
            result = resp.json()
        except ValueError as e:
            raise DecodeError(f"{endpoint} response is not JSON", resp.text) from e
        if not isinstance(result, dict):
            raise DecodeError(f"{endpoint} response is not a JSON object", result)
        return result

    def _handle_http_error(self, url: str, resp: httpx.Response) -> TransportError:
        """Convert a non-200 response to the matching transport exception."""
        status = resp.status_code
        body = resp.text
        if status in (401, 403):
            return AuthenticationError(url, status, body)
        if status == 404:
            return NotFoundError(url, status, body)
        return TransportError(url, status, body)


# --- Local File Transport ---


class LocalFileTransport(Transport):
    """Test transport that reads from local golden files.

    Expected directory structure:
        golden_dir/
            <page_id>/chunk_0.json       # loadPageChunk responses, in order
            <page_id>/chunk_1.json
            records/<table>/<id>.json    # getRecordValues results
    """

    def __init__(self, golden_dir: Path) -> None:
        """Initialize the transport.

        Args:
            golden_dir: Directory containing golden test files.
        """
        self._golden_dir = golden_dir
        self._chunk_counters: defaultdict[str, int] = defaultdict(int)
        self._chunk_requests: list[dict[str, Any]] = []
        self._transactions: list[list[dict[str, Any]]] = []

    async def load_page_chunk(
        self, page_id: str, cursor: Cursor, limit: int
    ) -> PageChunk:
        """Read the next chunk for ``page_id`` from a local file.

        An empty cursor starts a new fetch and reads ``chunk_0.json`` again.
        """
        if cursor.is_last:
            self._chunk_counters[page_id] = 0
        chunk_number = self._chunk_counters[page_id]
        self._chunk_counters[page_id] += 1
        self._chunk_requests.append(
            {"pageId": page_id, "limit": limit, "cursor": cursor.to_wire()}
        )
        path = self._golden_dir / page_id / f"chunk_{chunk_number}.json"
        if not path.exists():
            raise NotFoundError(
                str(path), 404, "", message=f"Golden file not found: {path}"
            )
        return _parse_page_chunk(json.loads(path.read_text()))

    async def get_record_values(self, refs: list[RecordRef]) -> list[RecordDescriptor]:
        """Read each record from a local file; absent files yield role ``none``."""
        results: list[dict[str, Any]] = []
        for ref in refs:
            path = self._golden_dir / "records" / ref.table / f"{ref.id}.json"
            if path.exists():
                results.append(json.loads(path.read_text()))
            else:
                results.append({"role": "none"})
        return _parse_record_values(refs, {"results": results})

    async def submit_transaction(
        self, operations: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Record the transaction and return an empty response."""
        self._transactions.append(operations)
        return {}

    async def close(self) -> None:
        """No-op for local file transport."""

    @property
    def chunk_requests(self) -> list[dict[str, Any]]:
        """Get recorded loadPageChunk requests (for test assertions)."""
        return self._chunk_requests

    @property
    def transactions(self) -> list[list[dict[str, Any]]]:
        """Get recorded transactions (for test assertions)."""
        return self._transactions
