"""Shared test fixtures for extranotion."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from extranotion.client import NotionClient
from extranotion.transport import LocalFileTransport
from extranotion.types import Block

GOLDEN_DIR = Path(__file__).parent / "golden"


@pytest.fixture
def golden_dir() -> Path:
    return GOLDEN_DIR


@pytest.fixture
def local_transport(golden_dir: Path) -> LocalFileTransport:
    return LocalFileTransport(golden_dir)


@pytest.fixture
def client(local_transport: LocalFileTransport) -> NotionClient:
    return NotionClient(local_transport)


def make_block(block_id: str, **fields: Any) -> Block:
    """Build a Block from wire-format fields (``content`` is the child id list)."""
    data: dict[str, Any] = {"id": block_id, "type": "text", "alive": True}
    data.update(fields)
    return Block.model_validate(data)
