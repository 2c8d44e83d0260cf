"""CLI entry point for extranotion.

Usage:
    python -m extranotion get-block <block_id_or_url>
    python -m extranotion get-records <table>:<id> [<table>:<id> ...]
    echo "new text" | python -m extranotion update-block-text <block_id_or_url>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from pydantic import ValidationError

from extranotion.client import NotionClient, parse_block_id
from extranotion.config import Settings, get_settings
from extranotion.exceptions import ExtraNotionError
from extranotion.logging import configure_logging
from extranotion.types import Block, RecordRef

TITLE_PATH = "properties.title"


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if args.token:
        settings = settings.model_copy(update={"token": args.token})
    return settings


def _block_json(block: Block) -> str:
    return json.dumps(
        block.model_dump(mode="json", by_alias=True, exclude_defaults=True),
        indent=2,
        ensure_ascii=False,
    )


async def cmd_get_block(args: argparse.Namespace) -> int:
    """Print a block and its resolved children as JSON."""
    client = NotionClient.from_settings(_load_settings(args))
    try:
        block = await client.fetch_block_tree(parse_block_id(args.block))
    except ExtraNotionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await client.close()

    print(_block_json(block))
    return 0


async def cmd_get_records(args: argparse.Namespace) -> int:
    """Print record descriptors as JSON."""
    refs = [RecordRef.parse(value) for value in args.records]
    client = NotionClient.from_settings(_load_settings(args))
    try:
        descriptors = await client.fetch_record_descriptors(refs)
    except ExtraNotionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await client.close()

    output = [
        d.model_dump(mode="json", by_alias=True, exclude_defaults=True)
        for d in descriptors
    ]
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


async def cmd_update_block_text(args: argparse.Namespace) -> int:
    """Replace a block's title with text read from stdin."""
    if sys.stdin.isatty():
        print(
            "stdin appears to be a tty device. "
            "This command expects the new text on a pipe.",
            file=sys.stderr,
        )
        return 1
    content = sys.stdin.read().strip()

    client = NotionClient.from_settings(_load_settings(args))
    try:
        descriptors = await client.fetch_record_descriptors(
            [RecordRef(id=parse_block_id(args.block))]
        )
        descriptor = descriptors[0]
        if descriptor.value is None:
            print(
                f"Error: issue fetching content, role={descriptor.role}",
                file=sys.stderr,
            )
            return 1

        block = await client.fetch_block_tree(descriptor.value.id)
        if args.verbose:
            print(_block_json(block), file=sys.stderr)

        await client.set_property(block.id, TITLE_PATH, content)
    except ExtraNotionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await client.close()

    # Echo back for editor integrations
    print(content)
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    common.add_argument(
        "--token",
        default=None,
        help="Session token cookie (default: $NOTION_TOKEN)",
    )

    parser = argparse.ArgumentParser(
        prog="extranotion",
        description="Read and update workspace blocks through the internal API",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # get-block
    get_block_parser = subparsers.add_parser(
        "get-block", parents=[common], help="Print a block tree as JSON"
    )
    get_block_parser.add_argument("block", help="Block ID or page URL")
    get_block_parser.set_defaults(func=cmd_get_block)

    # get-records
    get_records_parser = subparsers.add_parser(
        "get-records", parents=[common], help="Print records as JSON"
    )
    get_records_parser.add_argument(
        "records",
        nargs="+",
        metavar="TABLE:ID",
        help="Records to fetch, e.g. block:<id> or space:<id>",
    )
    get_records_parser.set_defaults(func=cmd_get_records)

    # update-block-text
    update_parser = subparsers.add_parser(
        "update-block-text",
        parents=[common],
        help="Set a block's title to the text piped on stdin",
    )
    update_parser.add_argument("block", help="Block ID or page URL")
    update_parser.set_defaults(func=cmd_update_block_text)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        return 1
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    result: int = asyncio.run(args.func(args))
    return result


if __name__ == "__main__":
    sys.exit(main())
