"""
CLI Module

Architectural Intent:
- Command-line interface for the Notion MCP wrapper
- Delegates to the orchestrator and use cases via the composition root
- Supports --verbose/--debug flags for log level control
- Every command stops the orchestrator before exiting
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
import traceback

from notion_mcp_wrapper.domain.value_objects.page_id import PageId
from notion_mcp_wrapper.infrastructure.config import load_config
from notion_mcp_wrapper.infrastructure.logging import configure_logging, level_from_name


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notion-mcp-wrapper",
        description="Notion MCP Wrapper: resilient Notion access over MCP",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON logs on stderr"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("health", help="Check MCP server health")

    move_parser = subparsers.add_parser("move-page", help="Move a page to a new parent")
    move_parser.add_argument("page_id", help="Page to move")
    move_parser.add_argument("parent_id", help="New parent page")

    get_parser = subparsers.add_parser("get-page", help="Print a page as JSON")
    get_parser.add_argument("page_id", help="Page to retrieve")

    archive_parser = subparsers.add_parser(
        "archive", help="Move pages listed in a JSON mapping of page -> parent"
    )
    archive_parser.add_argument("mapping", help="Path to JSON mapping file")
    archive_parser.add_argument(
        "--delay", "-d", type=float, default=0.5, help="Pause between moves in seconds"
    )
    return parser


def _configure_logging(args, config) -> None:
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = level_from_name(config.log_level)
    configure_logging(level=level, json_format=args.json_logs)


def _load_mapping(path: str) -> dict[str, str]:
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Mapping file must contain a JSON object of page -> parent")
    return {str(k): str(v) for k, v in data.items()}


async def _health(config) -> int:
    from notion_mcp_wrapper.composition_root import create_container

    config = dataclasses.replace(
        config, health=dataclasses.replace(config.health, enabled=False)
    )
    container = create_container(config)
    print("[*] Checking MCP server health...")
    try:
        result = await container.orchestrator.start()
    finally:
        await container.orchestrator.stop()

    if result.success:
        print("[+] MCP server is healthy")
        return 0
    print(f"[-] MCP server is unhealthy: {result.error}")
    return 1


async def _move_page(config, page: str, parent: str) -> int:
    from notion_mcp_wrapper.composition_root import create_container

    page_id, parent_id = PageId(page), PageId(parent)
    container = create_container(config)
    orchestrator = container.orchestrator
    try:
        await orchestrator.start()
        result = await orchestrator.execute(
            "movePage",
            {"page_id": str(page_id), "parent": {"page_id": str(parent_id)}},
        )
    finally:
        await orchestrator.stop()

    if result.success:
        print(f"[+] Page moved successfully (via {result.source})")
        return 0
    print("[-] Failed to move page")
    return 1


async def _get_page(config, page: str) -> int:
    from notion_mcp_wrapper.composition_root import create_container

    page_id = PageId(page)
    container = create_container(config)
    orchestrator = container.orchestrator
    try:
        await orchestrator.start()
        result = await orchestrator.execute("getPage", {"page_id": str(page_id)})
    finally:
        await orchestrator.stop()

    print(json.dumps(result.data, indent=2))
    return 0


async def _archive(config, mapping_path: str, delay: float) -> int:
    from notion_mcp_wrapper.composition_root import create_container

    mapping = _load_mapping(mapping_path)
    container = create_container(config)
    orchestrator = container.orchestrator
    print(f"[*] Moving {len(mapping)} pages...")
    try:
        await orchestrator.start()
        report = await container.move_pages.execute(mapping, pause=delay)
    finally:
        await orchestrator.stop()

    for item in report.results:
        if item.success:
            print(f"[+] {item.page_id} -> {item.parent_id} ({item.source})")
        else:
            print(f"[-] {item.page_id} -> {item.parent_id}: {item.error}")
    print(f"[*] Done: {report.succeeded} succeeded, {report.failed} failed")
    return 0 if report.all_succeeded else 1


async def async_main():
    parser = _build_parser()
    args = parser.parse_args()

    config = load_config(args.config)
    _configure_logging(args, config)
    verbose = args.verbose or args.debug

    if args.command == "health":
        handler = _health(config)
    elif args.command == "move-page":
        handler = _move_page(config, args.page_id, args.parent_id)
    elif args.command == "get-page":
        handler = _get_page(config, args.page_id)
    elif args.command == "archive":
        handler = _archive(config, args.mapping, args.delay)
    else:
        parser.print_help()
        return

    try:
        code = await handler
    except FileNotFoundError as e:
        print(f"[-] File not found: {e}")
        sys.exit(1)
    except ConnectionError as e:
        print(f"[-] Connection error: {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)
    except Exception as e:
        print(f"[-] Error: {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)

    if code:
        sys.exit(code)


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
