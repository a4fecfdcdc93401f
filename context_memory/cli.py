"""
Command-line interface for the Context Memory package.
"""

import argparse
import asyncio
import json
import sys

from .config import load_config
from .memory import MemoryManager, MemoryType
from .observability import configure_logging


def setup_logging(level: str = "INFO", verbose: bool = False, json_output: bool = False):
    """Configure logging."""
    configure_logging(
        level="DEBUG" if verbose else level,
        json_output=json_output,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="context-memory",
        description="Context Memory - embedded semantic memory store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Remember something
  context-memory --backend sqlite add "User prefers dark mode" --type user_preference --importance 8

  # Search memories
  context-memory --backend sqlite search "dark mode" --limit 5

  # Get a context block for a prompt
  context-memory --backend sqlite context "what theme does the user like?"

  # Show statistics
  context-memory --backend sqlite stats
        """
    )

    parser.add_argument(
        "--config",
        help="Path to a YAML configuration file"
    )
    parser.add_argument(
        "--backend",
        choices=["memory", "file", "sqlite"],
        help="Storage backend (default from config)"
    )
    parser.add_argument(
        "--path",
        help="Storage directory (file backend) or database path (sqlite backend)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit logs as JSON"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add
    add_parser = subparsers.add_parser(
        "add",
        help="Add a memory"
    )
    add_parser.add_argument(
        "content",
        help="Text to remember"
    )
    add_parser.add_argument(
        "--type",
        choices=[t.value for t in MemoryType],
        default=MemoryType.CONTEXT.value,
        help="Memory type"
    )
    add_parser.add_argument(
        "--source",
        help="Source page or component"
    )
    add_parser.add_argument(
        "--tags",
        nargs="+",
        help="Tags"
    )
    add_parser.add_argument(
        "--importance",
        type=int,
        help="Importance from 1 to 10"
    )

    # Search
    search_parser = subparsers.add_parser(
        "search",
        help="Search memories"
    )
    search_parser.add_argument(
        "query",
        help="Search query"
    )
    search_parser.add_argument(
        "--limit", "-n",
        type=int,
        help="Maximum results"
    )
    search_parser.add_argument(
        "--type",
        choices=[t.value for t in MemoryType],
        help="Filter by memory type"
    )
    search_parser.add_argument(
        "--source",
        help="Filter by source"
    )
    search_parser.add_argument(
        "--threshold",
        type=float,
        help="Minimum similarity"
    )
    search_parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON"
    )

    # Context
    context_parser = subparsers.add_parser(
        "context",
        help="Print the relevant context block for a query"
    )
    context_parser.add_argument(
        "query",
        help="Query text"
    )
    context_parser.add_argument(
        "--source",
        help="Filter by source"
    )

    # List
    subparsers.add_parser(
        "list",
        help="List all memories in insertion order"
    )

    # Stats
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show memory statistics"
    )
    stats_parser.add_argument(
        "--json",
        action="store_true",
        help="Print statistics as JSON"
    )

    # Clear
    clear_parser = subparsers.add_parser(
        "clear",
        help="Clear all memories (use with caution!)"
    )
    clear_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation"
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = load_config(
        config_path=args.config,
        backend=args.backend,
        path=args.path,
        json_logs=args.json_logs,
    )
    setup_logging(config.log_level, args.verbose, config.json_logs)

    manager = MemoryManager.from_config(config)
    try:
        handle_command(manager, args)
    finally:
        manager.close()


def handle_command(manager: MemoryManager, args):
    """Dispatch a parsed command."""
    if args.command == "add":
        handle_add(manager, args)
    elif args.command == "search":
        handle_search(manager, args)
    elif args.command == "context":
        handle_context(manager, args)
    elif args.command == "list":
        handle_list(manager)
    elif args.command == "stats":
        handle_stats(manager, args)
    elif args.command == "clear":
        handle_clear(manager, args)


def handle_add(manager: MemoryManager, args):
    """Add a memory."""
    metadata = {"type": args.type}
    if args.source:
        metadata["source"] = args.source
    if args.tags:
        metadata["tags"] = args.tags
    if args.importance is not None:
        metadata["importance"] = args.importance

    entry = manager.add(args.content, metadata)
    print(f"Stored memory {entry.id}")


def handle_search(manager: MemoryManager, args):
    """Search memories."""
    options = {"type": args.type, "source": args.source}
    if args.limit is not None:
        options["limit"] = args.limit
    if args.threshold is not None:
        options["threshold"] = args.threshold

    query = manager.build_query(args.query, **options)
    results = asyncio.run(manager.search_memory(query))

    if getattr(args, "json", False):
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return

    if not results:
        print("No memories found matching your query.")
        return

    print(f"Found {len(results)} matching memories:\n")
    for i, result in enumerate(results, 1):
        entry = result.entry
        meta = entry.metadata
        print(f"{i}. [{meta.type.value}] Similarity: {result.similarity:.3f}")
        print(f"   ID: {entry.id}")
        print(f"   Source: {meta.source}  Importance: {meta.importance}")
        content_preview = entry.content[:100].replace('\n', ' ')
        if len(entry.content) > 100:
            content_preview += "..."
        print(f"   Content: {content_preview}")
        if meta.tags:
            print(f"   Tags: {', '.join(meta.tags)}")
        print()


def handle_context(manager: MemoryManager, args):
    """Print the context block for a query."""
    print(asyncio.run(manager.get_relevant_context(args.query, args.source)))


def handle_list(manager: MemoryManager):
    """List all memories."""
    entries = manager.list_entries()
    if not entries:
        print("No memories stored.")
        return

    for entry in entries:
        meta = entry.metadata
        print(
            f"{entry.id}  {meta.timestamp.isoformat()}  [{meta.type.value}] "
            f"({meta.source}, importance {meta.importance}) {entry.content}"
        )


def handle_stats(manager: MemoryManager, args):
    """Show memory statistics."""
    if getattr(args, "json", False):
        print(json.dumps(manager.get_stats().to_dict(), indent=2))
    else:
        print(manager.get_stats_summary())


def handle_clear(manager: MemoryManager, args):
    """Clear all memories."""
    if not args.yes:
        confirm = input("Are you sure you want to clear ALL memories? This cannot be undone. [y/N]: ")
        if confirm.lower() != 'y':
            print("Aborted.")
            return

    manager.clear_memory()
    print("All memories have been cleared.")


if __name__ == "__main__":
    main()
