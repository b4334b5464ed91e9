# src/main.py - v2
"""CLI entry point.

Usage:
    promptcache init [--backend json|sqlite]
    promptcache set <prompt> <response> [-m MODEL] [--ttl 7d] [--tag T]
    promptcache get <prompt> [-m MODEL]
    promptcache list [-m MODEL] [--sort created|hits] [-n LIMIT]
    promptcache stats | limits | cost
    promptcache clear [--older-than 7d]
    promptcache search <query>
    promptcache similar <query> [--threshold 0.3] [-n LIMIT]
    promptcache export [-o FILE]
    promptcache import <file> [--strategy replace|merge|skip-existing]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from promptcache.version import __version__

if TYPE_CHECKING:
    from promptcache.api.facade import PromptCache

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from promptcache.api.facade import PromptCache
    from promptcache.config.settings import load_settings
    from promptcache.logging.logger import setup_logging

    overrides: dict[str, object] = {}
    if args.path is not None:
        overrides["cache_root"] = args.path

    try:
        settings = load_settings(**overrides)
        setup_logging(
            level="DEBUG" if args.verbose else settings.log_level,
            log_format=settings.log_format,
            log_file=settings.log_file,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
        )
        cache = PromptCache(settings=settings)
        return args.func(cache, args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="promptcache",
        description=f"promptcache v{__version__} - local LLM response cache",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-p", "--path", type=Path, default=None,
        help="Cache directory (default: CACHE_ROOT or ./.promptcache)",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_init = subparsers.add_parser("init", help="Create a cache")
    p_init.add_argument(
        "-b", "--backend", default=None,
        help="Storage backend: json (default) or sqlite (PRO)",
    )
    p_init.set_defaults(func=_cmd_init)

    p_set = subparsers.add_parser("set", help="Cache a response")
    p_set.add_argument("prompt")
    p_set.add_argument("response")
    p_set.add_argument("-m", "--model", default=None)
    p_set.add_argument("--tokens", type=int, default=None)
    p_set.add_argument("--ttl", default=None, help="Expiry, e.g. 7d, 24h, 30m (PRO)")
    p_set.add_argument(
        "--tag", dest="tags", action="append", default=None,
        help="Label the entry; repeatable (PRO)",
    )
    p_set.set_defaults(func=_cmd_set)

    p_get = subparsers.add_parser("get", help="Fetch a cached response")
    p_get.add_argument("prompt")
    p_get.add_argument("-m", "--model", default=None)
    p_get.set_defaults(func=_cmd_get)

    p_delete = subparsers.add_parser("delete", help="Remove one entry")
    p_delete.add_argument("prompt")
    p_delete.add_argument("-m", "--model", default=None)
    p_delete.set_defaults(func=_cmd_delete)

    p_list = subparsers.add_parser("list", help="List entries")
    p_list.add_argument("-m", "--model", default=None)
    p_list.add_argument("--sort", choices=["created", "hits"], default="created")
    p_list.add_argument("-n", "--limit", type=int, default=None)
    p_list.set_defaults(func=_cmd_list)

    subparsers.add_parser("stats", help="Show cache statistics").set_defaults(
        func=_cmd_stats
    )
    subparsers.add_parser("limits", help="Show tier limits").set_defaults(
        func=_cmd_limits
    )
    subparsers.add_parser("cost", help="Show cost saved per model (PRO)").set_defaults(
        func=_cmd_cost
    )

    p_clear = subparsers.add_parser("clear", help="Remove entries")
    p_clear.add_argument(
        "--older-than", default=None, help="Only entries older than N days, e.g. 7d",
    )
    p_clear.set_defaults(func=_cmd_clear)

    p_search = subparsers.add_parser("search", help="Substring search on prompts")
    p_search.add_argument("query")
    p_search.set_defaults(func=_cmd_search)

    p_similar = subparsers.add_parser("similar", help="TF-IDF similarity search (PRO)")
    p_similar.add_argument("query")
    p_similar.add_argument("--threshold", type=float, default=None)
    p_similar.add_argument("-n", "--limit", type=int, default=None)
    p_similar.set_defaults(func=_cmd_similar)

    p_export = subparsers.add_parser("export", help="Export cache as JSON")
    p_export.add_argument("-o", "--output", type=Path, default=None)
    p_export.set_defaults(func=_cmd_export)

    p_import = subparsers.add_parser("import", help="Import a JSON export")
    p_import.add_argument("file", type=Path)
    p_import.add_argument(
        "--strategy", default="merge",
        help="replace, merge (default) or skip-existing",
    )
    p_import.set_defaults(func=_cmd_import)

    return parser


def _cmd_init(cache: PromptCache, args: argparse.Namespace) -> int:
    result = cache.init(args.backend)
    if result.success:
        print(f"Initialized {result.backend} cache at {result.path}")
        return 0
    print(result.message, file=sys.stderr)
    return 0 if result.already_exists else 1


def _cmd_set(cache: PromptCache, args: argparse.Namespace) -> int:
    outcome = cache.set(
        args.prompt, args.response, model=args.model,
        tokens=args.tokens, ttl=args.ttl, tags=args.tags,
    )
    if not outcome.success:
        print(outcome.message, file=sys.stderr)
        if outcome.limit_exceeded:
            print("Upgrade to PRO for unlimited entries.", file=sys.stderr)
        return 1
    verb = "Cached" if outcome.is_new else "Updated"
    print(f"{verb} {outcome.hash} (~{outcome.tokens} tokens)")
    for feature in outcome.skipped_features:
        print(f"  {feature} ignored: PRO feature", file=sys.stderr)
    return 0


def _cmd_get(cache: PromptCache, args: argparse.Namespace) -> int:
    hit = cache.get(args.prompt, model=args.model)
    if hit is None:
        print("Cache miss", file=sys.stderr)
        return 1
    print(hit.response)
    return 0


def _cmd_delete(cache: PromptCache, args: argparse.Namespace) -> int:
    if cache.delete(args.prompt, model=args.model):
        print("Deleted")
        return 0
    print("Not found", file=sys.stderr)
    return 1


def _cmd_list(cache: PromptCache, args: argparse.Namespace) -> int:
    entries = cache.list(model=args.model, sort=args.sort, limit=args.limit)
    for e in entries:
        print(f"{e.hash}  {e.model:<16} hits={e.hits:<4} {e.prompt}")
    print(f"\n{len(entries)} entries")
    return 0


def _cmd_stats(cache: PromptCache, args: argparse.Namespace) -> int:
    report = cache.stats()
    if report is None:
        print("Cache not initialized. Run: promptcache init", file=sys.stderr)
        return 1
    print(f"\nStatistics for {cache.path} ({report.backend}):")
    print(f"  Entries:       {report.entries}")
    print(f"  Total hits:    {report.total_hits}")
    print(f"  Tokens saved:  {report.tokens_saved}")
    print(f"  Cache size:    {report.cache_size} bytes")
    if report.oldest_entry:
        print(f"  Oldest entry:  {report.oldest_entry.isoformat()}")
        print(f"  Newest entry:  {report.newest_entry.isoformat()}")
    return 0


def _cmd_limits(cache: PromptCache, args: argparse.Namespace) -> int:
    status = cache.limit_status()
    if status.unlimited:
        print("PRO: unlimited entries")
    else:
        print(f"FREE: {status.current_entries}/{status.max_entries} entries, "
              f"{status.max_response_size} byte responses")
    return 0


def _cmd_cost(cache: PromptCache, args: argparse.Namespace) -> int:
    report = cache.cost_report()
    if report is None:
        print("Cache not initialized. Run: promptcache init", file=sys.stderr)
        return 1
    if report.pro_required:
        print("Cost tracking is a PRO feature", file=sys.stderr)
        return 1
    print(f"Total saved: ${report.total_saved:.4f} ({report.total_tokens} tokens)")
    for m in report.models:
        print(f"  {m.model:<20} ${m.cost:.4f}  {m.tokens} tokens  {m.hits} hits")
    return 0


def _cmd_clear(cache: PromptCache, args: argparse.Namespace) -> int:
    result = cache.clear(older_than=args.older_than)
    if not result.success:
        print(result.message, file=sys.stderr)
        return 1
    print(f"Removed {result.removed} entries")
    return 0


def _cmd_search(cache: PromptCache, args: argparse.Namespace) -> int:
    for e in cache.search(args.query):
        print(f"{e.hash}  {e.model:<16} {e.prompt}")
    return 0


def _cmd_similar(cache: PromptCache, args: argparse.Namespace) -> int:
    found = cache.find_similar(args.query, threshold=args.threshold, limit=args.limit)
    if found.pro_required:
        print("Similarity search is a PRO feature", file=sys.stderr)
        return 1
    for match in found.results:
        print(f"{match.similarity:.2f}  {match.hash}  {match.prompt[:60]}")
    print(f"\n{len(found.results)} of {found.total} matches")
    return 0


def _cmd_export(cache: PromptCache, args: argparse.Namespace) -> int:
    snapshot = cache.export_data()
    if snapshot is None:
        print("Cache not initialized. Run: promptcache init", file=sys.stderr)
        return 1
    text = json.dumps(snapshot.to_document(), indent=2)
    if args.output is None:
        print(text)
    else:
        args.output.write_text(text, encoding="utf-8")
        print(f"Exported {len(snapshot.entries)} entries to {args.output}")
    return 0


def _cmd_import(cache: PromptCache, args: argparse.Namespace) -> int:
    data = json.loads(args.file.read_text(encoding="utf-8"))
    result = cache.import_data(data, strategy=args.strategy)
    if not result.success:
        print(result.message, file=sys.stderr)
        return 1
    print(f"Imported {result.imported} entries ({result.skipped} skipped)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
