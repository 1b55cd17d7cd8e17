"""
CLI utility for the enhanced creature index.

Usage:
    python scripts/index_cache.py --packs data/packs --stats
    python scripts/index_cache.py --packs data/packs --rebuild
    python scripts/index_cache.py --packs data/packs --query '{"challenge_rating": {"min": 2, "max": 5}}'
    python scripts/index_cache.py --packs data/packs --search "goblin boss"
    python scripts/index_cache.py --packs data/packs --invalidate
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from compendium_index.api.data_access import CompendiumDataAccess
from compendium_index.config.settings import Settings
from compendium_index.errors import CompendiumIndexError
from compendium_index.host.directory import DirectoryPackSource
from compendium_index.ops.telemetry import configure_logging
from compendium_index.persist.sqlite_store import KVStore


def format_bytes(bytes_val: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "KB", "MB", "GB"]:
        if bytes_val < 1024:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024
    return f"{bytes_val:.1f} TB"


def format_time(ts: float) -> str:
    """Format unix timestamp as human-readable string."""
    if not ts:
        return "never"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_file(args.config) if args.config else Settings()
    if args.store:
        settings.store.root = str(args.store)
    if args.backend:
        settings.store.backend = args.backend
    if args.world:
        settings.store.world_id = args.world
    if args.dialect:
        settings.index.dialect = args.dialect
    if args.log_level:
        settings.logging.level = args.log_level
    if args.job_history:
        settings.store.job_history = str(args.job_history)
    return settings


async def show_stats(access: CompendiumDataAccess) -> int:
    """Print pack, index and store statistics."""
    for pack in access.source.list_packs():
        if not pack.indexed:
            try:
                await pack.ensure_index()
            except Exception as e:
                print(f"⚠️  Cannot read {pack.id}: {e}")
    packs = access.available_packs()
    index = await access.store.load()

    print(f"📚 Packs: {len(packs)}\n")
    print(f"{'Pack':<32} {'Type':<10} {'Entries':>10}")
    print("=" * 54)
    for pack in packs:
        print(f"{pack.id:<32} {pack.type:<10} {pack.document_count:>10,}")
    print()

    print(f"📊 Index: {access.store.key}")
    if index is None:
        print("   (no persisted index)")
    else:
        meta = index.metadata
        print(f"   Dialect:        {meta.dialect.value}")
        print(f"   Schema version: {meta.schema_version}")
        print(f"   Built at:       {format_time(meta.built_at)}")
        print(f"   Profiles:       {meta.total_profiles:,}")
        print(f"   Errors:         {meta.error_count:,}")
        print(f"   Packs tracked:  {len(meta.fingerprints)}")

    if isinstance(access.store.store, KVStore):
        stats = access.store.store.stats()
        print(
            f"\n🗄️  SQLite store: {stats['count']:,} artifacts, "
            f"{format_bytes(stats['total_bytes'])}, newest {format_time(stats['newest_ts'])}"
        )

    history = access.jobs.history(limit=5)
    if history:
        print("\n🕒 Recent rebuilds:")
        for job in history:
            print(f"   {job.finished_at}  {job.state:<10} {job.message}")
    print()
    return 0


async def rebuild(access: CompendiumDataAccess) -> int:
    print("🔨 Rebuilding enhanced creature index...\n")
    response = await access.rebuild_enhanced_index()
    if not response.success:
        print(f"❌ {response.message}")
        return 1
    print(f"✅ {response.message}")
    if not response.persisted:
        print("⚠️  Index was built but could not be saved")
        return 1
    return 0


async def rebuild_in_background(access: CompendiumDataAccess) -> int:
    print("🔨 Rebuilding enhanced creature index in the background...\n")
    job_id = access.start_background_rebuild()
    job = access.rebuild_job(job_id)
    last = None
    while not job.finished:
        if job.message != last:
            print(f"   [{job.progress:4.0%}] {job.message}")
            last = job.message
        await asyncio.sleep(0.05)

    if job.state == "failed":
        print(f"❌ {job.message}")
        return 1
    print(f"✅ {job.message}")
    return 0 if job.persisted else 1


async def invalidate(access: CompendiumDataAccess) -> int:
    removed = await access.cache.invalidate()
    if removed:
        print(f"🗑️  Removed {access.store.key}")
    else:
        print("   Nothing to remove")
    return 0


async def run_query(access: CompendiumDataAccess, raw: str) -> int:
    try:
        criteria = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"❌ Invalid JSON criteria: {e}")
        return 1

    result = await access.list_creatures_by_criteria(criteria)
    summary = result.summary
    method = "fallback" if summary.used_fallback else "index"
    print(f"🔍 {summary.total_found} creatures ({method}, {summary.total_indexed:,} indexed)\n")
    for item in result.profiles:
        power = getattr(item, "power_metric", None)
        power_text = f"{power:g}" if power is not None else "?"
        print(f"   {power_text:>6}  {item.name:<40} {item.pack_label}")
    print(json.dumps(summary.model_dump(), indent=2))
    return 0


async def run_search(access: CompendiumDataAccess, text: str, pack_type: Optional[str]) -> int:
    results = await access.search_compendium(text, pack_type=pack_type)
    print(f"🔍 {len(results)} results for {text!r}\n")
    for hit in results:
        print(f"   {hit.name:<40} {hit.type:<12} {hit.pack_label}")
    return 0


async def run(args: argparse.Namespace) -> int:
    settings = build_settings(args)
    configure_logging(settings.logging)

    source = DirectoryPackSource(args.packs)
    access = CompendiumDataAccess(source, settings)

    try:
        if args.invalidate:
            code = await invalidate(access)
            if code != 0:
                return code
        if args.rebuild:
            code = await (rebuild_in_background(access) if args.background else rebuild(access))
            if code != 0:
                return code
        if args.query:
            code = await run_query(access, args.query)
            if code != 0:
                return code
        if args.search:
            code = await run_search(access, args.search, args.pack_type)
            if code != 0:
                return code
        if args.stats:
            return await show_stats(access)
        return 0
    except CompendiumIndexError as e:
        print(f"❌ {e}")
        return 1
    finally:
        if isinstance(access.store.store, KVStore):
            access.store.store.close()


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage the enhanced creature index (stats, rebuild, query)"
    )
    parser.add_argument(
        "--packs",
        type=Path,
        required=True,
        help="Directory of pack JSON files",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Store root directory (default: data/store)",
    )
    parser.add_argument(
        "--backend",
        choices=["file", "sqlite"],
        default=None,
        help="Store backend (default: file)",
    )
    parser.add_argument("--world", type=str, default=None, help="World id the index is scoped to")
    parser.add_argument("--dialect", type=str, default=None, help="Active dialect (dnd5e, pf2e)")
    parser.add_argument("--config", type=Path, default=None, help="Settings JSON file")
    parser.add_argument("--log-level", type=str, default=None, help="Log level (default: INFO)")

    parser.add_argument("--stats", action="store_true", help="Show pack and index statistics")
    parser.add_argument("--rebuild", action="store_true", help="Force a full rebuild")
    parser.add_argument("--background", action="store_true", help="Run --rebuild as a tracked job with progress")
    parser.add_argument("--job-history", type=Path, default=None, help="JSONL file finished rebuild jobs are logged to")
    parser.add_argument("--invalidate", action="store_true", help="Delete the persisted index")
    parser.add_argument("--query", type=str, default=None, help="Criteria query as JSON")
    parser.add_argument("--search", type=str, default=None, help="Free-text compendium search")
    parser.add_argument("--pack-type", type=str, default=None, help="Restrict --search to a pack type")
    return parser


def main(argv: Optional[list[str]] = None):
    """CLI entrypoint."""
    parser = make_parser()
    args = parser.parse_args(argv)

    if not (args.stats or args.rebuild or args.invalidate or args.query or args.search):
        parser.print_help()
        print("\n❌ Error: Must specify --stats, --rebuild, --invalidate, --query or --search")
        sys.exit(1)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
