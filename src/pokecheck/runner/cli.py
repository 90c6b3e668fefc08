from __future__ import annotations

import argparse
import asyncio
from typing import List, Optional

from pokecheck.analysis.effectiveness import Effectiveness
from pokecheck.analysis.evolution import iter_forest
from pokecheck.analysis.search import DEFAULT_PAGE_SIZE
from pokecheck.knowledge.fetcher import DatasetFetchError, PokedexFetcher
from pokecheck.runner.backup import DEFAULT_BACKUP_PATH, write_backup
from pokecheck.runner.session import EntityNotFoundError, PokedexSession, describe_load_error
from pokecheck.utils.format import format_multiplier
from pokecheck.utils.logger import configure_logging
from pokecheck.utils.settings import Settings


def _print_progress(value: int) -> None:
    print(f"  loading... {value}%", end="\r" if value < 100 else "\n")


def _format_entries(entries: List[Effectiveness]) -> str:
    if not entries:
        return "-"
    return ", ".join(f"{e.type} {format_multiplier(e.multiplier)}" for e in entries)


async def _load(session: PokedexSession, quiet: bool) -> bool:
    try:
        await session.load(None if quiet else _print_progress)
    except DatasetFetchError as exc:
        print(f"❌ {describe_load_error(exc, session.cache.storage_usage_info())}")
        return False
    return True


async def _run_search(session: PokedexSession, args: argparse.Namespace) -> int:
    if not await _load(session, args.quiet):
        return 1
    page = session.filtered(args.term or "", args.type or (), args.gen or (), args.page, args.per_page)
    for entity in page.items:
        types = "/".join(entity.type_names)
        print(f"#{entity.dex_nr:04d}  {entity.english_name:<20} {types:<18} gen {entity.generation}")
    print(f"page {page.page}/{page.total_pages} ({page.total} matches)")
    return 0


async def _run_evolution(session: PokedexSession, args: argparse.Namespace) -> int:
    if not await _load(session, args.quiet):
        return 1
    entity = session.find(args.entity)
    for depth, node in iter_forest(session.evolution_forest(entity.id)):
        suffix = f"  ({node.requirement.describe()})" if node.requirement else ""
        print(f"{'  ' * depth}{'-> ' if depth else ''}{node.entity.english_name}{suffix}")
    return 0


async def _run_matchups(session: PokedexSession, args: argparse.Namespace) -> int:
    if not await _load(session, args.quiet):
        return 1
    entity = session.find(args.entity)
    profile = await session.type_profile(entity.id)
    print(f"{entity.english_name} ({'/'.join(entity.type_names)})")
    if profile is None or profile.is_empty:
        print("  type chart unavailable")
        return 0
    print(f"  weak to:     {_format_entries(profile.weaknesses)}")
    print(f"  resists:     {_format_entries(profile.resistances)}")
    print(f"  immune to:   {_format_entries(profile.immunities)}")
    for attack_type, strengths in profile.offense.items():
        print(f"  {attack_type} hits: {_format_entries(strengths)}")
    return 0


def _run_cache(session: PokedexSession, args: argparse.Namespace) -> int:
    if args.action == "clear":
        session.clear_cache()
        print("🧹 Cache cleared")
        return 0
    usage = session.cache.storage_usage_info()
    print(f"state: {session.cache.state().value}")
    print(f"used: {usage.used_kb} KB, available: {usage.available_kb} KB ({usage.percentage}%)")
    return 0


def _run_backup(settings: Settings, args: argparse.Namespace) -> int:
    fetcher = PokedexFetcher(url=settings.data_url, timeout=settings.request_timeout)
    try:
        size = write_backup(fetcher, args.out)
    except DatasetFetchError as exc:
        print(f"❌ {exc}")
        return 1
    print(f"✅ Wrote {args.out} ({size / (1024 * 1024):.2f} MB)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pokecheck", description="Browse the Pokemon GO pokedex from the terminal.")
    parser.add_argument("--env-file", default=".env", help="Optional .env file with POKECHECK_* settings.")
    parser.add_argument("--cache-dir", help="Directory for the local dataset cache.")
    parser.add_argument("--data-url", help="Upstream pokedex JSON URL.")
    parser.add_argument("--type-chart", help="Path or URL of the type chart JSON.")
    parser.add_argument("--quiet", action="store_true", help="Do not print load progress.")
    parser.add_argument("--log-level", default="WARNING", help="structlog level written to stderr.")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search and filter entities.")
    search.add_argument("term", nargs="?", default="", help="Name, dex number or type substring.")
    search.add_argument("--type", action="append", help="Keep entities of this type (repeatable).")
    search.add_argument("--gen", action="append", type=int, help="Keep entities of this generation (repeatable).")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--per-page", type=int, default=DEFAULT_PAGE_SIZE)

    evolution = sub.add_parser("evolution", help="Show the evolution family of an entity.")
    evolution.add_argument("entity", help="Entity id, dex number or English name.")

    matchups = sub.add_parser("matchups", help="Show type weaknesses and strengths of an entity.")
    matchups.add_argument("entity", help="Entity id, dex number or English name.")

    cache = sub.add_parser("cache", help="Inspect or clear the local dataset cache.")
    cache.add_argument("action", choices=["info", "clear"])

    backup = sub.add_parser("backup", help="Download the full dataset to a JSON file.")
    backup.add_argument("--out", default=str(DEFAULT_BACKUP_PATH))
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    settings = Settings.from_env(
        args.env_file,
        cache_dir=args.cache_dir,
        data_url=args.data_url,
        type_chart=args.type_chart,
    )
    if args.command == "backup":
        return _run_backup(settings, args)

    session = PokedexSession.from_settings(settings)
    try:
        if args.command == "cache":
            return _run_cache(session, args)
        runner = {"search": _run_search, "evolution": _run_evolution, "matchups": _run_matchups}[args.command]
        return asyncio.run(runner(session, args))
    except EntityNotFoundError as exc:
        print(f"❌ No entity matches {exc.args[0]!r}")
        return 1
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
