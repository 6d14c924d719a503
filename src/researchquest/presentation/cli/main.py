"""
CLI entry point: serve the API or query topics, directories and the leaderboard.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from researchquest import __version__
from researchquest.application.services import topic_catalog
from researchquest.application.services.community_directory import CommunityDirectory
from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.resource_directory import ResourceDirectory
from researchquest.infrastructure.adapters import build_platform_registry, build_resource_registry
from researchquest.infrastructure.stores.entity_store import SqlAlchemyEntityStore

# Load local .env automatically so platform tokens and the DB URL are available.
load_dotenv(find_dotenv(usecwd=True), override=False)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="researchquest",
        description="ResearchQuest - guided research projects and community discovery",
    )
    parser.add_argument("--version", "-v", action="store_true", help="show version")
    parser.add_argument("--db-url", help="database URL (default: RESEARCHQUEST_DB_URL)")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    serve_parser = subparsers.add_parser("serve", help="run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    topics_parser = subparsers.add_parser("topics", help="browse suggested research topics")
    topics_parser.add_argument("--query", "-q", default="")
    topics_parser.add_argument(
        "--category",
        "-c",
        default=topic_catalog.ALL_CATEGORIES,
        choices=[c["id"] for c in topic_catalog.list_categories()],
    )
    topics_parser.add_argument("--json", action="store_true", help="print full JSON")

    communities_parser = subparsers.add_parser("communities", help="search research communities")
    communities_parser.add_argument("query")
    communities_parser.add_argument(
        "--platform",
        action="append",
        dest="platforms",
        default=None,
        help="platform to search, repeatable (custom, discord, slack, reddit)",
    )
    communities_parser.add_argument(
        "--sort", default="members", choices=["members", "recent", "name"]
    )
    communities_parser.add_argument("--json", action="store_true", help="print full JSON")

    resources_parser = subparsers.add_parser("resources", help="search shared and open-access resources")
    resources_parser.add_argument("query")
    resources_parser.add_argument("--type", default=None)
    resources_parser.add_argument("--sort", default="date", choices=["date", "downloads", "rating"])
    resources_parser.add_argument("--local-only", action="store_true")
    resources_parser.add_argument("--json", action="store_true", help="print full JSON")

    leaderboard_parser = subparsers.add_parser("leaderboard", help="show the points leaderboard")
    leaderboard_parser.add_argument("--limit", type=int, default=10)
    leaderboard_parser.add_argument("--json", action="store_true", help="print full JSON")

    return parser


def run_cli(args: Optional[List[str]] = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"ResearchQuest v{__version__}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        if parsed.command == "serve":
            return _run_serve(parsed)
        if parsed.command == "topics":
            return _run_topics(parsed)
        if parsed.command == "communities":
            return asyncio.run(_run_communities(parsed))
        if parsed.command == "resources":
            return asyncio.run(_run_resources(parsed))
        if parsed.command == "leaderboard":
            return _run_leaderboard(parsed)
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _run_serve(parsed: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "researchquest.api.main:app", host=parsed.host, port=parsed.port, reload=parsed.reload
    )
    return 0


def _run_topics(parsed: argparse.Namespace) -> int:
    topics = topic_catalog.search_catalog(parsed.query, parsed.category)
    if parsed.json:
        print(json.dumps([t.to_dict() for t in topics], ensure_ascii=False, indent=2))
        return 0
    for topic in topics:
        flag = " (trending)" if topic.trending else ""
        print(f"[{topic.id}] {topic.title}{flag} - {topic.category}, relevance {topic.relevance}%")
        print(f"    {topic.description}")
        print(f"    keywords: {', '.join(topic.keywords)}")
    return 0


async def _run_communities(parsed: argparse.Namespace) -> int:
    directory = CommunityDirectory(SqlAlchemyEntityStore(parsed.db_url), build_platform_registry())
    try:
        result = await directory.search(parsed.query, platforms=parsed.platforms, sort_by=parsed.sort)
    finally:
        await directory.close()

    if parsed.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0
    for community in result.communities:
        print(f"{community.platform.value:8} {community.member_count:>8}  {community.name}")
    if result.failed_platforms:
        print(f"unavailable: {', '.join(result.failed_platforms)}")
    return 0


async def _run_resources(parsed: argparse.Namespace) -> int:
    directory = ResourceDirectory(SqlAlchemyEntityStore(parsed.db_url), build_resource_registry())
    try:
        result = await directory.search(
            parsed.query,
            type=parsed.type,
            sort_by=parsed.sort,
            include_external=not parsed.local_only,
        )
    finally:
        await directory.close()

    if parsed.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0
    for resource in result.resources:
        print(f"{resource.source:14} {resource.title}")
        if resource.url:
            print(f"{'':14} {resource.url}")
    if result.failed_sources:
        print(f"unavailable: {', '.join(result.failed_sources)}")
    return 0


def _run_leaderboard(parsed: argparse.Namespace) -> int:
    entries = PointsLedger(SqlAlchemyEntityStore(parsed.db_url)).leaderboard(limit=parsed.limit)
    if parsed.json:
        print(json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2))
        return 0
    if not entries:
        print("No points have been awarded yet.")
        return 0
    for entry in entries:
        print(f"{entry.rank:>3}. {entry.username:24} {entry.total_points:>7} pts  {entry.achievements} achievements")
    return 0


if __name__ == "__main__":
    sys.exit(run_cli())
