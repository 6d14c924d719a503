"""Community directory: custom communities plus external platform search."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from researchquest.application.ports.entity_store_port import EntityStorePort
from researchquest.application.ports.platform_search_port import PlatformSearchPort
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.source_fanout import (
    close_all,
    fan_out,
    source_timeout_from_env,
)
from researchquest.domain.community import Community, JoinResult, Platform
from researchquest.domain.errors import NotFoundError
from researchquest.utils.logging_config import LogFiles, Logger

COMMUNITIES = "communities"
COMMUNITY_JOINS = "community_joins"

SORT_OPTIONS = ("members", "recent", "name")


@dataclass
class CommunitySearchResult:
    communities: List[Community] = field(default_factory=list)
    failed_platforms: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "communities": [c.to_dict() for c in self.communities],
            "failed_platforms": list(self.failed_platforms),
        }


def sort_communities(items: List[Community], sort_by: str) -> List[Community]:
    if sort_by == "name":
        return sorted(items, key=lambda c: c.name.lower())
    if sort_by == "recent":
        # undated (external) entries go last
        dated = sorted((c for c in items if c.created_at), key=lambda c: c.created_at, reverse=True)
        return dated + [c for c in items if not c.created_at]
    return sorted(items, key=lambda c: c.member_count, reverse=True)


def _clean_list(values: Iterable[Any]) -> List[str]:
    out: List[str] = []
    for value in values or []:
        item = str(value or "").strip()
        if item and item not in out:
            out.append(item)
    return out


class CommunityDirectory:
    def __init__(
        self,
        store: EntityStorePort,
        adapters: Optional[Mapping[str, PlatformSearchPort]] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._adapters: Dict[str, PlatformSearchPort] = dict(adapters or {})
        self._timeout = timeout_seconds or source_timeout_from_env()

    @property
    def platforms(self) -> List[str]:
        return [Platform.CUSTOM.value] + list(self._adapters)

    def create_community(
        self,
        session: SessionContext,
        *,
        name: str,
        description: str = "",
        topics: Sequence[str] = (),
        icon_url: Optional[str] = None,
    ) -> Community:
        user = session.require_user()
        name = (name or "").strip()
        if not name:
            raise ValueError("name is required")
        community_id = self._store.create(
            COMMUNITIES,
            {
                "name": name,
                "platform": Platform.CUSTOM.value,
                "description": (description or "").strip(),
                "topics": _clean_list(topics),
                "members": [user.id],
                "creator_id": user.id,
                "icon_url": icon_url,
            },
        )
        Logger.info(f"community created: {community_id} ({name}) by {user.id}", file=LogFiles.DIRECTORY)
        return self.get_community(community_id)

    def get_community(self, community_id: str) -> Community:
        record = self._store.get(COMMUNITIES, community_id)
        if record is None:
            raise NotFoundError("Community", community_id)
        return Community.from_record(record)

    def list_custom(self, query: str = "", *, topic: Optional[str] = None) -> List[Community]:
        communities = [Community.from_record(r) for r in self._store.query(COMMUNITIES)]
        topic_q = (topic or "").strip().lower()
        return [
            c
            for c in communities
            if c.matches(query) and (not topic_q or any(topic_q == t.lower() for t in c.topics))
        ]

    async def search(
        self,
        query: str = "",
        *,
        platforms: Optional[Sequence[str]] = None,
        topic: Optional[str] = None,
        sort_by: str = "members",
    ) -> CommunitySearchResult:
        """Union of matching custom communities and every selected platform's hits."""
        if sort_by not in SORT_OPTIONS:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_OPTIONS)}")
        selected = list(platforms) if platforms else self.platforms
        unknown = [p for p in selected if p not in self.platforms]
        if unknown:
            raise ValueError(f"Unknown platform(s): {', '.join(unknown)}")

        merged: List[Community] = []
        if Platform.CUSTOM.value in selected:
            merged.extend(self.list_custom(query, topic=topic))

        external = {name: self._adapters[name] for name in selected if name in self._adapters}
        outcome = await fan_out(
            external, lambda adapter: adapter.search(query), timeout=self._timeout
        )
        merged.extend(outcome.merged())

        Logger.info(
            f"community search '{query}': {len(merged)} results, failed={outcome.failed_sources}",
            file=LogFiles.DIRECTORY,
        )
        return CommunitySearchResult(
            communities=sort_communities(merged, sort_by),
            failed_platforms=outcome.failed_sources,
        )

    def join(self, session: SessionContext, community_id: str) -> JoinResult:
        """Add the user to a custom community; joining twice changes nothing."""
        user = session.require_user()
        with self._store.transaction() as tx:
            record = tx.get(COMMUNITIES, community_id)
            if record is None:
                raise NotFoundError("Community", community_id)
            community = Community.from_record(record)
            if community.platform != Platform.CUSTOM:
                raise ValueError("use join_platform for external communities")
            already = user.id in community.members
            if not already:
                community.members.append(user.id)
                tx.update(COMMUNITIES, community_id, {"members": community.members})
        if not already:
            Logger.info(f"user {user.id} joined community {community_id}", file=LogFiles.DIRECTORY)
        return JoinResult(
            community_id=community_id,
            platform=Platform.CUSTOM,
            joined=True,
            already_member=already,
            member_count=community.member_count,
        )

    def leave(self, session: SessionContext, community_id: str) -> JoinResult:
        user = session.require_user()
        with self._store.transaction() as tx:
            record = tx.get(COMMUNITIES, community_id)
            if record is None:
                raise NotFoundError("Community", community_id)
            community = Community.from_record(record)
            was_member = user.id in community.members
            if was_member:
                community.members = [m for m in community.members if m != user.id]
                tx.update(COMMUNITIES, community_id, {"members": community.members})
        return JoinResult(
            community_id=community_id,
            platform=community.platform,
            joined=False,
            already_member=was_member,
            member_count=community.member_count,
        )

    async def join_platform(self, session: SessionContext, platform: str, target_id: str) -> JoinResult:
        """
        Ask the platform for an invite link and record the attempt.

        The audit row is written whether or not a link came back; the
        external join itself is never verified.
        """
        user = session.require_user()
        adapter = self._adapters.get(platform)
        if adapter is None:
            raise ValueError(f"Unknown platform: {platform}")
        target_id = (target_id or "").strip()
        if not target_id:
            raise ValueError("target_id is required")

        invite_url: Optional[str] = None
        try:
            invite_url = await adapter.request_join(target_id)
        except Exception as exc:
            Logger.warning(f"{platform} join request for {target_id} failed: {exc}", file=LogFiles.DIRECTORY)

        self._store.create(
            COMMUNITY_JOINS,
            {
                "owner_id": user.id,
                "platform": platform,
                "target_id": target_id,
                "invite_url": invite_url,
                "requested_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        return JoinResult(
            community_id=target_id,
            platform=Platform(platform),
            joined=invite_url is not None,
            invite_url=invite_url,
        )

    def joined(self, session: SessionContext) -> List[Community]:
        user = session.require_user()
        rows = self._store.query(
            COMMUNITIES, predicate=lambda r: user.id in (r.get("members") or []), order_by="name"
        )
        return [Community.from_record(r) for r in rows]

    def platform_joins(self, session: SessionContext) -> List[Dict[str, Any]]:
        user = session.require_user()
        return self._store.query(
            COMMUNITY_JOINS, where={"owner_id": user.id}, order_by="created_at", descending=True
        )

    async def close(self) -> None:
        await close_all(self._adapters)
