"""Shared research resources plus open-access catalog search."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from researchquest.application.ports.entity_store_port import EntityStorePort
from researchquest.application.ports.resource_search_port import ResourceSearchPort
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.source_fanout import (
    close_all,
    fan_out,
    source_timeout_from_env,
)
from researchquest.domain.community import RESOURCE_TYPES, Resource
from researchquest.domain.errors import NotFoundError
from researchquest.utils.logging_config import LogFiles, Logger

RESOURCES = "resources"
SORT_OPTIONS = ("date", "downloads", "rating")
MIN_RATING = 1
MAX_RATING = 5

_WS_RX = re.compile(r"\s+")


def title_key(title: str) -> str:
    return _WS_RX.sub(" ", (title or "").strip().lower())


def dedupe_by_title(items: Iterable[Resource]) -> List[Resource]:
    """First occurrence of each normalised title wins."""
    seen: Dict[str, Resource] = {}
    for item in items:
        key = title_key(item.title)
        if key and key not in seen:
            seen[key] = item
    return list(seen.values())


def sort_resources(items: List[Resource], sort_by: str) -> List[Resource]:
    if sort_by == "downloads":
        return sorted(items, key=lambda r: r.download_count, reverse=True)
    if sort_by == "rating":
        return sorted(items, key=lambda r: (r.rating, r.review_count), reverse=True)
    dated = sorted((r for r in items if r.created_at), key=lambda r: str(r.created_at), reverse=True)
    return dated + [r for r in items if not r.created_at]


@dataclass
class ResourceSearchResult:
    resources: List[Resource] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resources": [r.to_dict() for r in self.resources],
            "failed_sources": list(self.failed_sources),
        }


class ResourceDirectory:
    def __init__(
        self,
        store: EntityStorePort,
        adapters: Optional[Mapping[str, ResourceSearchPort]] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._adapters: Dict[str, ResourceSearchPort] = dict(adapters or {})
        self._timeout = timeout_seconds or source_timeout_from_env()

    def add_resource(
        self,
        session: SessionContext,
        *,
        title: str,
        type: str = "paper",
        description: str = "",
        url: str = "",
        tags: Sequence[str] = (),
        author: Optional[str] = None,
    ) -> Resource:
        user = session.require_user()
        title = (title or "").strip()
        if not title:
            raise ValueError("title is required")
        if type not in RESOURCE_TYPES:
            raise ValueError(f"type must be one of {', '.join(RESOURCE_TYPES)}")
        resource_id = self._store.create(
            RESOURCES,
            {
                "owner_id": user.id,
                "title": title,
                "type": type,
                "description": (description or "").strip(),
                "author": (author or "").strip() or user.display_name or "Unknown",
                "source": "ResearchQuest",
                "url": (url or "").strip(),
                "tags": [t.strip() for t in tags or [] if t and t.strip()],
                "download_count": 0,
                "rating": 0.0,
                "review_count": 0,
            },
        )
        Logger.info(f"resource added: {resource_id} ({title}) by {user.id}", file=LogFiles.DIRECTORY)
        return self.get_resource(resource_id)

    def get_resource(self, resource_id: str) -> Resource:
        record = self._store.get(RESOURCES, resource_id)
        if record is None:
            raise NotFoundError("Resource", resource_id)
        return Resource.from_record(record)

    def list_resources(
        self,
        query: str = "",
        *,
        type: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> List[Resource]:
        wanted_tags = {t.strip().lower() for t in tags or [] if t and t.strip()}
        resources = [Resource.from_record(r) for r in self._store.query(RESOURCES)]
        return [r for r in resources if r.matches(query) and self._accepts(r, type, wanted_tags)]

    @staticmethod
    def _accepts(resource: Resource, type: Optional[str], wanted_tags: set) -> bool:
        if type and type != "all" and resource.type != type:
            return False
        if wanted_tags and not wanted_tags.intersection(t.lower() for t in resource.tags):
            return False
        return True

    def record_download(self, resource_id: str) -> Resource:
        with self._store.transaction() as tx:
            record = tx.get(RESOURCES, resource_id)
            if record is None:
                raise NotFoundError("Resource", resource_id)
            updated = tx.update(
                RESOURCES, resource_id, {"download_count": int(record.get("download_count") or 0) + 1}
            )
        return Resource.from_record(updated or record)

    def add_rating(self, session: SessionContext, resource_id: str, rating: int) -> Resource:
        """Fold one rating into the running mean."""
        session.require_user()
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"rating must be an integer between {MIN_RATING} and {MAX_RATING}")
        with self._store.transaction() as tx:
            record = tx.get(RESOURCES, resource_id)
            if record is None:
                raise NotFoundError("Resource", resource_id)
            count = int(record.get("review_count") or 0)
            mean = float(record.get("rating") or 0.0)
            new_count = count + 1
            new_mean = round((mean * count + rating) / new_count, 2)
            updated = tx.update(RESOURCES, resource_id, {"rating": new_mean, "review_count": new_count})
        return Resource.from_record(updated or record)

    async def search(
        self,
        query: str = "",
        *,
        type: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        sort_by: str = "date",
        include_external: bool = True,
        sources: Optional[Sequence[str]] = None,
    ) -> ResourceSearchResult:
        if sort_by not in SORT_OPTIONS:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_OPTIONS)}")
        local = self.list_resources(query, type=type, tags=tags)

        failed: List[str] = []
        external: List[Resource] = []
        if include_external and (query or "").strip():
            selected = {
                name: adapter
                for name, adapter in self._adapters.items()
                if sources is None or name in sources
            }
            outcome = await fan_out(
                selected, lambda adapter: adapter.search(query), timeout=self._timeout
            )
            failed = outcome.failed_sources
            wanted_tags = {t.strip().lower() for t in tags or [] if t and t.strip()}
            external = [r for r in outcome.merged() if self._accepts(r, type, wanted_tags)]

        merged = dedupe_by_title(local + external)
        Logger.info(
            f"resource search '{query}': {len(merged)} results, failed={failed}",
            file=LogFiles.DIRECTORY,
        )
        return ResourceSearchResult(resources=sort_resources(merged, sort_by), failed_sources=failed)

    async def close(self) -> None:
        await close_all(self._adapters)
