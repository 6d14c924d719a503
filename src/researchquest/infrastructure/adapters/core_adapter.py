"""CORE (core.ac.uk) ResourceSearchPort adapter; requires ``CORE_API_KEY``."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from researchquest.domain.community import Resource
from researchquest.infrastructure.api_clients.base import APIClient

logger = logging.getLogger(__name__)

CORE_API_URL = "https://api.core.ac.uk/v3"


class CoreAdapter:
    def __init__(self, api_key: Optional[str] = None, client: Optional[APIClient] = None):
        self._api_key = api_key if api_key is not None else os.getenv("CORE_API_KEY", "")
        self._client = client

    @property
    def source_name(self) -> str:
        return "core"

    async def search(self, query: str, *, max_results: int = 10) -> List[Resource]:
        if not (query or "").strip():
            return []
        if not self._api_key:
            logger.debug("CORE_API_KEY not set; skipping CORE search")
            return []
        if self._client is None:
            self._client = APIClient(
                CORE_API_URL, headers={"Authorization": f"Bearer {self._api_key}"}
            )
        data = await self._client.get(
            "/search/works", params={"q": query.strip(), "limit": max_results}
        )
        results = (data or {}).get("results") or []
        return [self._to_resource(r) for r in results if isinstance(r, dict) and r.get("title")]

    @staticmethod
    def _to_resource(r: Dict[str, Any]) -> Resource:
        authors = [a.get("name", "") for a in r.get("authors") or [] if isinstance(a, dict)]
        return Resource(
            id=f"core:{r.get('id') or ''}",
            title=str(r["title"]).strip(),
            type="paper",
            description=r.get("abstract") or r.get("description") or "",
            author=", ".join(a for a in authors if a) or "Unknown",
            source="CORE",
            url=r.get("downloadUrl") or "",
            tags=[str(t) for t in r.get("topics") or [] if isinstance(t, str)],
            created_at=r.get("publishedDate"),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
