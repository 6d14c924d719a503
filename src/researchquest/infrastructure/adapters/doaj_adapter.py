"""DOAJ (Directory of Open Access Journals) ResourceSearchPort adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from researchquest.domain.community import Resource
from researchquest.infrastructure.api_clients.base import APIClient

DOAJ_API_URL = "https://doaj.org/api"


class DOAJAdapter:
    def __init__(self, client: Optional[APIClient] = None):
        self._client = client or APIClient(DOAJ_API_URL)

    @property
    def source_name(self) -> str:
        return "doaj"

    async def search(self, query: str, *, max_results: int = 10) -> List[Resource]:
        if not (query or "").strip():
            return []
        # the query is a path segment in the v3 search API
        data = await self._client.get(
            f"/search/articles/{quote(query.strip())}",
            params={"page": 1, "pageSize": max_results},
        )
        results = (data or {}).get("results") or []
        return [
            self._to_resource(r)
            for r in results
            if isinstance(r, dict) and (r.get("bibjson") or {}).get("title")
        ]

    @staticmethod
    def _to_resource(r: Dict[str, Any]) -> Resource:
        bib = r.get("bibjson") or {}
        links = bib.get("link") or []
        authors = [a.get("name", "") for a in bib.get("author") or [] if isinstance(a, dict)]
        return Resource(
            id=f"doaj:{r.get('id') or ''}",
            title=str(bib["title"]).strip(),
            type="paper",
            description=bib.get("abstract") or "",
            author=", ".join(a for a in authors if a) or "Unknown",
            source="DOAJ",
            url=(links[0].get("url") if links and isinstance(links[0], dict) else "") or "",
            tags=list(bib.get("keywords") or []),
            created_at=r.get("created_date"),
        )

    async def close(self) -> None:
        await self._client.close()
